import uuid
from tortoise import fields, models

from app.enums.fee_type import FeeType


class PlatformFee(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    fee_type = fields.CharEnumField(FeeType)
    amount = fields.DecimalField(max_digits=12, decimal_places=2)
    is_percentage = fields.BooleanField(default=False)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "platform_fees"
