from decimal import Decimal
from pydantic import Field, field_serializer

from app.enums.commission_mode import CommissionMode
from app.schemas.base import CamelModel


class FeeUpdate(CamelModel):
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    is_percentage: bool = False


class FeeConfigResponse(CamelModel):
    """Fee configuration new orders will be created with"""
    buyer_fee: Decimal
    commission_mode: CommissionMode
    commission_value: Decimal

    @field_serializer("buyer_fee", "commission_value")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)
