from tortoise import fields
from tortoise.models import Model
from uuid import uuid4


class Bid(Model):
    """Accepted offer on an auction. Rows are append-only."""
    id = fields.UUIDField(pk=True, default=uuid4)

    auction = fields.ForeignKeyField("models.Auction", related_name="bids", on_delete=fields.RESTRICT)
    bidder = fields.ForeignKeyField("models.User", related_name="bids", on_delete=fields.RESTRICT)

    amount_pence = fields.BigIntField()

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "bids"

    async def save(self, *args, **kwargs):
        if self.amount_pence <= 0:
            raise ValueError("Amount must be greater than 0")
        await super().save(*args, **kwargs)
