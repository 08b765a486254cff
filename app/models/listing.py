import uuid
from tortoise import fields, models

from app.enums.listing_type import ListingType


class Listing(models.Model):
    """Item offered for sale, either at a fixed price or by auction.

    While an order is open the listing is reserved (inactive, not sold).
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    seller = fields.ForeignKeyField("models.User", related_name="listings")
    title = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    price_pence = fields.BigIntField()
    currency = fields.CharField(max_length=3, default="GBP")
    listing_type = fields.CharEnumField(ListingType, default=ListingType.fixed_price)

    is_active = fields.BooleanField(default=True)
    is_sold = fields.BooleanField(default=False)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "listings"

    def __str__(self):
        return f"Listing {self.id} - {self.title}"

    def reserve(self):
        self.is_active = False
        self.is_sold = False

    def mark_sold(self):
        self.is_active = False
        self.is_sold = True

    def release(self):
        self.is_active = True
        self.is_sold = False
