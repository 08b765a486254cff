import uuid
from datetime import datetime, timezone
from tortoise import fields, models

from app.enums.auction_status import AuctionStatus


class Auction(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    listing = fields.OneToOneField("models.Listing", related_name="auction")
    seller = fields.ForeignKeyField("models.User", related_name="auctions")

    starting_bid_pence = fields.BigIntField()
    reserve_price_pence = fields.BigIntField(null=True)
    min_bid_increment_pence = fields.BigIntField(default=100)

    ends_at = fields.DatetimeField()
    status = fields.CharEnumField(AuctionStatus, default=AuctionStatus.active)
    ended_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "auctions"

    def __str__(self):
        return f"Auction {self.id} ({self.status})"

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        ends_at = self.ends_at
        if ends_at.tzinfo is None:
            ends_at = ends_at.replace(tzinfo=timezone.utc)
        return ends_at <= now

    def is_open(self, now: datetime | None = None) -> bool:
        # The end timestamp wins over the stored status: the closer may lag.
        return self.status == AuctionStatus.active and not self.is_expired(now)

    def effective_status(self, now: datetime | None = None) -> AuctionStatus:
        if self.status == AuctionStatus.active and self.is_expired(now):
            return AuctionStatus.ended
        return self.status
