from datetime import datetime, timezone
from uuid import UUID

from tortoise.expressions import Q

from app.enums.subscription_status import SubscriptionStatus
from app.models.subscription import BidderSubscription


class SubscriptionService:
    @staticmethod
    async def has_active_entitlement(user_id: UUID, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return await BidderSubscription.filter(
            Q(current_period_end__isnull=True) | Q(current_period_end__gt=now),
            user_id=user_id,
            status=SubscriptionStatus.active,
        ).exists()
