from decimal import Decimal

from loguru import logger
from tortoise.transactions import in_transaction

from app.calculator.settlement import FeeConfig
from app.core.config import settings
from app.core.exceptions import InvalidFeeConfiguration
from app.enums.commission_mode import CommissionMode
from app.enums.fee_type import FeeType
from app.models.fee import PlatformFee


class FeeService:
    @staticmethod
    async def current_fee_config() -> FeeConfig:
        """Reads the active fee rows, falling back to configured defaults.

        Only order creation should call this; the result is snapshotted onto
        the order and never re-read for that order.
        """
        buyer_fee = await PlatformFee.filter(fee_type=FeeType.buyer_fee, is_active=True).order_by("-created_at").first()
        commission = await PlatformFee.filter(fee_type=FeeType.seller_commission, is_active=True).order_by("-created_at").first()

        if commission is None:
            commission_mode = CommissionMode.percentage
            commission_value = settings.DEFAULT_SELLER_COMMISSION_RATE
        else:
            commission_mode = CommissionMode.percentage if commission.is_percentage else CommissionMode.fixed
            commission_value = Decimal(commission.amount)

        return FeeConfig(
            buyer_fee=Decimal(buyer_fee.amount) if buyer_fee else settings.DEFAULT_BUYER_FEE,
            commission_mode=commission_mode,
            commission_value=commission_value,
        )

    @staticmethod
    async def update_fee(fee_type: FeeType, amount: Decimal, is_percentage: bool = False) -> PlatformFee:
        """Replaces the active fee of a type. Existing orders keep their snapshot."""
        if fee_type == FeeType.buyer_fee and is_percentage:
            raise InvalidFeeConfiguration("Buyer fee must be a flat amount")
        if is_percentage and amount > 100:
            raise InvalidFeeConfiguration("Commission rate cannot exceed 100%")

        async with in_transaction():
            await PlatformFee.filter(fee_type=fee_type, is_active=True).update(is_active=False)
            fee = await PlatformFee.create(
                fee_type=fee_type,
                amount=amount,
                is_percentage=is_percentage,
                is_active=True,
            )

        logger.info(f"Fee {fee_type.value} set to {amount}{'%' if is_percentage else ''}")
        return fee
