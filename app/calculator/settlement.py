from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel, ConfigDict, Field

from app.calculator.money import to_pence
from app.enums.commission_mode import CommissionMode


class FeeConfig(BaseModel):
    """Fee configuration captured at order creation.

    ``commission_value`` is a rate in percent when ``commission_mode`` is
    percentage, or a flat amount in pounds when it is fixed.
    """
    buyer_fee: Decimal = Field(..., ge=0)
    commission_mode: CommissionMode
    commission_value: Decimal = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    def snapshot(self) -> dict:
        return {
            "buyer_fee": str(self.buyer_fee),
            "commission_mode": self.commission_mode.value,
            "commission_value": str(self.commission_value),
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> "FeeConfig":
        return cls(
            buyer_fee=Decimal(data["buyer_fee"]),
            commission_mode=CommissionMode(data["commission_mode"]),
            commission_value=Decimal(data["commission_value"]),
        )


class SettlementBreakdown(BaseModel):
    gross_pence: int
    buyer_fee_pence: int
    seller_commission_pence: int
    payout_pence: int
    total_charged_pence: int

    model_config = ConfigDict(frozen=True)


def compute_settlement(gross_pence: int, fee_config: FeeConfig) -> SettlementBreakdown:
    """Splits a gross sale amount into buyer fee, seller commission and payout.

    The buyer fee is charged on top of the gross and never touches the payout.
    """
    if gross_pence <= 0:
        raise ValueError("Gross amount must be greater than 0")

    buyer_fee_pence = to_pence(fee_config.buyer_fee)

    if fee_config.commission_mode == CommissionMode.percentage:
        if fee_config.commission_value > 100:
            raise ValueError("Commission rate cannot exceed 100%")
        commission = (Decimal(gross_pence) * fee_config.commission_value / Decimal("100"))
        seller_commission_pence = int(commission.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        seller_commission_pence = to_pence(fee_config.commission_value)
        if seller_commission_pence > gross_pence:
            raise ValueError("Fixed commission exceeds the gross amount")

    return SettlementBreakdown(
        gross_pence=gross_pence,
        buyer_fee_pence=buyer_fee_pence,
        seller_commission_pence=seller_commission_pence,
        payout_pence=gross_pence - seller_commission_pence,
        total_charged_pence=gross_pence + buyer_fee_pence,
    )
