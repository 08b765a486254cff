from decimal import Decimal, ROUND_HALF_UP
from typing import Union

PENCE = Decimal("100")
PENNY = Decimal("0.01")


def to_pence(amount: Union[Decimal, int, float, str]) -> int:
    """Converts a pounds amount to integer pence, rounding half up."""
    value = Decimal(str(amount)) * PENCE
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_pence(pence: int) -> Decimal:
    return (Decimal(pence) / PENCE).quantize(PENNY)
