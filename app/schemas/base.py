from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.calculator.money import from_pence


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def pounds(pence: int | None) -> Decimal | None:
    return None if pence is None else from_pence(pence)
