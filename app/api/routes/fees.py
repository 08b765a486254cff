from fastapi import APIRouter

from app.enums.fee_type import FeeType
from app.schemas.fee import FeeUpdate, FeeConfigResponse
from app.services.finance.fee_service import FeeService

router = APIRouter()


@router.get("", response_model=FeeConfigResponse)
async def get_fees():
    """Fee configuration that new orders will snapshot"""
    config = await FeeService.current_fee_config()
    return FeeConfigResponse.model_validate(config.model_dump())


@router.put("/{fee_type}", response_model=FeeConfigResponse)
async def update_fee(fee_type: FeeType, fee_in: FeeUpdate):
    """Changes a platform fee. Existing orders keep the fees they were created with."""
    await FeeService.update_fee(fee_type, fee_in.amount, fee_in.is_percentage)
    config = await FeeService.current_fee_config()
    return FeeConfigResponse.model_validate(config.model_dump())
