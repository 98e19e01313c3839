"""
Fee calculation endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.api.dependencies import get_portal_config, get_vms_api
from src.integrations.contracts.interfaces import FeeStructure, FeeType, PlacementType, VMSApi
from src.portal.fee_calculator import FeeCalculatorWidget, calculate_fee, format_currency
from src.portal.validation import FormValidationError
from src.utils.config_loader import PortalConfig

api = APIRouter()


class FeeStructureModel(BaseModel):
    id: str = "inline"
    fee_type: FeeType
    placement_fee_percentage: Optional[float] = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    fixed_placement_fee: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    hourly_markup_percentage: Optional[float] = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    payment_terms_days: int = 30
    guarantee_period_days: int = 90
    discount_percentage: float = Field(default=0.0, allow_inf_nan=False)


class FeeCalculationRequest(BaseModel):
    fee_structure: Optional[FeeStructureModel] = None
    bureau_id: Optional[str] = None
    contract_type: PlacementType = PlacementType.PERMANENT
    annual_salary: float = Field(default=0, ge=0, allow_inf_nan=False)
    hourly_rate: float = Field(default=0, ge=0, allow_inf_nan=False)
    contract_duration: int = Field(default=6, ge=0, le=120)


def _calculation_body(calculation, fee_structure: Optional[FeeStructure], toasts: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "fee_structure": fee_structure,
        "calculation": calculation.to_dict() if calculation else None,
        "formatted_total": format_currency(calculation.total_fee) if calculation else None,
        "empty": calculation is None or not calculation.breakdown,
        "toasts": toasts,
    }


@api.post("/fees/calculate", tags=["Fees"])
async def calculate(
    request: FeeCalculationRequest,
    vms: VMSApi = Depends(get_vms_api),
    config: PortalConfig = Depends(get_portal_config),
):
    """Pure fee calculation; the structure is given inline or fetched for `bureau_id`."""
    if request.fee_structure is not None:
        fee_structure = FeeStructure(**request.fee_structure.model_dump(), bureau_id=request.bureau_id)
    elif request.bureau_id:
        fee_structure = await vms.get_fee_structure(request.bureau_id)
    else:
        raise FormValidationError(
            {"fee_structure": "Provide a fee structure or a bureau_id"},
            message="Fee structure is required",
        )

    calculation = calculate_fee(
        fee_structure,
        request.contract_type,
        annual_salary=request.annual_salary,
        hourly_rate=request.hourly_rate,
        contract_duration=request.contract_duration,
        hours_per_month=config.wizard.hours_per_month,
    )
    return _calculation_body(calculation, fee_structure, [])


@api.get("/bureaus/{bureau_id}/fee-calculation", tags=["Fees"])
async def bureau_fee_calculation(
    bureau_id: str,
    contract_type: PlacementType = Query(default=PlacementType.PERMANENT),
    annual_salary: float = Query(default=0, ge=0, allow_inf_nan=False),
    hourly_rate: float = Query(default=0, ge=0, allow_inf_nan=False),
    contract_duration: int = Query(default=6, ge=0, le=120),
    vms: VMSApi = Depends(get_vms_api),
    config: PortalConfig = Depends(get_portal_config),
):
    """Calculator widget for a bureau: a failed structure fetch yields the empty state plus a toast."""
    toasts: List[Dict[str, Any]] = []
    widget = FeeCalculatorWidget(
        api=vms,
        bureau_id=bureau_id,
        notify=toasts.append,
        hours_per_month=config.wizard.hours_per_month,
    )
    await widget.load()
    if widget.fee_structure is None and not toasts:
        raise HTTPException(status_code=404, detail="Fee structure not found")

    widget.contract_type = contract_type
    widget.annual_salary = annual_salary
    widget.hourly_rate = hourly_rate
    widget.set_contract_duration(contract_duration)
    return _calculation_body(widget.calculation, widget.fee_structure, toasts)
