from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_vms_api
from src.integrations.contracts.interfaces import VMSApi

api = APIRouter()


class PaymentIntentRequest(BaseModel):
    amount: float = Field(..., description="Amount in major currency units")
    currency: str = "eur"
    metadata: Dict[str, Any] = Field(default_factory=dict)


@api.post("/payments/intent", tags=["Payments"])
async def create_payment_intent(request: PaymentIntentRequest, vms: VMSApi = Depends(get_vms_api)):
    """Delegates to the upstream /api/create-payment-intent; card handling stays upstream."""
    return await vms.create_payment_intent(request.amount, request.currency, request.metadata)
