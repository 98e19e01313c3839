"""
MSA approval endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_pending_msa_query, get_vms_api
from src.integrations.contracts.interfaces import MSA, Party, VMSApi
from src.portal.msa_approval import (
    InlineMSAForm,
    MSAApprovalService,
    PendingMSAQuery,
    approval_state,
    can_approve,
    pending_parties,
)

api = APIRouter()


class ApproveRequest(BaseModel):
    notes: Optional[str] = None
    party: Party = Party.COMPANY


class RejectRequest(BaseModel):
    reason: str = ""
    party: Party = Party.COMPANY


class CreateMSARequest(BaseModel):
    company_id: str
    bureau_id: str
    bureau_name: str = ""
    effectiveDate: Optional[str] = None
    expirationDate: Optional[str] = None
    paymentTermsDays: Optional[int] = None
    contractValue: Optional[float] = None


def _msa_view(msa: MSA, party: Party) -> Dict[str, Any]:
    return {
        "msa": msa,
        "approval_state": approval_state(msa),
        "pending_parties": [p.value for p in pending_parties(msa)],
        "can_approve": can_approve(msa, party),
    }


@api.get("/msa/pending", tags=["MSA"])
async def list_pending(force: bool = False, query: PendingMSAQuery = Depends(get_pending_msa_query)):
    msas = await query.refresh(force=force)
    return {
        "has_pending": query.has_pending,
        "count": query.count,
        "msas": msas,
        "error": str(query.error) if query.error else None,
    }


@api.get("/msa/{msa_id}", tags=["MSA"])
async def get_msa(msa_id: str, party: Party = Party.COMPANY, vms: VMSApi = Depends(get_vms_api)):
    service = MSAApprovalService(vms, party=party)
    return _msa_view(await service.get_msa(msa_id), party)


@api.post("/msa/{msa_id}/approve", tags=["MSA"])
async def approve_msa(
    msa_id: str,
    request: Optional[ApproveRequest] = None,
    vms: VMSApi = Depends(get_vms_api),
    query: PendingMSAQuery = Depends(get_pending_msa_query),
):
    request = request or ApproveRequest()
    toasts: List[Dict[str, Any]] = []
    service = MSAApprovalService(vms, pending_query=query, party=request.party, notify=toasts.append)
    msa = await service.approve(msa_id, request.notes)
    return {**_msa_view(msa, request.party), "toasts": toasts}


@api.post("/msa/{msa_id}/reject", tags=["MSA"])
async def reject_msa(
    msa_id: str,
    request: RejectRequest,
    vms: VMSApi = Depends(get_vms_api),
    query: PendingMSAQuery = Depends(get_pending_msa_query),
):
    toasts: List[Dict[str, Any]] = []
    service = MSAApprovalService(vms, pending_query=query, party=request.party, notify=toasts.append)
    msa = await service.reject(msa_id, request.reason)
    return {**_msa_view(msa, request.party), "toasts": toasts}


@api.post("/msa", tags=["MSA"])
async def create_msa(
    request: CreateMSARequest,
    vms: VMSApi = Depends(get_vms_api),
    query: PendingMSAQuery = Depends(get_pending_msa_query),
):
    """Inline MSA creation; unset fields fall back to today / +1 year / 30 days."""
    toasts: List[Dict[str, Any]] = []
    form = InlineMSAForm(vms, request.company_id, request.bureau_id, request.bureau_name, notify=toasts.append)
    form_data = request.model_dump(include={"effectiveDate", "expirationDate", "paymentTermsDays", "contractValue"}, exclude_none=True)
    msa = await form.submit(form_data)
    query.invalidate()
    return {"msa": msa, "toasts": toasts}
