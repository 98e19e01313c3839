"""
Candidate submission endpoints with duplicate detection.

The UI debounces email edits itself; over HTTP every duplicate check is
answered immediately.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_vms_api
from src.integrations.contracts.interfaces import VMSApi
from src.portal.candidate_submission import CandidateSubmissionForm
from src.portal.validation import is_valid_email

api = APIRouter()


class DuplicateCheckRequest(BaseModel):
    email: str = ""


class CandidateSubmitRequest(BaseModel):
    job_id: str
    distribution_id: str
    bureau_id: Optional[str] = None
    candidate: Dict[str, Any] = Field(default_factory=dict)


@api.post("/candidates/check-duplicate", tags=["Candidates"])
async def check_duplicate(request: DuplicateCheckRequest, vms: VMSApi = Depends(get_vms_api)):
    form = CandidateSubmissionForm(vms, job_id="", distribution_id="")
    if is_valid_email(request.email):
        await form.check_duplicate(request.email)
    return {
        "is_duplicate": form.duplicate_warning is not None,
        "duplicate": form.duplicate_warning,
        "ownership": form.ownership,
        "can_submit": form.can_submit,
    }


@api.post("/candidates", tags=["Candidates"])
async def submit_candidate(request: CandidateSubmitRequest, vms: VMSApi = Depends(get_vms_api)):
    """Re-check ownership, then submit. An active warning blocks with 409."""
    toasts: List[Dict[str, Any]] = []
    form = CandidateSubmissionForm(
        vms,
        job_id=request.job_id,
        distribution_id=request.distribution_id,
        bureau_id=request.bureau_id,
        notify=toasts.append,
    )
    email = str(request.candidate.get("email") or "")
    if is_valid_email(email):
        await form.check_duplicate(email)
    result = await form.submit(request.candidate)
    return {"candidate": result, "toasts": toasts}
