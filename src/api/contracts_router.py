"""
Contract wizard and contract notification endpoints.

Wizard drafts are parked in the session cache between requests and dropped
after a successful submit.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from src.api.dependencies import get_portal_config, get_state_manager, get_vms_api
from src.integrations.contracts.interfaces import ContractType, VMSApi
from src.portal.contract_wizard import ContractWizard
from src.portal.notifications import ContractNotifications
from src.portal.state_manager import WIZARD_FLOW, StateManager
from src.utils.config_loader import PortalConfig

api = APIRouter()


class StartWizardRequest(BaseModel):
    application_id: Optional[str] = None
    job_id: Optional[str] = None
    candidate_id: Optional[str] = None
    bureau_id: Optional[str] = None


class ContractTypeRequest(BaseModel):
    contract_type: ContractType
    use_template: Optional[bool] = None
    template_id: Optional[str] = None


class PartiesRequest(BaseModel):
    company_id: Optional[str] = None
    bureau_id: Optional[str] = None
    application_id: Optional[str] = None
    job_id: Optional[str] = None
    candidate_id: Optional[str] = None


class ReviewRequest(BaseModel):
    notes: Optional[str] = None
    requires_approval: Optional[bool] = None


def _view(session_id: str, wizard: ContractWizard, toasts: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    state = wizard.to_state()
    return {
        "session_id": session_id,
        "current_step": wizard.current_step,
        "step": wizard.step_name,
        "steps": ContractWizard.STEPS,
        "draft": state["draft"],
        "templates": state["templates"],
        "msas": state["msas"],
        "rate_cards": state["rate_cards"],
        "toasts": toasts or [],
    }


class _WizardSession:
    """Load a wizard from the cache and write it back after each mutation."""

    def __init__(self, session_id: str, vms: VMSApi, states: StateManager):
        state = states.get_state(session_id, WIZARD_FLOW)
        if state is None:
            raise HTTPException(status_code=404, detail="Wizard session not found")
        self.session_id = session_id
        self.states = states
        self.toasts: List[Dict[str, Any]] = []
        self.wizard = ContractWizard.from_state(vms, state, notify=self.toasts.append)

    def save(self) -> Dict[str, Any]:
        self.states.save_state(self.session_id, self.wizard.to_state())
        return _view(self.session_id, self.wizard, self.toasts)


def _session(session_id: str, vms: VMSApi = Depends(get_vms_api), states: StateManager = Depends(get_state_manager)) -> _WizardSession:
    return _WizardSession(session_id, vms, states)


# --------------------------------------------------------------------------- #
# Wizard
# --------------------------------------------------------------------------- #
@api.post("/contract-wizard", tags=["Contract Wizard"])
async def start_wizard(
    request: Optional[StartWizardRequest] = None,
    vms: VMSApi = Depends(get_vms_api),
    states: StateManager = Depends(get_state_manager),
):
    request = request or StartWizardRequest()
    toasts: List[Dict[str, Any]] = []
    wizard = ContractWizard(vms, notify=toasts.append, **request.model_dump())
    await wizard.start()
    session_id = states.create_session(WIZARD_FLOW, wizard.to_state())
    return _view(session_id, wizard, toasts)


@api.get("/contract-wizard/{session_id}", tags=["Contract Wizard"])
async def get_wizard(session: _WizardSession = Depends(_session)):
    return _view(session.session_id, session.wizard, session.toasts)


@api.post("/contract-wizard/{session_id}/next", tags=["Contract Wizard"])
async def next_step(session: _WizardSession = Depends(_session)):
    session.wizard.next()
    return session.save()


@api.post("/contract-wizard/{session_id}/back", tags=["Contract Wizard"])
async def previous_step(session: _WizardSession = Depends(_session)):
    session.wizard.back()
    return session.save()


@api.post("/contract-wizard/{session_id}/type", tags=["Contract Wizard"])
async def set_contract_type(request: ContractTypeRequest, session: _WizardSession = Depends(_session)):
    await session.wizard.set_contract_type(request.contract_type, request.use_template, request.template_id)
    return session.save()


@api.post("/contract-wizard/{session_id}/parties", tags=["Contract Wizard"])
async def set_parties(request: PartiesRequest, session: _WizardSession = Depends(_session)):
    await session.wizard.set_parties(**request.model_dump())
    return session.save()


@api.post("/contract-wizard/{session_id}/terms", tags=["Contract Wizard"])
async def set_terms(payload: dict = Body(...), session: _WizardSession = Depends(_session)):
    session.wizard.set_terms(payload)
    return session.save()


@api.post("/contract-wizard/{session_id}/rates", tags=["Contract Wizard"])
async def set_rates(payload: dict = Body(...), session: _WizardSession = Depends(_session)):
    session.wizard.set_rates(payload)
    return session.save()


@api.get("/contract-wizard/{session_id}/review", tags=["Contract Wizard"])
async def review(session: _WizardSession = Depends(_session)):
    return {"session_id": session.session_id, "summary": session.wizard.review(), "payload": session.wizard.build_payload()}


@api.post("/contract-wizard/{session_id}/review", tags=["Contract Wizard"])
async def set_review(request: ReviewRequest, session: _WizardSession = Depends(_session)):
    """Notes and the approval-required flag from the review step."""
    session.wizard.set_review(request.notes, request.requires_approval)
    return session.save()


@api.post("/contract-wizard/{session_id}/submit", tags=["Contract Wizard"])
async def submit(session: _WizardSession = Depends(_session), states: StateManager = Depends(get_state_manager)):
    redirect = await session.wizard.submit()
    states.end_session(session.session_id)
    return {"contract_id": session.wizard.contract_id, "redirect": redirect, "toasts": session.toasts}


# --------------------------------------------------------------------------- #
# Notifications
# --------------------------------------------------------------------------- #
@api.get("/contracts/notifications", tags=["Contracts"])
async def list_notifications(vms: VMSApi = Depends(get_vms_api), config: PortalConfig = Depends(get_portal_config)):
    feed = ContractNotifications(vms, poll_interval_seconds=config.polling.notifications_seconds)
    await feed.fetch()
    return {
        "notifications": feed.notifications,
        "unread_count": feed.unread_count,
        "poll_interval_seconds": config.polling.notifications_seconds,
    }


@api.patch("/contracts/notifications/{notification_id}/read", tags=["Contracts"])
async def mark_notification_read(notification_id: str, vms: VMSApi = Depends(get_vms_api)):
    feed = ContractNotifications(vms)
    if not await feed.mark_as_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification could not be marked as read")
    return {"id": notification_id, "read": True}
