"""
Mock VMS Client.

Purpose:
- Provides a fake upstream VMS API so the portal can run without the real server.
- Does NOT make network calls.
- Keeps seeded records in memory and mutates them like the server would.

Behavior guidelines:
- Duplicate checks match on email (case-insensitive) and only flag unexpired ownership.
- A candidate has at most one unexpired owning bureau; resubmitting an owned
  email is rejected with 409 DUPLICATE_CANDIDATE.
- MSA approvals stamp the acting party; the MSA turns ACTIVE once both parties signed.

Swap:
Replace with clients/real_http/vms_api.py when VMS_API_URL is configured.
"""

from __future__ import annotations

import copy
import uuid
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from src.integrations.contracts.interfaces import (
    MSA,
    CandidateOwnership,
    ContractNotification,
    ContractTemplate,
    DuplicateCheckResult,
    DuplicateWarning,
    ExecutionStatus,
    FeeStructure,
    FeeType,
    MatchReason,
    MSAStatus,
    Party,
    RateCard,
    RateCardLine,
    VMSApi,
    WorkflowExecution,
    WorkflowStep,
    utcnow,
)
from src.integrations.policy.response_wrappers import ApiError

OWNERSHIP_PERIOD = timedelta(days=365)


class MockVMSApi(VMSApi):
    def __init__(self, acting_party: Party = Party.COMPANY, seed: bool = True) -> None:
        self.acting_party = acting_party
        self.templates: List[ContractTemplate] = []
        self.rate_cards: Dict[str, List[RateCard]] = {}          # bureau_id -> cards
        self.fee_structures: Dict[str, FeeStructure] = {}        # bureau_id -> structure
        self.msas: Dict[str, MSA] = {}
        self.candidates: Dict[str, Dict[str, Any]] = {}          # candidate_id -> record
        self.ownerships: List[CandidateOwnership] = []
        self.bureau_names: Dict[str, str] = {}
        self.contracts: Dict[str, Dict[str, Any]] = {}
        self.executions: List[WorkflowExecution] = []
        self.notifications: List[ContractNotification] = []
        self.retried: List[str] = []
        self.calls: List[str] = []
        if seed:
            self._seed()

    # ------------------------------------------------------------------ #
    # Seed data
    # ------------------------------------------------------------------ #
    def _seed(self) -> None:
        self.bureau_names = {"bureau-1": "TalentBridge Werving", "bureau-2": "Noord Interim"}

        self.templates = [
            ContractTemplate(id="tpl-vast-default", name="Standaard vast contract", contract_type="VAST", is_default=True),
            ContractTemplate(id="tpl-vast-exec", name="Executive vast contract", contract_type="VAST"),
            ContractTemplate(id="tpl-interim", name="Interim overeenkomst", contract_type="INTERIM", is_default=True),
            ContractTemplate(id="tpl-uitzenden", name="Uitzendovereenkomst", contract_type="UITZENDEN"),
        ]

        self.fee_structures = {
            "bureau-1": FeeStructure(id="fs-1", fee_type=FeeType.PERCENTAGE, placement_fee_percentage=20.0, bureau_id="bureau-1"),
            "bureau-2": FeeStructure(id="fs-2", fee_type=FeeType.HOURLY_MARKUP, hourly_markup_percentage=20.0, bureau_id="bureau-2"),
        }

        self.rate_cards = {
            "bureau-1": [
                RateCard(
                    id="rc-1",
                    name="Standaard tarieven 2025",
                    bureau_name="TalentBridge Werving",
                    is_default=True,
                    lines=[
                        RateCardLine(id="rcl-1", job_category="IT", seniority_level="MEDIOR", fee_type="PERCENTAGE",
                                     placement_fee_percentage=20.0, hourly_markup_percentage=18.0),
                        RateCardLine(id="rcl-2", job_category="IT", seniority_level="SENIOR", fee_type="PERCENTAGE",
                                     placement_fee_percentage=25.0, hourly_markup_percentage=22.0),
                    ],
                ),
            ],
        }

        today = date.today()
        active = MSA(
            id="msa-1", company_id="company-1", bureau_id="bureau-1", msa_number="MSA-2025-001",
            status=MSAStatus.ACTIVE, name="Raamovereenkomst TalentBridge",
            effective_date=(today - timedelta(days=30)).isoformat(),
            expiration_date=(today + timedelta(days=335)).isoformat(),
            company_signed_at="2025-01-10T09:00:00Z", company_signed_by="user-c1",
            bureau_signed_at="2025-01-11T10:00:00Z", bureau_signed_by="user-b1",
            company_name="Acme BV", bureau_name="TalentBridge Werving",
        )
        pending = MSA(
            id="msa-2", company_id="company-1", bureau_id="bureau-2", msa_number="MSA-2025-002",
            status=MSAStatus.PENDING_APPROVAL, name="Raamovereenkomst Noord Interim",
            effective_date=today.isoformat(), expiration_date=(today + timedelta(days=365)).isoformat(),
            bureau_signed_at="2025-02-01T08:00:00Z", bureau_signed_by="user-b2",
            company_name="Acme BV", bureau_name="Noord Interim",
        )
        self.msas = {active.id: active, pending.id: pending}

        submitted = utcnow() - timedelta(days=40)
        self.candidates = {
            "cand-1": {"id": "cand-1", "email": "jan.jansen@example.com", "firstName": "Jan", "lastName": "Jansen"},
        }
        self.ownerships = [
            CandidateOwnership(candidate_id="cand-1", bureau_id="bureau-1", bureau_name="TalentBridge Werving",
                               submitted_at=submitted, ownership_expires_at=submitted + OWNERSHIP_PERIOD),
        ]

        self.executions = [
            WorkflowExecution(
                id="exec-1", workflow_id="wf_1", workflow_name="Auto Bureau Selection",
                status=ExecutionStatus.SUCCESS, started_at="2025-01-27T15:30:00Z",
                completed_at="2025-01-27T15:30:45Z", duration_seconds=45, trigger_type="JOB_CREATED",
                trigger_data={"job_id": "job_123", "title": "Senior Developer"},
                steps=[WorkflowStep(id="s1", name="Find Matching Bureaus", status=ExecutionStatus.SUCCESS)],
            ),
            WorkflowExecution(
                id="exec-2", workflow_id="wf_2", workflow_name="Candidate Auto-Screening",
                status=ExecutionStatus.FAILED, started_at="2025-01-27T14:15:00Z",
                completed_at="2025-01-27T14:15:30Z", duration_seconds=30, trigger_type="APPLICATION_RECEIVED",
                error="CV parsing service unavailable",
            ),
        ]

        self.notifications = [
            ContractNotification(id="n-1", type="SIGNATURE_REQUIRED", title="Handtekening vereist",
                                 message="Contract CTR-001 wacht op uw handtekening", contract_id="ctr-1"),
            ContractNotification(id="n-2", type="CONTRACT_EXPIRING", title="Contract verloopt",
                                 message="Contract CTR-002 verloopt over 30 dagen", contract_id="ctr-2", read=True),
        ]

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #
    async def list_contract_templates(self, contract_type: str) -> List[ContractTemplate]:
        self.calls.append(f"templates:{contract_type}")
        return [copy.deepcopy(t) for t in self.templates if t.contract_type == contract_type]

    async def get_active_msa(self, company_id: str, bureau_id: str) -> Optional[MSA]:
        self.calls.append(f"msa_active:{company_id}:{bureau_id}")
        for msa in self.msas.values():
            if msa.company_id == company_id and msa.bureau_id == bureau_id and msa.status == MSAStatus.ACTIVE:
                return copy.deepcopy(msa)
        return None

    async def list_rate_cards(self, bureau_id: str, company_id: str) -> List[RateCard]:
        self.calls.append(f"rate_cards:{bureau_id}:{company_id}")
        return copy.deepcopy(self.rate_cards.get(bureau_id, []))

    async def create_contract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("create_contract")
        for key in ("contractType", "startDate"):
            if not payload.get(key):
                raise ApiError(f"{key} is required", code="VALIDATION_ERROR", field=key, status=400)
        contract_id = f"ctr-{uuid.uuid4().hex[:8]}"
        record = {"id": contract_id, "status": "DRAFT", **payload}
        self.contracts[contract_id] = record
        return dict(record)

    async def list_contract_notifications(self) -> List[ContractNotification]:
        self.calls.append("notifications")
        return copy.deepcopy(self.notifications)

    async def mark_notification_read(self, notification_id: str) -> None:
        self.calls.append(f"notification_read:{notification_id}")
        for n in self.notifications:
            if n.id == notification_id:
                n.read = True
                return
        raise ApiError("Notification not found", code="NOT_FOUND", status=404)

    # ------------------------------------------------------------------ #
    # Fees
    # ------------------------------------------------------------------ #
    async def get_fee_structure(self, bureau_id: str) -> Optional[FeeStructure]:
        self.calls.append(f"fee_structure:{bureau_id}")
        structure = self.fee_structures.get(bureau_id)
        if structure is None:
            raise ApiError("Fee structure not found", code="NOT_FOUND", status=404)
        return copy.deepcopy(structure)

    # ------------------------------------------------------------------ #
    # Candidates
    # ------------------------------------------------------------------ #
    def _find_candidate(self, email: str) -> Optional[Dict[str, Any]]:
        wanted = (email or "").strip().lower()
        for record in self.candidates.values():
            if (record.get("email") or "").lower() == wanted:
                return record
        return None

    def _active_ownership(self, candidate_id: str) -> Optional[CandidateOwnership]:
        now = utcnow()
        for ownership in self.ownerships:
            if ownership.candidate_id == candidate_id and ownership.is_active(now):
                return ownership
        return None

    async def check_duplicate_candidate(self, email: str) -> DuplicateCheckResult:
        self.calls.append(f"check_duplicate:{email}")
        record = self._find_candidate(email)
        if record is None:
            return DuplicateCheckResult(is_duplicate=False)
        ownership = self._active_ownership(record["id"])
        if ownership is None:
            # fee protection expired, the email is free again
            return DuplicateCheckResult(is_duplicate=False)
        warning = DuplicateWarning(
            candidate_id=record["id"],
            match_reason=MatchReason.EMAIL,
            existing_bureau_id=ownership.bureau_id,
            ownership_expires_at=ownership.ownership_expires_at,
        )
        return DuplicateCheckResult(is_duplicate=True, duplicate=warning, ownership=copy.deepcopy(ownership))

    async def submit_candidate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("submit_candidate")
        email = payload.get("email", "")
        existing = self._find_candidate(email)
        if existing and self._active_ownership(existing["id"]):
            raise ApiError("Candidate is already owned by another bureau", code="DUPLICATE_CANDIDATE", field="email", status=409)

        candidate_id = existing["id"] if existing else f"cand-{uuid.uuid4().hex[:8]}"
        self.candidates[candidate_id] = {"id": candidate_id, **payload}
        bureau_id = payload.get("bureauId") or "bureau-1"
        now = utcnow()
        ownership = CandidateOwnership(
            candidate_id=candidate_id,
            bureau_id=bureau_id,
            bureau_name=self.bureau_names.get(bureau_id, ""),
            submitted_at=now,
            ownership_expires_at=now + OWNERSHIP_PERIOD,
        )
        self.ownerships.append(ownership)
        return {"id": candidate_id, "ownershipExpiresAt": ownership.ownership_expires_at.isoformat()}

    # ------------------------------------------------------------------ #
    # MSA
    # ------------------------------------------------------------------ #
    def _get_msa(self, msa_id: str) -> MSA:
        msa = self.msas.get(msa_id)
        if msa is None:
            raise ApiError("MSA not found", code="NOT_FOUND", status=404)
        return msa

    async def list_msas_awaiting_approval(self) -> List[MSA]:
        self.calls.append("msa_awaiting")
        return [copy.deepcopy(m) for m in self.msas.values() if m.status in (MSAStatus.PENDING_APPROVAL, MSAStatus.PENDING_SIGNATURES)]

    async def get_msa(self, msa_id: str) -> MSA:
        self.calls.append(f"msa:{msa_id}")
        return copy.deepcopy(self._get_msa(msa_id))

    async def approve_msa(self, msa_id: str, notes: Optional[str] = None) -> MSA:
        self.calls.append(f"msa_approve:{msa_id}")
        msa = self._get_msa(msa_id)
        stamp = utcnow().isoformat()
        if self.acting_party == Party.COMPANY:
            msa.company_signed_at = msa.company_approved_at = stamp
            msa.company_signed_by = msa.company_approved_by = "mock-company-user"
        else:
            msa.bureau_signed_at = msa.bureau_approved_at = stamp
            msa.bureau_signed_by = msa.bureau_approved_by = "mock-bureau-user"
        if msa.company_signed_at and msa.bureau_signed_at:
            msa.status = MSAStatus.ACTIVE
        return copy.deepcopy(msa)

    async def reject_msa(self, msa_id: str, reason: str) -> MSA:
        self.calls.append(f"msa_reject:{msa_id}")
        if not (reason or "").strip():
            raise ApiError("Rejection reason is required", code="VALIDATION_ERROR", field="reason", status=400)
        msa = self._get_msa(msa_id)
        msa.status = MSAStatus.TERMINATED
        return copy.deepcopy(msa)

    async def create_msa(self, payload: Dict[str, Any]) -> MSA:
        self.calls.append("msa_create")
        msa_id = f"msa-{uuid.uuid4().hex[:8]}"
        msa = MSA(
            id=msa_id,
            company_id=payload.get("companyId", ""),
            bureau_id=payload.get("bureauId", ""),
            msa_number=f"MSA-{msa_id[-8:].upper()}",
            status=MSAStatus.PENDING_APPROVAL,
            effective_date=payload.get("effectiveDate"),
            expiration_date=payload.get("expirationDate"),
            payment_terms_days=int(payload.get("paymentTermsDays", 30)),
            notice_period_days=int(payload.get("noticePeriodDays", 30)),
            auto_renew=bool(payload.get("autoRenew", False)),
            bureau_name=self.bureau_names.get(payload.get("bureauId", "")),
        )
        self.msas[msa_id] = msa
        return copy.deepcopy(msa)

    # ------------------------------------------------------------------ #
    # Workflows
    # ------------------------------------------------------------------ #
    async def list_workflow_executions(self, status: str = "ALL", date_range: str = "today") -> List[WorkflowExecution]:
        self.calls.append(f"executions:{status}:{date_range}")
        items = self.executions if status == "ALL" else [e for e in self.executions if e.status.value == status]
        return copy.deepcopy(items)

    async def retry_workflow_execution(self, execution_id: str) -> None:
        self.calls.append(f"retry:{execution_id}")
        if not any(e.id == execution_id for e in self.executions):
            raise ApiError("Execution not found", code="NOT_FOUND", status=404)
        self.retried.append(execution_id)

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    async def create_payment_intent(self, amount: float, currency: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append("payment_intent")
        if amount <= 0:
            raise ApiError("Amount must be greater than zero", code="VALIDATION_ERROR", field="amount", status=400)
        intent_id = f"pi_mock_{uuid.uuid4().hex[:12]}"
        return {"id": intent_id, "clientSecret": f"{intent_id}_secret", "amount": amount, "currency": currency.lower()}
