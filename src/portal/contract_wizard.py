"""
Contract wizard - five-step contract creation

Steps:
0. type     - contract type and template
1. parties  - company / bureau, active MSA lookup
2. terms    - dates, probation, notice, vacation, working hours
3. rates    - rate card, salary or hourly rate, bureau fee
4. review   - summary, then a single POST /api/v2/contracts

The draft lives in memory for the lifetime of the wizard. The HTTP surface
round-trips it through `to_state()` / `from_state()` so it can be parked in the
session cache between requests.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from src.error_handler import ErrorHandler, Notifier, log_notifier
from src.integrations.contracts.interfaces import (
    MSA,
    ContractTemplate,
    ContractType,
    MSAStatus,
    RateCard,
    RateCardLine,
    VMSApi,
    format_iso_date,
)
from src.integrations.policy.response_wrappers import IntegrationResponseError
from src.portal.validation import (
    FormValidationError,
    optional_str,
    parse_int,
    parse_number,
    raise_if_errors,
    validate_date_iso,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# (min, max) inclusive
TERM_BOUNDS = {
    "probation_period": (0, 6),
    "notice_period": (0, 6),
    "vacation_days": (20, 40),
    "working_hours": (8, 40),
}


@dataclass
class ContractDraft:
    # Step 0: contract type
    contract_type: ContractType = ContractType.VAST
    template_id: str = ""
    use_template: bool = True

    # Step 1: parties
    application_id: str = ""
    job_id: str = ""
    candidate_id: str = ""
    bureau_id: str = ""
    company_id: str = ""
    msa_id: str = ""

    # Step 2: terms
    start_date: date = field(default_factory=date.today)
    end_date: Optional[date] = None
    probation_period: int = 1
    notice_period: int = 1
    vacation_days: int = 25
    working_hours: int = 40

    # Step 3: rates
    rate_card_id: str = ""
    salary: float = 0
    hourly_rate: float = 0
    bureau_fee_percentage: float = 0
    bureau_fee_amount: float = 0
    job_category: str = ""
    seniority_level: str = ""

    notes: str = ""
    requires_approval: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["contract_type"] = self.contract_type.value
        data["start_date"] = format_iso_date(self.start_date)
        data["end_date"] = format_iso_date(self.end_date)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractDraft":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}
        if "contract_type" in values:
            values["contract_type"] = ContractType(values["contract_type"])
        for key in ("start_date", "end_date"):
            if isinstance(values.get(key), str):
                values[key] = date.fromisoformat(values[key][:10])
        return cls(**values)


def _money(value: Decimal) -> float:
    return float(value.quantize(CENT))


def match_rate_card_line(rate_card: RateCard, job_category: str = "", seniority_level: str = "") -> Optional[RateCardLine]:
    """Pick the line for the draft's category/seniority, falling back to the first line."""
    if not rate_card.lines:
        return None
    if job_category or seniority_level:
        for line in rate_card.lines:
            if job_category and line.job_category != job_category:
                continue
            if seniority_level and line.seniority_level != seniority_level:
                continue
            return line
    return rate_card.lines[0]


class ContractWizard:
    STEPS = ["type", "parties", "terms", "rates", "review"]

    def __init__(
        self,
        api: VMSApi,
        application_id: Optional[str] = None,
        job_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
        bureau_id: Optional[str] = None,
        notify: Optional[Notifier] = None,
    ):
        self.api = api
        self.notify = notify or log_notifier
        self.error_handler = ErrorHandler()

        self.current_step = 0
        self.loading = False
        self.draft = ContractDraft(
            application_id=application_id or "",
            job_id=job_id or "",
            candidate_id=candidate_id or "",
            bureau_id=bureau_id or "",
        )
        self.templates: List[ContractTemplate] = []
        self.msas: List[MSA] = []
        self.rate_cards: List[RateCard] = []
        self.contract_id: Optional[str] = None

    # --- Navigation ----------------------------------------------------------

    @property
    def step_name(self) -> str:
        return self.STEPS[self.current_step]

    @property
    def is_last_step(self) -> bool:
        return self.current_step == len(self.STEPS) - 1

    def next(self) -> int:
        if self.current_step < len(self.STEPS) - 1:
            self.current_step += 1
        return self.current_step

    def back(self) -> int:
        if self.current_step > 0:
            self.current_step -= 1
        return self.current_step

    # --- Loading -------------------------------------------------------------

    async def start(self) -> None:
        """Initial load; each section fails on its own and stays empty."""
        await self.fetch_templates()
        await self.fetch_msa()
        await self.fetch_rate_cards()

    async def fetch_templates(self) -> None:
        try:
            self.templates = await self.api.list_contract_templates(self.draft.contract_type.value)
        except Exception as e:
            logger.error("[Wizard] Error fetching templates: %s", e)
            return
        default = next((t for t in self.templates if t.is_default), None)
        if default:
            self.draft.template_id = default.id

    async def fetch_msa(self) -> None:
        if not self.draft.company_id or not self.draft.bureau_id:
            return
        try:
            msa = await self.api.get_active_msa(self.draft.company_id, self.draft.bureau_id)
        except Exception as e:
            logger.error("[Wizard] Error fetching MSA: %s", e)
            return
        if msa:
            if msa.status == MSAStatus.ACTIVE and not (msa.company_signed_at and msa.bureau_signed_at):
                logger.warning("[Wizard] MSA %s is ACTIVE without both signatures", msa.id)
            self.msas = [msa]
            self.draft.msa_id = msa.id

    async def fetch_rate_cards(self) -> None:
        if not self.draft.bureau_id:
            return
        try:
            self.rate_cards = await self.api.list_rate_cards(self.draft.bureau_id, self.draft.company_id)
        except Exception as e:
            logger.error("[Wizard] Error fetching rate cards: %s", e)
            return
        if self.selected_rate_card() is None:
            self.draft.rate_card_id = ""
        default = next((r for r in self.rate_cards if r.is_default), None)
        if default:
            self.draft.rate_card_id = default.id
            self.calculate_fees(default)

    # --- Step 0: type --------------------------------------------------------

    async def set_contract_type(self, contract_type, use_template: Optional[bool] = None, template_id: Optional[str] = None) -> None:
        new_type = ContractType(contract_type)
        changed = new_type != self.draft.contract_type
        self.draft.contract_type = new_type
        if use_template is not None:
            self.draft.use_template = bool(use_template)
        if new_type == ContractType.VAST:
            self.draft.end_date = None
        if changed or not self.templates:
            self.draft.template_id = ""
            self.templates = []
            await self.fetch_templates()
        if template_id:
            self.draft.template_id = template_id
        self._recalculate()

    # --- Step 1: parties -----------------------------------------------------

    async def set_parties(
        self,
        company_id: Optional[str] = None,
        bureau_id: Optional[str] = None,
        application_id: Optional[str] = None,
        job_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
    ) -> None:
        for name, value in (
            ("company_id", company_id),
            ("bureau_id", bureau_id),
            ("application_id", application_id),
            ("job_id", job_id),
            ("candidate_id", candidate_id),
        ):
            if value is not None:
                setattr(self.draft, name, value)

        self.msas = []
        self.draft.msa_id = ""
        await self.fetch_msa()
        await self.fetch_rate_cards()

    # --- Step 2: terms -------------------------------------------------------

    def set_terms(self, form_data: Dict[str, Any]) -> None:
        """Apply term fields; raises FormValidationError when any is out of range."""
        errors: Dict[str, str] = {}
        updates: Dict[str, Any] = {}

        if "start_date" in form_data:
            updates["start_date"] = validate_date_iso(form_data.get("start_date"), errors, "start_date")
        if "end_date" in form_data:
            updates["end_date"] = validate_date_iso(form_data.get("end_date"), errors, "end_date", required=False)

        for name, (low, high) in TERM_BOUNDS.items():
            if name in form_data:
                updates[name] = parse_int(form_data, name, errors, min_value=low, max_value=high, required=True)

        raise_if_errors(errors)

        for name, value in updates.items():
            setattr(self.draft, name, value)
        if self.draft.contract_type == ContractType.VAST:
            self.draft.end_date = None

    # --- Step 3: rates -------------------------------------------------------

    def select_rate_card(self, rate_card_id: str) -> None:
        self.draft.rate_card_id = rate_card_id
        self._recalculate()

    def set_rates(self, form_data: Dict[str, Any]) -> None:
        errors: Dict[str, str] = {}
        salary = parse_number(form_data, "salary", errors, min_value=0)
        hourly_rate = parse_number(form_data, "hourly_rate", errors, min_value=0)
        raise_if_errors(errors)

        if salary is not None:
            self.draft.salary = salary
        if hourly_rate is not None:
            self.draft.hourly_rate = hourly_rate
        for name in ("job_category", "seniority_level"):
            if name in form_data:
                setattr(self.draft, name, optional_str(form_data, name))
        if form_data.get("rate_card_id"):
            self.draft.rate_card_id = str(form_data["rate_card_id"])
        self._recalculate()

    def selected_rate_card(self) -> Optional[RateCard]:
        return next((r for r in self.rate_cards if r.id == self.draft.rate_card_id), None)

    def _recalculate(self) -> None:
        card = self.selected_rate_card()
        if card is not None:
            self.calculate_fees(card)

    def calculate_fees(self, rate_card: RateCard) -> None:
        """Bureau fee from one rate-card line: placement % of salary for VAST, hourly markup otherwise."""
        line = match_rate_card_line(rate_card, self.draft.job_category, self.draft.seniority_level)
        if line is None:
            return

        if self.draft.contract_type == ContractType.VAST and line.placement_fee_percentage:
            pct = Decimal(str(line.placement_fee_percentage))
            amount = Decimal(str(self.draft.salary)) * pct / 100
        elif line.hourly_markup_percentage:
            pct = Decimal(str(line.hourly_markup_percentage))
            amount = Decimal(str(self.draft.hourly_rate)) * pct / 100
        else:
            return

        self.draft.bureau_fee_percentage = float(pct)
        self.draft.bureau_fee_amount = _money(amount)

    # --- Step 4: review & submit ---------------------------------------------

    def set_review(self, notes: Optional[str] = None, requires_approval: Optional[bool] = None) -> None:
        if notes is not None:
            self.draft.notes = notes.strip()
        if requires_approval is not None:
            self.draft.requires_approval = bool(requires_approval)

    def review(self) -> Dict[str, Any]:
        template = next((t for t in self.templates if t.id == self.draft.template_id), None)
        card = self.selected_rate_card()
        return {
            "contract_type": self.draft.contract_type.value,
            "template": template.name if template and self.draft.use_template else None,
            "msa_id": self.draft.msa_id or None,
            "start_date": format_iso_date(self.draft.start_date),
            "end_date": format_iso_date(self.draft.end_date),
            "probation_period": self.draft.probation_period,
            "notice_period": self.draft.notice_period,
            "vacation_days": self.draft.vacation_days,
            "working_hours": self.draft.working_hours,
            "rate_card": card.name if card else None,
            "salary": self.draft.salary if self.draft.contract_type == ContractType.VAST else None,
            "hourly_rate": self.draft.hourly_rate if self.draft.contract_type != ContractType.VAST else None,
            "bureau_fee_percentage": self.draft.bureau_fee_percentage,
            "bureau_fee_amount": self.draft.bureau_fee_amount,
            "notes": self.draft.notes,
            "requires_approval": self.draft.requires_approval,
        }

    def build_payload(self) -> Dict[str, Any]:
        d = self.draft
        is_vast = d.contract_type == ContractType.VAST
        payload: Dict[str, Any] = {
            "applicationId": d.application_id,
            "jobId": d.job_id,
            "candidateId": d.candidate_id,
            "bureauId": d.bureau_id,
            "companyId": d.company_id,
            "templateId": d.template_id if d.use_template else None,
            "msaId": d.msa_id,
            "rateCardId": d.rate_card_id,
            "contractType": d.contract_type.value,
            "startDate": format_iso_date(d.start_date),
            "endDate": format_iso_date(d.end_date),
            "salary": d.salary if is_vast else None,
            "hourlyRate": d.hourly_rate if not is_vast else None,
            "notes": d.notes,
            "requiresApproval": d.requires_approval,
        }
        # undefined fields are not sent
        return {k: v for k, v in payload.items() if v is not None}

    async def submit(self) -> str:
        """Create the contract and return the redirect path `/contracts/{id}`.

        Only allowed from the review step; earlier steps raise FormValidationError.
        """
        if not self.is_last_step:
            raise FormValidationError(
                {"step": f"Contract can only be submitted from the review step (current: {self.step_name})"},
                message="Complete all steps before submitting",
            )
        self.loading = True
        try:
            contract = await self.api.create_contract(self.build_payload())
            contract_id = contract.get("id") if isinstance(contract, dict) else None
            if not contract_id:
                raise IntegrationResponseError("Contract response is missing an id")
        except Exception as e:
            logger.error("[Wizard] Error creating contract: %s", e)
            self.error_handler.handle_exception(e, self.notify, title="Error", fallback_message="Could not create contract")
            raise
        finally:
            self.loading = False

        self.contract_id = str(contract_id)
        logger.info("[Wizard] contract created id=%s type=%s", self.contract_id, self.draft.contract_type.value)
        self.notify({"title": "Success", "description": "Contract created successfully", "variant": "default"})
        return f"/contracts/{self.contract_id}"

    # --- Persistence ---------------------------------------------------------

    def to_state(self) -> Dict[str, Any]:
        return {
            "current_step": self.current_step,
            "draft": self.draft.to_dict(),
            "templates": [asdict(t) for t in self.templates],
            "msas": [_msa_to_dict(m) for m in self.msas],
            "rate_cards": [asdict(r) for r in self.rate_cards],
            "contract_id": self.contract_id,
        }

    @classmethod
    def from_state(cls, api: VMSApi, state: Dict[str, Any], notify: Optional[Notifier] = None) -> "ContractWizard":
        wizard = cls(api, notify=notify)
        wizard.current_step = int(state.get("current_step", 0))
        wizard.draft = ContractDraft.from_dict(state.get("draft") or {})
        wizard.templates = [ContractTemplate(**t) for t in state.get("templates") or []]
        wizard.msas = [_msa_from_dict(m) for m in state.get("msas") or []]
        wizard.rate_cards = [_rate_card_from_dict(r) for r in state.get("rate_cards") or []]
        wizard.contract_id = state.get("contract_id")
        return wizard


def _msa_to_dict(msa: MSA) -> Dict[str, Any]:
    data = asdict(msa)
    data["status"] = msa.status.value
    return data


def _msa_from_dict(data: Dict[str, Any]) -> MSA:
    values = dict(data)
    values["status"] = MSAStatus(values["status"])
    return MSA(**values)


def _rate_card_from_dict(data: Dict[str, Any]) -> RateCard:
    values = dict(data)
    values["lines"] = [RateCardLine(**line) for line in values.get("lines") or []]
    return RateCard(**values)
