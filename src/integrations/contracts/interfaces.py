"""
Contracts (data models).

Defines the request/response shapes exchanged with the upstream VMS REST API:
- fee structures and rate cards
- contract templates and master service agreements (MSA)
- candidate duplicate checks and ownership (fee protection)
- workflow executions and contract notifications

Both the mock client and the real HTTP client implement `VMSApi` and return
these models, so portal components never deal with raw dicts.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FeeType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    HOURLY_MARKUP = "HOURLY_MARKUP"


class PlacementType(str, Enum):
    """Contract types understood by the fee calculator."""
    PERMANENT = "PERMANENT"
    INTERIM = "INTERIM"
    TEMPORARY = "TEMPORARY"


class ContractType(str, Enum):
    """Contract types offered by the contract wizard."""
    VAST = "VAST"
    INTERIM = "INTERIM"
    UITZENDEN = "UITZENDEN"


class MSAStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PENDING_SIGNATURES = "PENDING_SIGNATURES"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"
    FULLY_SIGNED = "FULLY_SIGNED"


class Party(str, Enum):
    COMPANY = "BEDRIJF"
    BUREAU = "BUREAU"


class MatchReason(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    NAME = "NAME"
    MULTIPLE = "MULTIPLE"


class ExecutionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"
    SKIPPED = "SKIPPED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

@dataclass
class FeeStructure:
    id: str
    fee_type: FeeType
    placement_fee_percentage: Optional[float] = None
    fixed_placement_fee: Optional[float] = None
    hourly_markup_percentage: Optional[float] = None
    payment_terms_days: int = 30
    guarantee_period_days: int = 90
    discount_percentage: float = 0.0      # carried, never applied
    bureau_id: Optional[str] = None


@dataclass(frozen=True)
class FeeCalculation:
    base_fee: float
    discount_amount: float
    total_fee: float
    bureau_rate: Optional[float] = None
    markup: Optional[float] = None
    estimated_hours: Optional[int] = None
    breakdown: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseFee": self.base_fee,
            "discountAmount": self.discount_amount,
            "totalFee": self.total_fee,
            "bureauRate": self.bureau_rate,
            "markup": self.markup,
            "estimatedHours": self.estimated_hours,
            "breakdown": list(self.breakdown),
        }


@dataclass
class RateCardLine:
    id: str
    job_category: str = ""
    seniority_level: str = ""
    fee_type: str = ""
    placement_fee_percentage: Optional[float] = None
    hourly_markup_percentage: Optional[float] = None
    fixed_fee_amount: Optional[float] = None
    hourly_markup_amount: Optional[float] = None


@dataclass
class RateCard:
    id: str
    name: str
    bureau_name: str = ""
    is_default: bool = False
    lines: List[RateCardLine] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Contracts & MSA
# ---------------------------------------------------------------------------

@dataclass
class ContractTemplate:
    id: str
    name: str
    contract_type: str
    description: str = ""
    is_default: bool = False
    template_content: str = ""
    variables: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MSA:
    id: str
    company_id: str
    bureau_id: str
    msa_number: str
    status: MSAStatus
    effective_date: Optional[str] = None          # ISO format: YYYY-MM-DD
    expiration_date: Optional[str] = None
    name: str = ""
    payment_terms_days: int = 30
    notice_period_days: int = 30
    auto_renew: bool = False
    company_signed_at: Optional[str] = None
    company_signed_by: Optional[str] = None
    bureau_signed_at: Optional[str] = None
    bureau_signed_by: Optional[str] = None
    company_approved_at: Optional[str] = None
    company_approved_by: Optional[str] = None
    bureau_approved_at: Optional[str] = None
    bureau_approved_by: Optional[str] = None
    company_name: Optional[str] = None
    bureau_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

@dataclass
class CandidateOwnership:
    candidate_id: str
    bureau_id: str
    submitted_at: datetime
    ownership_expires_at: datetime
    bureau_name: str = ""
    fee_protected: bool = True

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return self.ownership_expires_at > (now or utcnow())


@dataclass
class DuplicateWarning:
    candidate_id: str
    match_reason: MatchReason
    existing_bureau_id: Optional[str] = None
    ownership_expires_at: Optional[datetime] = None


@dataclass
class DuplicateCheckResult:
    is_duplicate: bool
    duplicate: Optional[DuplicateWarning] = None
    ownership: Optional[CandidateOwnership] = None


# ---------------------------------------------------------------------------
# Workflows & notifications
# ---------------------------------------------------------------------------

@dataclass
class WorkflowStep:
    id: str
    name: str
    status: ExecutionStatus
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    output: Any = None
    error: Optional[str] = None


@dataclass
class WorkflowExecution:
    id: str
    workflow_id: str
    workflow_name: str
    status: ExecutionStatus
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    trigger_type: str = ""
    trigger_data: Dict[str, Any] = field(default_factory=dict)
    steps: List[WorkflowStep] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ContractNotification:
    id: str
    type: str
    title: str
    message: str
    contract_id: Optional[str] = None
    created_at: Optional[str] = None
    read: bool = False


# ---------------------------------------------------------------------------
# Abstract upstream interface
# ---------------------------------------------------------------------------

class VMSApi(ABC):
    """Every upstream VMS client (mock or real HTTP) must implement this interface."""

    # -- Contracts --

    @abstractmethod
    async def list_contract_templates(self, contract_type: str) -> List[ContractTemplate]:
        """GET /api/v2/contracts/templates?type="""

    @abstractmethod
    async def get_active_msa(self, company_id: str, bureau_id: str) -> Optional[MSA]:
        """GET /api/v2/contracts/msa/active"""

    @abstractmethod
    async def list_rate_cards(self, bureau_id: str, company_id: str) -> List[RateCard]:
        """GET /api/v2/contracts/rate-cards"""

    @abstractmethod
    async def create_contract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/v2/contracts; returns the created contract (with `id`)."""

    @abstractmethod
    async def list_contract_notifications(self) -> List[ContractNotification]:
        """GET /api/v2/contracts/notifications"""

    @abstractmethod
    async def mark_notification_read(self, notification_id: str) -> None:
        """PATCH /api/v2/contracts/notifications/:id/read"""

    # -- Fees --

    @abstractmethod
    async def get_fee_structure(self, bureau_id: str) -> Optional[FeeStructure]:
        """GET /api/vms/bureaus/:id/fee-structure"""

    # -- Candidates --

    @abstractmethod
    async def check_duplicate_candidate(self, email: str) -> DuplicateCheckResult:
        """POST /api/vms/candidates/check-duplicate"""

    @abstractmethod
    async def submit_candidate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/vms/candidates"""

    # -- MSA --

    @abstractmethod
    async def list_msas_awaiting_approval(self) -> List[MSA]:
        """GET /api/msa/awaiting-approval"""

    @abstractmethod
    async def get_msa(self, msa_id: str) -> MSA:
        """GET /api/msa/:id"""

    @abstractmethod
    async def approve_msa(self, msa_id: str, notes: Optional[str] = None) -> MSA:
        """POST /api/msa/approve/:id"""

    @abstractmethod
    async def reject_msa(self, msa_id: str, reason: str) -> MSA:
        """POST /api/msa/reject/:id"""

    @abstractmethod
    async def create_msa(self, payload: Dict[str, Any]) -> MSA:
        """POST /api/msa/create"""

    # -- Workflows --

    @abstractmethod
    async def list_workflow_executions(self, status: str = "ALL", date_range: str = "today") -> List[WorkflowExecution]:
        """GET /api/vms/workflows/executions"""

    @abstractmethod
    async def retry_workflow_execution(self, execution_id: str) -> None:
        """POST /api/vms/workflows/executions/:id/retry"""

    # -- Payments --

    @abstractmethod
    async def create_payment_intent(self, amount: float, currency: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST /api/create-payment-intent (Stripe is handled upstream)."""


def format_iso_date(value: Optional[date]) -> Optional[str]:
    """Format a date the way the upstream API expects (yyyy-MM-dd)."""
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")
