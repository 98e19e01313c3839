from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

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
    RateCard,
    RateCardLine,
    WorkflowExecution,
    WorkflowStep,
)


class ApiError(Exception):
    """Error returned by (or while talking to) the upstream VMS API.

    `status` is the HTTP status code, or 0 when the request never got a response.
    """

    def __init__(self, message: str, *, code: Optional[str] = None, field: Optional[str] = None, status: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.field = field
        self.status = status


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class ApiErrorDetail(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None
    field: Optional[str] = None


class ApiEnvelope(BaseModel):
    success: bool = True
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    errors: List[ApiErrorDetail] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)


def parse_envelope(raw: Any) -> ApiEnvelope:
    if not isinstance(raw, dict):
        raise IntegrationResponseError(f"Expected a JSON object, got {type(raw).__name__}.")
    return _build_model(ApiEnvelope, raw, raw)


def error_from_envelope(envelope: ApiEnvelope, status: int) -> ApiError:
    first = envelope.errors[0] if envelope.errors else None
    message = envelope.error or envelope.message or (first.message if first else None) or "Request failed"
    code = (first.code if first and first.code else None) or envelope.error
    return ApiError(message, code=code, field=first.field if first else None, status=status)


def get_error_message(error: Any) -> str:
    if isinstance(error, ApiError):
        return error.message
    if isinstance(error, Exception):
        return str(error)
    if isinstance(error, str):
        return error
    return "An unknown error occurred"


def is_auth_error(error: Any) -> bool:
    return isinstance(error, ApiError) and (error.status == 401 or error.code == "UNAUTHORIZED")


def is_validation_error(error: Any) -> bool:
    return isinstance(error, ApiError) and (error.status == 400 or error.code == "VALIDATION_ERROR")


def is_not_found_error(error: Any) -> bool:
    return isinstance(error, ApiError) and (error.status == 404 or error.code == "NOT_FOUND")


# ---------------------------------------------------------------------------
# Entity normalisation (upstream mixes camelCase and snake_case keys)
# ---------------------------------------------------------------------------

def normalize_fee_structure(raw: Dict[str, Any]) -> FeeStructure:
    fee_type = str(_first_non_empty(raw, "feeType", "fee_type")).upper()
    try:
        parsed_type = FeeType(fee_type)
    except ValueError as exc:
        raise IntegrationResponseError(f"Unsupported fee type '{fee_type}'.", payload=raw) from exc

    return FeeStructure(
        id=str(_first_non_empty(raw, "id")),
        fee_type=parsed_type,
        placement_fee_percentage=_optional_float(raw, "placementFeePercentage", "placement_fee_percentage"),
        fixed_placement_fee=_optional_float(raw, "fixedPlacementFee", "fixed_placement_fee"),
        hourly_markup_percentage=_optional_float(raw, "hourlyMarkupPercentage", "hourly_markup_percentage"),
        payment_terms_days=int(_first_non_empty(raw, "paymentTermsDays", "payment_terms_days", default=30)),
        guarantee_period_days=int(_first_non_empty(raw, "guaranteePeriodDays", "guarantee_period_days", default=90)),
        discount_percentage=float(_first_non_empty(raw, "discountPercentage", "discount_percentage", default=0.0)),
        bureau_id=_optional_str(raw, "bureauId", "bureau_id"),
    )


def normalize_template(raw: Dict[str, Any]) -> ContractTemplate:
    return ContractTemplate(
        id=str(_first_non_empty(raw, "id")),
        name=str(_first_non_empty(raw, "name", default="")),
        contract_type=str(_first_non_empty(raw, "contract_type", "contractType", default="")),
        description=str(_first_non_empty(raw, "description", default="")),
        is_default=bool(raw.get("is_default", raw.get("isDefault", False))),
        template_content=str(_first_non_empty(raw, "template_content", "templateContent", default="")),
        variables=dict(raw.get("variables") or {}),
    )


def normalize_rate_card(raw: Dict[str, Any]) -> RateCard:
    lines = raw.get("rate_card_lines") or raw.get("rateCardLines") or []
    return RateCard(
        id=str(_first_non_empty(raw, "id")),
        name=str(_first_non_empty(raw, "name", default="")),
        bureau_name=str(_first_non_empty(raw, "bureau_name", "bureauName", default="")),
        is_default=bool(raw.get("is_default", raw.get("isDefault", False))),
        lines=[normalize_rate_card_line(line) for line in lines if isinstance(line, dict)],
    )


def normalize_rate_card_line(raw: Dict[str, Any]) -> RateCardLine:
    return RateCardLine(
        id=str(_first_non_empty(raw, "id")),
        job_category=str(_first_non_empty(raw, "job_category", "jobCategory", default="")),
        seniority_level=str(_first_non_empty(raw, "seniority_level", "seniorityLevel", default="")),
        fee_type=str(_first_non_empty(raw, "fee_type", "feeType", default="")),
        placement_fee_percentage=_optional_float(raw, "placement_fee_percentage", "placementFeePercentage"),
        hourly_markup_percentage=_optional_float(raw, "hourly_markup_percentage", "hourlyMarkupPercentage"),
        fixed_fee_amount=_optional_float(raw, "fixed_fee_amount", "fixedFeeAmount"),
        hourly_markup_amount=_optional_float(raw, "hourly_markup_amount", "hourlyMarkupAmount"),
    )


def normalize_msa(raw: Dict[str, Any]) -> MSA:
    status = str(_first_non_empty(raw, "status", default="DRAFT")).upper()
    try:
        parsed_status = MSAStatus(status)
    except ValueError as exc:
        raise IntegrationResponseError(f"Unsupported MSA status '{status}'.", payload=raw) from exc

    return MSA(
        id=str(_first_non_empty(raw, "id")),
        company_id=str(_first_non_empty(raw, "companyId", "company_id", default="")),
        bureau_id=str(_first_non_empty(raw, "bureauId", "bureau_id", default="")),
        msa_number=str(_first_non_empty(raw, "msaNumber", "msa_number", default="")),
        status=parsed_status,
        effective_date=_optional_str(raw, "effectiveDate", "effective_date"),
        expiration_date=_optional_str(raw, "expirationDate", "expiration_date"),
        name=str(_first_non_empty(raw, "name", default="")),
        payment_terms_days=int(_first_non_empty(raw, "paymentTermsDays", "payment_terms_days", default=30)),
        notice_period_days=int(_first_non_empty(raw, "noticePeriodDays", "notice_period_days", default=30)),
        auto_renew=bool(raw.get("autoRenew", raw.get("auto_renew", False))),
        company_signed_at=_optional_str(raw, "companySignedAt", "company_signed_at"),
        company_signed_by=_optional_str(raw, "companySignedBy", "company_signed_by"),
        bureau_signed_at=_optional_str(raw, "bureauSignedAt", "bureau_signed_at"),
        bureau_signed_by=_optional_str(raw, "bureauSignedBy", "bureau_signed_by"),
        company_approved_at=_optional_str(raw, "companyApprovedAt", "company_approved_at"),
        company_approved_by=_optional_str(raw, "companyApprovedBy", "company_approved_by"),
        bureau_approved_at=_optional_str(raw, "bureauApprovedAt", "bureau_approved_at"),
        bureau_approved_by=_optional_str(raw, "bureauApprovedBy", "bureau_approved_by"),
        company_name=_optional_str(raw, "companyName", "company_name"),
        bureau_name=_optional_str(raw, "bureauName", "bureau_name"),
    )


def normalize_duplicate_check(raw: Dict[str, Any]) -> DuplicateCheckResult:
    is_duplicate = bool(raw.get("isDuplicate", raw.get("is_duplicate", False)))
    if not is_duplicate:
        return DuplicateCheckResult(is_duplicate=False)

    dup_raw = raw.get("duplicate")
    if not isinstance(dup_raw, dict):
        raise IntegrationResponseError("Duplicate flagged without a 'duplicate' record.", payload=raw)

    reason = str(_first_non_empty(dup_raw, "matchReason", "match_reason")).upper()
    try:
        match_reason = MatchReason(reason)
    except ValueError as exc:
        raise IntegrationResponseError(f"Unsupported match reason '{reason}'.", payload=raw) from exc

    duplicate = DuplicateWarning(
        candidate_id=str(_first_non_empty(dup_raw, "candidateId", "candidate_id")),
        match_reason=match_reason,
        existing_bureau_id=_optional_str(dup_raw, "existingBureauId", "existing_bureau_id"),
        ownership_expires_at=_optional_datetime(dup_raw, "ownershipExpiresAt", "ownership_expires_at"),
    )

    ownership = None
    own_raw = raw.get("ownership")
    if isinstance(own_raw, dict):
        ownership = CandidateOwnership(
            candidate_id=str(_first_non_empty(own_raw, "candidateId", "candidate_id", default=duplicate.candidate_id)),
            bureau_id=str(_first_non_empty(own_raw, "bureauId", "bureau_id")),
            bureau_name=str(_first_non_empty(own_raw, "bureauName", "bureau_name", default="")),
            submitted_at=_required_datetime(own_raw, "submittedAt", "submitted_at"),
            ownership_expires_at=_required_datetime(own_raw, "ownershipExpiresAt", "ownership_expires_at"),
            fee_protected=bool(own_raw.get("feeProtected", own_raw.get("fee_protected", True))),
        )

    return DuplicateCheckResult(is_duplicate=True, duplicate=duplicate, ownership=ownership)


def normalize_execution(raw: Dict[str, Any]) -> WorkflowExecution:
    steps = []
    for step in raw.get("steps") or []:
        steps.append(
            WorkflowStep(
                id=str(_first_non_empty(step, "id")),
                name=str(_first_non_empty(step, "name", default="")),
                status=_execution_status(step.get("status"), raw),
                started_at=_optional_str(step, "started_at", "startedAt"),
                completed_at=_optional_str(step, "completed_at", "completedAt"),
                output=step.get("output"),
                error=_optional_str(step, "error"),
            )
        )
    duration = _first_non_empty(raw, "duration_seconds", "durationSeconds", default="")
    return WorkflowExecution(
        id=str(_first_non_empty(raw, "id")),
        workflow_id=str(_first_non_empty(raw, "workflow_id", "workflowId", default="")),
        workflow_name=str(_first_non_empty(raw, "workflow_name", "workflowName", default="")),
        status=_execution_status(raw.get("status"), raw),
        started_at=_optional_str(raw, "started_at", "startedAt"),
        completed_at=_optional_str(raw, "completed_at", "completedAt"),
        duration_seconds=float(duration) if duration != "" else None,
        trigger_type=str(_first_non_empty(raw, "trigger_type", "triggerType", default="")),
        trigger_data=dict(raw.get("trigger_data") or raw.get("triggerData") or {}),
        steps=steps,
        error=_optional_str(raw, "error"),
    )


def normalize_notification(raw: Dict[str, Any]) -> ContractNotification:
    return ContractNotification(
        id=str(_first_non_empty(raw, "id")),
        type=str(_first_non_empty(raw, "type", default="")),
        title=str(_first_non_empty(raw, "title", default="")),
        message=str(_first_non_empty(raw, "message", default="")),
        contract_id=_optional_str(raw, "contractId", "contract_id"),
        created_at=_optional_str(raw, "createdAt", "created_at"),
        read=bool(raw.get("read", False)),
    )


def normalize_list(raw: Any, normalizer) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise IntegrationResponseError(f"Expected a list, got {type(raw).__name__}.")
    return [normalizer(item) for item in raw if isinstance(item, dict)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _optional_str(data: Dict[str, Any], *keys: str) -> Optional[str]:
    value = _first_non_empty(data, *keys, default="")
    return str(value) if value != "" else None


def _optional_float(data: Dict[str, Any], *keys: str) -> Optional[float]:
    value = _first_non_empty(data, *keys, default="")
    if value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid number for {keys[0]}: {value!r}", payload=data) from exc


def _optional_datetime(data: Dict[str, Any], *keys: str) -> Optional[datetime]:
    value = _first_non_empty(data, *keys, default="")
    if value == "":
        return None
    return _parse_datetime(value, data)


def _required_datetime(data: Dict[str, Any], *keys: str) -> datetime:
    return _parse_datetime(_first_non_empty(data, *keys), data)


def _parse_datetime(value: Any, data: Dict[str, Any]) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise IntegrationResponseError(f"Invalid datetime: {value!r}", payload=data) from exc


def _execution_status(value: Any, raw: Dict[str, Any]) -> ExecutionStatus:
    try:
        return ExecutionStatus(str(value or "PENDING").upper())
    except ValueError as exc:
        raise IntegrationResponseError(f"Unsupported execution status '{value}'.", payload=raw) from exc


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
