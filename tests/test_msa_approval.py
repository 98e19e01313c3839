from datetime import date

import pytest

from src.integrations.clients.mocks.vms_api import MockVMSApi
from src.integrations.contracts.interfaces import MSA, MSAStatus, Party
from src.integrations.policy.response_wrappers import ApiError
from src.portal.msa_approval import (
    InlineMSAForm,
    MSAApprovalService,
    PendingMSAQuery,
    approval_state,
    can_approve,
    check_active_signatures,
    one_year_after,
    pending_parties,
)
from src.portal.validation import FormValidationError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_pending_query_counts_awaiting_msas(mock_api):
    query = PendingMSAQuery(mock_api)

    await query.refresh()

    assert query.has_pending is True
    assert query.count == 1
    assert query.msas[0].id == "msa-2"
    assert query.is_loading is False


@pytest.mark.asyncio
async def test_pending_query_respects_stale_time(mock_api):
    clock = FakeClock()
    query = PendingMSAQuery(mock_api, stale_time_seconds=120, clock=clock)

    await query.refresh()
    clock.now += 60
    await query.refresh()
    assert mock_api.calls.count("msa_awaiting") == 1

    clock.now += 61
    await query.refresh()
    assert mock_api.calls.count("msa_awaiting") == 2

    await query.refresh(force=True)
    assert mock_api.calls.count("msa_awaiting") == 3


@pytest.mark.asyncio
async def test_approve_invalidates_pending_query(mock_api, toasts):
    query = PendingMSAQuery(mock_api)
    await query.refresh()
    service = MSAApprovalService(mock_api, pending_query=query, notify=toasts.append)

    msa = await service.approve("msa-2")

    assert msa.status == MSAStatus.ACTIVE
    assert msa.company_signed_at and msa.bureau_signed_at
    assert query.is_stale
    await query.refresh()
    assert query.has_pending is False
    assert toasts[-1]["title"] == "MSA Approved"


@pytest.mark.asyncio
async def test_reject_requires_reason_before_any_request(mock_api):
    service = MSAApprovalService(mock_api)

    with pytest.raises(FormValidationError) as exc:
        await service.reject("msa-2", "   ")

    assert "reason" in exc.value.field_errors
    assert "msa_reject:msa-2" not in mock_api.calls


@pytest.mark.asyncio
async def test_reject_terminates_msa(mock_api, toasts):
    query = PendingMSAQuery(mock_api)
    service = MSAApprovalService(mock_api, pending_query=query, notify=toasts.append)

    msa = await service.reject("msa-2", "Tarieven te hoog")

    assert msa.status == MSAStatus.TERMINATED
    assert toasts[-1]["title"] == "MSA Rejected"


@pytest.mark.asyncio
async def test_approve_unknown_msa_toasts_and_raises(mock_api, toasts):
    service = MSAApprovalService(mock_api, notify=toasts.append)

    with pytest.raises(ApiError):
        await service.approve("msa-404")

    assert toasts[-1]["title"] == "Approval Failed"
    assert toasts[-1]["description"] == "MSA not found"


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_list(mock_api):
    query = PendingMSAQuery(mock_api)
    await query.refresh()

    async def broken():
        raise ApiError("down", status=503)

    mock_api.list_msas_awaiting_approval = broken
    await query.refresh(force=True)

    assert query.count == 1
    assert isinstance(query.error, ApiError)


def _msa(**kwargs) -> MSA:
    base = dict(id="m", company_id="c", bureau_id="b", msa_number="MSA-1", status=MSAStatus.PENDING_APPROVAL)
    base.update(kwargs)
    return MSA(**base)


def test_signature_helpers():
    msa = _msa(bureau_signed_at="2025-01-01T00:00:00Z")

    assert approval_state(msa) == {"BEDRIJF": False, "BUREAU": True}
    assert pending_parties(msa) == [Party.COMPANY]
    assert can_approve(msa, Party.COMPANY) is True
    assert can_approve(msa, Party.BUREAU) is False
    assert can_approve(_msa(status=MSAStatus.TERMINATED), Party.COMPANY) is False


def test_active_without_signatures_is_reported(caplog):
    assert check_active_signatures(_msa(status=MSAStatus.ACTIVE, company_signed_at="x")) is False
    assert "missing a signature" in caplog.text
    assert check_active_signatures(_msa(status=MSAStatus.ACTIVE, company_signed_at="x", bureau_signed_at="y")) is True


def test_inline_form_defaults():
    form = InlineMSAForm(MockVMSApi(), "company-1", "bureau-2")

    defaults = form.defaults(today=date(2025, 5, 10))

    assert defaults == {"effectiveDate": "2025-05-10", "expirationDate": "2026-05-10", "paymentTermsDays": 30}
    assert one_year_after(date(2024, 2, 29)) == date(2025, 2, 28)


def test_inline_form_validation():
    form = InlineMSAForm(MockVMSApi(), "company-1", "bureau-2")

    with pytest.raises(FormValidationError) as exc:
        form.build_payload({"effectiveDate": "2025-05-10", "expirationDate": "2025-05-10", "paymentTermsDays": 0})

    assert exc.value.field_errors["expirationDate"] == "End date must be after start date"
    assert exc.value.field_errors["paymentTermsDays"] == "Payment terms must be at least 1 day"


@pytest.mark.asyncio
async def test_inline_form_creates_msa(mock_api, toasts):
    created = []
    form = InlineMSAForm(mock_api, "company-1", "bureau-2", "Noord Interim", notify=toasts.append, on_success=created.append)

    msa = await form.submit({"contractValue": "250000"})

    assert msa.status == MSAStatus.PENDING_APPROVAL
    assert msa.notice_period_days == 30
    assert msa.auto_renew is False
    assert msa.payment_terms_days == 30
    assert created == [msa]
    assert toasts[-1]["title"] == "MSA Created"
