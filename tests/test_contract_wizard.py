from datetime import date

import pytest

from src.integrations.clients.mocks.vms_api import MockVMSApi
from src.integrations.contracts.interfaces import ContractType
from src.integrations.policy.response_wrappers import ApiError
from src.portal.contract_wizard import ContractDraft, ContractWizard, match_rate_card_line
from src.portal.validation import FormValidationError


async def _wizard(api, **kwargs) -> ContractWizard:
    wizard = ContractWizard(api, bureau_id="bureau-1", **kwargs)
    await wizard.start()
    return wizard


@pytest.mark.asyncio
async def test_default_template_selected_after_fetch(mock_api):
    wizard = await _wizard(mock_api)

    assert wizard.draft.template_id == "tpl-vast-default"
    assert {t.id for t in wizard.templates} == {"tpl-vast-default", "tpl-vast-exec"}


@pytest.mark.asyncio
async def test_navigation_clamps_at_bounds(mock_api):
    wizard = await _wizard(mock_api)

    assert wizard.back() == 0
    for _ in range(10):
        wizard.next()
    assert wizard.current_step == 4
    assert wizard.step_name == "review"
    assert wizard.next() == 4
    assert wizard.back() == 3


@pytest.mark.asyncio
async def test_changing_type_refetches_templates(mock_api):
    wizard = await _wizard(mock_api)

    await wizard.set_contract_type("INTERIM")
    assert wizard.draft.template_id == "tpl-interim"

    await wizard.set_contract_type(ContractType.UITZENDEN)
    assert wizard.draft.template_id == ""
    assert [t.id for t in wizard.templates] == ["tpl-uitzenden"]
    assert "templates:UITZENDEN" in mock_api.calls


@pytest.mark.asyncio
async def test_parties_fetch_active_msa_and_rate_cards(mock_api):
    wizard = ContractWizard(mock_api)
    await wizard.start()
    assert wizard.draft.msa_id == ""
    assert wizard.rate_cards == []

    await wizard.set_parties(company_id="company-1", bureau_id="bureau-1")

    assert wizard.draft.msa_id == "msa-1"
    assert wizard.draft.rate_card_id == "rc-1"
    assert "msa_active:company-1:bureau-1" in mock_api.calls


@pytest.mark.asyncio
async def test_parties_without_active_msa_leave_msa_empty(mock_api):
    wizard = await _wizard(mock_api)

    await wizard.set_parties(company_id="company-1", bureau_id="bureau-2")

    assert wizard.draft.msa_id == ""
    assert wizard.rate_cards == []


@pytest.mark.asyncio
async def test_terms_out_of_range_are_rejected(mock_api):
    wizard = await _wizard(mock_api)

    with pytest.raises(FormValidationError) as exc:
        wizard.set_terms({"probation_period": 7, "vacation_days": 19, "working_hours": 40})

    assert set(exc.value.field_errors) == {"probation_period", "vacation_days"}
    assert wizard.draft.probation_period == 1
    assert wizard.draft.vacation_days == 25


@pytest.mark.asyncio
async def test_terms_accept_bounds_and_do_not_check_end_after_start(mock_api):
    wizard = await _wizard(mock_api)
    await wizard.set_contract_type("INTERIM")

    wizard.set_terms({
        "start_date": "2025-03-01",
        "end_date": "2025-02-01",
        "probation_period": 0,
        "notice_period": 6,
        "vacation_days": 40,
        "working_hours": 8,
    })

    assert wizard.draft.start_date == date(2025, 3, 1)
    assert wizard.draft.end_date == date(2025, 2, 1)
    assert wizard.draft.working_hours == 8


@pytest.mark.asyncio
async def test_end_date_dropped_for_permanent_contracts(mock_api):
    wizard = await _wizard(mock_api)

    wizard.set_terms({"start_date": "2025-03-01", "end_date": "2026-03-01"})

    assert wizard.draft.end_date is None


@pytest.mark.asyncio
async def test_bureau_fee_from_rate_card_line(mock_api):
    wizard = await _wizard(mock_api)

    wizard.set_rates({"salary": 60000})
    assert wizard.draft.bureau_fee_percentage == 20
    assert wizard.draft.bureau_fee_amount == 12000

    wizard.set_rates({"job_category": "IT", "seniority_level": "SENIOR"})
    assert wizard.draft.bureau_fee_percentage == 25
    assert wizard.draft.bureau_fee_amount == 15000


@pytest.mark.asyncio
async def test_bureau_fee_uses_hourly_markup_for_interim(mock_api):
    wizard = await _wizard(mock_api)
    await wizard.set_contract_type("INTERIM")

    wizard.set_rates({"hourly_rate": 75})

    assert wizard.draft.bureau_fee_percentage == 18
    assert wizard.draft.bureau_fee_amount == 13.5


def test_rate_card_line_falls_back_to_first(mock_api):
    card = mock_api.rate_cards["bureau-1"][0]

    assert match_rate_card_line(card).id == "rcl-1"
    assert match_rate_card_line(card, "FINANCE", "JUNIOR").id == "rcl-1"
    assert match_rate_card_line(card, "IT", "SENIOR").id == "rcl-2"


@pytest.mark.asyncio
async def test_submit_builds_payload_and_returns_redirect(mock_api, toasts):
    wizard = ContractWizard(mock_api, application_id="app-1", job_id="job-1", candidate_id="cand-9", notify=toasts.append)
    await wizard.start()
    await wizard.set_parties(company_id="company-1", bureau_id="bureau-1")
    wizard.set_terms({"start_date": "2025-04-01"})
    wizard.set_rates({"salary": 60000, "hourly_rate": 50})
    for _ in range(4):
        wizard.next()
    wizard.set_review(notes=" Start via detachering ", requires_approval=True)

    redirect = await wizard.submit()

    contract = mock_api.contracts[wizard.contract_id]
    assert redirect == f"/contracts/{wizard.contract_id}"
    assert contract["startDate"] == "2025-04-01"
    assert contract["salary"] == 60000
    assert "hourlyRate" not in contract
    assert "endDate" not in contract
    assert contract["templateId"] == "tpl-vast-default"
    assert contract["msaId"] == "msa-1"
    assert contract["notes"] == "Start via detachering"
    assert contract["requiresApproval"] is True
    assert toasts[-1]["title"] == "Success"


@pytest.mark.asyncio
async def test_submit_is_refused_before_review_step(mock_api):
    wizard = await _wizard(mock_api)
    wizard.next()

    with pytest.raises(FormValidationError) as exc:
        await wizard.submit()

    assert "step" in exc.value.field_errors
    assert wizard.contract_id is None
    assert mock_api.contracts == {}


@pytest.mark.asyncio
async def test_review_carries_notes_and_approval_flag(mock_api):
    wizard = await _wizard(mock_api)

    assert wizard.review()["requires_approval"] is False
    wizard.set_review(notes="Graag snel", requires_approval=True)
    wizard.set_review(notes=None)

    summary = wizard.review()
    assert summary["notes"] == "Graag snel"
    assert summary["requires_approval"] is True
    assert ContractWizard.from_state(mock_api, wizard.to_state()).draft.requires_approval is True


@pytest.mark.asyncio
async def test_payload_for_interim_without_template(mock_api):
    wizard = await _wizard(mock_api)
    await wizard.set_contract_type("INTERIM", use_template=False)
    wizard.set_terms({"start_date": "2025-04-01", "end_date": "2025-10-01"})
    wizard.set_rates({"salary": 60000, "hourly_rate": 80})

    payload = wizard.build_payload()

    assert "templateId" not in payload
    assert "salary" not in payload
    assert payload["hourlyRate"] == 80
    assert payload["endDate"] == "2025-10-01"


class _RejectingApi(MockVMSApi):
    async def create_contract(self, payload):
        raise ApiError("Kandidaat heeft al een actief contract", code="CONFLICT", status=409)


@pytest.mark.asyncio
async def test_failed_submit_keeps_wizard_on_review(toasts):
    wizard = await _wizard(_RejectingApi(), notify=toasts.append)
    for _ in range(4):
        wizard.next()

    with pytest.raises(ApiError):
        await wizard.submit()

    assert wizard.current_step == 4
    assert wizard.contract_id is None
    assert wizard.loading is False
    assert toasts[-1]["description"] == "Kandidaat heeft al een actief contract"
    assert toasts[-1]["variant"] == "destructive"


class _BrokenTemplatesApi(MockVMSApi):
    async def list_contract_templates(self, contract_type):
        raise ApiError("templates down", status=503)


@pytest.mark.asyncio
async def test_section_fetch_failures_are_independent():
    wizard = await _wizard(_BrokenTemplatesApi())

    assert wizard.templates == []
    assert wizard.draft.template_id == ""
    assert wizard.draft.rate_card_id == "rc-1"


@pytest.mark.asyncio
async def test_state_round_trip(mock_api):
    wizard = await _wizard(mock_api)
    await wizard.set_parties(company_id="company-1", bureau_id="bureau-1")
    wizard.set_rates({"salary": 50000})
    wizard.next()
    wizard.next()

    restored = ContractWizard.from_state(mock_api, wizard.to_state())

    assert restored.current_step == 2
    assert restored.draft == wizard.draft
    assert restored.msas[0].status == wizard.msas[0].status
    assert restored.rate_cards[0].lines[1].seniority_level == "SENIOR"
    assert restored.build_payload() == wizard.build_payload()


def test_draft_defaults():
    draft = ContractDraft()

    assert draft.contract_type == ContractType.VAST
    assert draft.use_template is True
    assert (draft.probation_period, draft.notice_period, draft.vacation_days, draft.working_hours) == (1, 1, 25, 40)
    assert draft.start_date == date.today()
