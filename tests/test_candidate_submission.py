import asyncio
from datetime import timedelta

import pytest

from src.error_handler import DuplicateCandidateError
from src.integrations.clients.mocks.vms_api import MockVMSApi
from src.integrations.contracts.interfaces import DuplicateCheckResult, MatchReason, utcnow
from src.integrations.policy.response_wrappers import ApiError
from src.portal.candidate_submission import CandidateSubmissionForm, split_skills, validate_candidate
from src.portal.validation import FormValidationError

OWNED_EMAIL = "jan.jansen@example.com"

VALID_CANDIDATE = {
    "email": "nieuw@example.com",
    "firstName": "Eva",
    "lastName": "de Vries",
    "skills": "Python, SQL, ,Go",
    "linkedinUrl": "https://linkedin.com/in/eva",
    "hourlyRate": "85",
}


def _form(api, **kwargs) -> CandidateSubmissionForm:
    kwargs.setdefault("debounce_ms", 10)
    return CandidateSubmissionForm(api, job_id="job-1", distribution_id="dist-1", **kwargs)


@pytest.mark.asyncio
async def test_duplicate_warning_blocks_submit_until_cleared(mock_api):
    form = _form(mock_api)

    form.change_email(OWNED_EMAIL)
    await form.settle()

    assert form.duplicate_warning is not None
    assert form.duplicate_warning.match_reason == MatchReason.EMAIL
    assert form.ownership.bureau_id == "bureau-1"
    assert form.can_submit is False

    form.change_email("someone.else@example.com")
    await form.settle()

    assert form.duplicate_warning is None
    assert form.ownership is None
    assert form.can_submit is True


@pytest.mark.asyncio
async def test_invalid_email_clears_warning_without_lookup(mock_api):
    form = _form(mock_api)
    form.change_email(OWNED_EMAIL)
    await form.settle()
    lookups = len(mock_api.calls)

    form.change_email("not-an-email")
    await form.settle()

    assert form.duplicate_warning is None
    assert len(mock_api.calls) == lookups


@pytest.mark.asyncio
async def test_debounce_only_checks_last_email(mock_api):
    form = _form(mock_api, debounce_ms=50)

    form.change_email("a@example.com")
    form.change_email("ab@example.com")
    form.change_email(OWNED_EMAIL)
    await form.settle()

    checks = [c for c in mock_api.calls if c.startswith("check_duplicate:")]
    assert checks == [f"check_duplicate:{OWNED_EMAIL}"]


class _SlowFirstApi(MockVMSApi):
    """The first lookup answers after the second one."""

    def __init__(self):
        super().__init__()
        self.release_first = asyncio.Event()
        self._first = True

    async def check_duplicate_candidate(self, email):
        if self._first:
            self._first = False
            await self.release_first.wait()
        return await super().check_duplicate_candidate(email)


@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    api = _SlowFirstApi()
    form = _form(api, debounce_ms=0)

    form.change_email(OWNED_EMAIL)
    await asyncio.sleep(0.01)  # first lookup now in flight
    form.change_email("fresh@example.com")
    await asyncio.sleep(0.01)  # second lookup done: no duplicate
    api.release_first.set()
    await form.settle()

    assert form.duplicate_warning is None


class _FailingLookupApi(MockVMSApi):
    async def check_duplicate_candidate(self, email):
        raise ApiError("lookup failed", status=500)


@pytest.mark.asyncio
async def test_failed_lookup_leaves_state_unchanged():
    form = _form(_FailingLookupApi())
    form.duplicate_warning = "sentinel"

    await form.check_duplicate("x@example.com")

    assert form.duplicate_warning == "sentinel"
    assert form.checking_duplicate is False


@pytest.mark.asyncio
async def test_submit_raises_while_duplicate_warning_set(mock_api):
    form = _form(mock_api)
    await form.check_duplicate(OWNED_EMAIL)

    with pytest.raises(DuplicateCandidateError) as exc:
        await form.submit({**VALID_CANDIDATE, "email": OWNED_EMAIL})

    assert exc.value.ownership.bureau_id == "bureau-1"
    assert "submit_candidate" not in mock_api.calls


@pytest.mark.asyncio
async def test_submit_sends_payload_and_resets(mock_api, toasts):
    done = []
    form = _form(mock_api, bureau_id="bureau-2", notify=toasts.append, on_success=lambda: done.append(True))
    form.change_email(VALID_CANDIDATE["email"])
    await form.settle()

    result = await form.submit(VALID_CANDIDATE)

    record = mock_api.candidates[result["id"]]
    assert record["skills"] == ["Python", "SQL", "Go"]
    assert record["jobId"] == "job-1"
    assert record["distributionId"] == "dist-1"
    assert record["hourlyRate"] == 85
    assert form.email == ""
    assert done == [True]
    assert toasts[-1]["description"] == "Candidate submitted successfully"


@pytest.mark.asyncio
async def test_expired_ownership_is_not_a_duplicate(mock_api, toasts):
    mock_api.ownerships[0].ownership_expires_at = utcnow() - timedelta(days=1)
    form = _form(mock_api, bureau_id="bureau-2", notify=toasts.append)

    form.change_email(OWNED_EMAIL)
    await form.settle()

    assert form.duplicate_warning is None
    assert form.can_submit is True

    await form.submit({**VALID_CANDIDATE, "email": OWNED_EMAIL})
    assert [o.bureau_id for o in mock_api.ownerships if o.is_active()] == ["bureau-2"]


@pytest.mark.asyncio
async def test_upstream_duplicate_rejection_is_surfaced(toasts):
    class _RaceApi(MockVMSApi):
        async def check_duplicate_candidate(self, email):
            return DuplicateCheckResult(is_duplicate=False)

    form = _form(_RaceApi(), notify=toasts.append)

    with pytest.raises(ApiError) as exc:
        await form.submit({**VALID_CANDIDATE, "email": OWNED_EMAIL})

    assert exc.value.status == 409
    assert exc.value.code == "DUPLICATE_CANDIDATE"
    assert toasts[-1]["variant"] == "destructive"


@pytest.mark.asyncio
async def test_close_cancels_pending_lookup(mock_api):
    form = _form(mock_api, debounce_ms=20)

    form.change_email(OWNED_EMAIL)
    form.close()
    await asyncio.sleep(0.05)

    assert not any(c.startswith("check_duplicate:") for c in mock_api.calls)
    assert form.duplicate_warning is None


def test_validate_candidate_reports_all_field_errors():
    with pytest.raises(FormValidationError) as exc:
        validate_candidate({
            "email": "bad",
            "firstName": "E",
            "lastName": "",
            "cvUrl": "ftp://cv",
            "salaryExpectation": "-1",
        })

    errors = exc.value.field_errors
    assert errors["email"] == "Invalid email address"
    assert errors["firstName"] == "First name must be at least 2 characters"
    assert errors["lastName"] == "Last name is required"
    assert errors["cvUrl"] == "Invalid CV URL"
    assert "salaryExpectation" in errors


def test_split_skills():
    assert split_skills("Python, SQL , ,Go") == ["Python", "SQL", "Go"]
    assert split_skills("") == []
    assert split_skills(["a", " b "]) == ["a", "b"]
