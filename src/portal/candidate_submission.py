"""
Candidate submission - bureau submits a candidate to a distributed job

Duplicate detection runs on email changes with a trailing debounce. Every
lookup carries a generation token; a response whose token is no longer the
latest is dropped, so a slow lookup for an old email never overwrites the
warning for the current one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from src.error_handler import DuplicateCandidateError, ErrorHandler, Notifier, log_notifier
from src.integrations.contracts.interfaces import CandidateOwnership, DuplicateWarning, VMSApi
from src.portal.validation import (
    is_valid_email,
    optional_str,
    parse_number,
    raise_if_errors,
    require_str,
    validate_email,
    validate_url,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500

OPTIONAL_TEXT_FIELDS = ("phone", "experience", "availability", "notes")


def split_skills(raw: Any) -> List[str]:
    """'Python, SQL , ,Go' -> ['Python', 'SQL', 'Go']"""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(s).strip() for s in raw if str(s).strip()]
    return [s.strip() for s in str(raw).split(",") if s.strip()]


def validate_candidate(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a candidate form and return the cleaned payload (without job ids)."""
    errors: Dict[str, str] = {}

    email = validate_email(form_data.get("email"), errors)
    first_name = require_str(form_data, "firstName", errors, label="First name", min_length=2)
    last_name = require_str(form_data, "lastName", errors, label="Last name", min_length=2)
    linkedin_url = validate_url(form_data.get("linkedinUrl"), errors, "linkedinUrl", label="LinkedIn URL")
    cv_url = validate_url(form_data.get("cvUrl"), errors, "cvUrl", label="CV URL")
    hourly_rate = parse_number(form_data, "hourlyRate", errors, positive=True)
    salary_expectation = parse_number(form_data, "salaryExpectation", errors, positive=True)

    raise_if_errors(errors)

    payload: Dict[str, Any] = {
        "email": email,
        "firstName": first_name,
        "lastName": last_name,
        "linkedinUrl": linkedin_url,
        "cvUrl": cv_url,
        "skills": split_skills(form_data.get("skills")),
    }
    for name in OPTIONAL_TEXT_FIELDS:
        payload[name] = optional_str(form_data, name)
    if hourly_rate is not None:
        payload["hourlyRate"] = hourly_rate
    if salary_expectation is not None:
        payload["salaryExpectation"] = salary_expectation
    return payload


class CandidateSubmissionForm:
    def __init__(
        self,
        api: VMSApi,
        job_id: str,
        distribution_id: str,
        bureau_id: Optional[str] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        notify: Optional[Notifier] = None,
        on_success: Optional[Callable[[], None]] = None,
    ):
        self.api = api
        self.job_id = job_id
        self.distribution_id = distribution_id
        self.bureau_id = bureau_id
        self.debounce_ms = debounce_ms
        self.notify = notify or log_notifier
        self.on_success = on_success
        self.error_handler = ErrorHandler()

        self.email = ""
        self.duplicate_warning: Optional[DuplicateWarning] = None
        self.ownership: Optional[CandidateOwnership] = None
        self.checking_duplicate = False
        self.loading = False

        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def can_submit(self) -> bool:
        return not self.loading and self.duplicate_warning is None

    # --- Duplicate detection -------------------------------------------------

    def change_email(self, email: str) -> None:
        """Record an email edit and (re)schedule the debounced duplicate lookup."""
        self.email = email or ""
        self._cancel_timer()
        self._generation += 1

        if not is_valid_email(self.email):
            self._clear_warning()
            return

        token = self._generation
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_ms / 1000, self._fire, self.email, token)

    def _fire(self, email: str, token: int) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.check_duplicate(email, token))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def check_duplicate(self, email: str, token: Optional[int] = None) -> None:
        """Run one lookup now. Without a token it supersedes any pending lookup."""
        if token is None:
            self._cancel_timer()
            self._generation += 1
            token = self._generation

        self.checking_duplicate = True
        try:
            result = await self.api.check_duplicate_candidate(email)
        except Exception as e:
            logger.error("Error checking duplicate: %s", e)
            return
        finally:
            if token == self._generation:
                self.checking_duplicate = False

        if token != self._generation:
            logger.debug("Dropping stale duplicate check for %s (token %s < %s)", email, token, self._generation)
            return

        if result.is_duplicate:
            self.duplicate_warning = result.duplicate
            if result.ownership is not None:
                self.ownership = result.ownership
            logger.info("Duplicate candidate detected candidate_id=%s reason=%s",
                        result.duplicate.candidate_id if result.duplicate else None,
                        result.duplicate.match_reason.value if result.duplicate else None)
        else:
            self._clear_warning()

    async def settle(self) -> None:
        """Wait until no lookup is scheduled or in flight."""
        while self._timer is not None or self._inflight:
            if self._inflight:
                await asyncio.gather(*list(self._inflight), return_exceptions=True)
            else:
                await asyncio.sleep(self.debounce_ms / 4000)

    def _clear_warning(self) -> None:
        self.duplicate_warning = None
        self.ownership = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # --- Submission ----------------------------------------------------------

    async def submit(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        if self.duplicate_warning is not None:
            raise DuplicateCandidateError(warning=self.duplicate_warning, ownership=self.ownership)

        payload = validate_candidate(form_data)
        payload["jobId"] = self.job_id
        payload["distributionId"] = self.distribution_id
        if self.bureau_id:
            payload["bureauId"] = self.bureau_id

        self.loading = True
        try:
            result = await self.api.submit_candidate(payload)
        except Exception as e:
            self.error_handler.handle_exception(e, self.notify, fallback_message="Failed to submit candidate")
            raise
        finally:
            self.loading = False

        logger.info("Candidate submitted job_id=%s distribution_id=%s", self.job_id, self.distribution_id)
        self.notify({"title": "Success", "description": "Candidate submitted successfully", "variant": "default"})
        self.reset()
        if self.on_success:
            self.on_success()
        return result

    def reset(self) -> None:
        self._cancel_timer()
        self._generation += 1
        self.email = ""
        self.checking_duplicate = False
        self._clear_warning()

    def close(self) -> None:
        """Unmount: drop the pending timer; in-flight lookups become stale."""
        self._cancel_timer()
        self._generation += 1
