"""
MSA approval - pending list, approve/reject, inline creation

The server owns MSA state. Approve and reject are sent without re-reading the
MSA first; the server decides, and the pending list is invalidated afterwards.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from src.error_handler import ErrorHandler, Notifier, log_notifier
from src.integrations.contracts.interfaces import MSA, MSAStatus, Party, VMSApi
from src.portal.polling import Poller
from src.portal.validation import (
    FormValidationError,
    add_error,
    parse_int,
    parse_number,
    raise_if_errors,
    validate_date_iso,
)

logger = logging.getLogger(__name__)

REFETCH_INTERVAL_SECONDS = 5 * 60
STALE_TIME_SECONDS = 2 * 60


# ---------------------------------------------------------------------------
# Signature helpers
# ---------------------------------------------------------------------------

def party_has_acted(msa: MSA, party: Party) -> bool:
    if party == Party.COMPANY:
        return bool(msa.company_approved_at or msa.company_signed_at)
    return bool(msa.bureau_approved_at or msa.bureau_signed_at)


def approval_state(msa: MSA) -> Dict[str, bool]:
    return {party.value: party_has_acted(msa, party) for party in Party}


def pending_parties(msa: MSA) -> List[Party]:
    return [party for party in Party if not party_has_acted(msa, party)]


def can_approve(msa: MSA, party: Party) -> bool:
    """A party may approve only while its own approval is still missing."""
    if msa.status in (MSAStatus.TERMINATED, MSAStatus.EXPIRED):
        return False
    return not party_has_acted(msa, party)


def check_active_signatures(msa: MSA) -> bool:
    """ACTIVE requires both signatures. Reports a server snapshot that breaks this; never repairs it."""
    if msa.status == MSAStatus.ACTIVE and not (msa.company_signed_at and msa.bureau_signed_at):
        logger.warning("MSA %s is ACTIVE but missing a signature (company=%s bureau=%s)",
                       msa.id, msa.company_signed_at, msa.bureau_signed_at)
        return False
    return True


# ---------------------------------------------------------------------------
# Pending list
# ---------------------------------------------------------------------------

class PendingMSAQuery:
    """Cached GET /api/msa/awaiting-approval with refetch interval and stale time."""

    def __init__(
        self,
        api: VMSApi,
        refetch_interval_seconds: float = REFETCH_INTERVAL_SECONDS,
        stale_time_seconds: float = STALE_TIME_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.refetch_interval_seconds = refetch_interval_seconds
        self.stale_time_seconds = stale_time_seconds
        self._clock = clock
        self.msas: List[MSA] = []
        self.error: Optional[Exception] = None
        self.is_loading = False
        self._fetched_at: Optional[float] = None
        self._poller: Optional[Poller] = None

    @property
    def has_pending(self) -> bool:
        return len(self.msas) > 0

    @property
    def count(self) -> int:
        return len(self.msas)

    @property
    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at >= self.stale_time_seconds

    async def refresh(self, force: bool = False) -> List[MSA]:
        if not force and not self.is_stale:
            return self.msas
        self.is_loading = True
        try:
            msas = await self.api.list_msas_awaiting_approval()
        except Exception as e:
            logger.error("Error fetching MSAs awaiting approval: %s", e)
            self.error = e
            return self.msas
        finally:
            self.is_loading = False

        for msa in msas:
            check_active_signatures(msa)
        self.msas = msas
        self.error = None
        self._fetched_at = self._clock()
        return self.msas

    def invalidate(self) -> None:
        self._fetched_at = None

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def start(self) -> None:
        if self._poller is None:
            self._poller = Poller("msa-awaiting-approval", self.refetch_interval_seconds, self._tick)
        self._poller.start()

    async def stop(self) -> None:
        if self._poller is not None:
            await self._poller.stop()

    async def _tick(self) -> None:
        await self.refresh(force=True)


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------

class MSAApprovalService:
    def __init__(
        self,
        api: VMSApi,
        pending_query: Optional[PendingMSAQuery] = None,
        party: Party = Party.COMPANY,
        notify: Optional[Notifier] = None,
    ):
        self.api = api
        self.pending_query = pending_query
        self.party = party
        self.notify = notify or log_notifier
        self.error_handler = ErrorHandler()

    async def get_msa(self, msa_id: str) -> MSA:
        if not msa_id:
            raise FormValidationError({"msa_id": "MSA ID is required"}, message="MSA ID is required")
        msa = await self.api.get_msa(msa_id)
        check_active_signatures(msa)
        return msa

    async def approve(self, msa_id: str, notes: Optional[str] = None) -> MSA:
        try:
            msa = await self.api.approve_msa(msa_id, notes)
        except Exception as e:
            self.error_handler.handle_exception(e, self.notify, title="Approval Failed", fallback_message="Failed to approve MSA")
            raise

        logger.info("MSA approved id=%s party=%s status=%s", msa_id, self.party.value, msa.status.value)
        check_active_signatures(msa)
        self._invalidate()
        self.notify({"title": "MSA Approved", "description": f"Successfully approved {msa.name}", "variant": "default"})
        return msa

    async def reject(self, msa_id: str, reason: str) -> MSA:
        if not (reason or "").strip():
            raise FormValidationError(
                {"reason": "Please provide a reason for rejecting this MSA"},
                message="Rejection Reason Required",
            )
        try:
            msa = await self.api.reject_msa(msa_id, reason.strip())
        except Exception as e:
            self.error_handler.handle_exception(e, self.notify, title="Rejection Failed", fallback_message="Failed to reject MSA")
            raise

        logger.info("MSA rejected id=%s party=%s", msa_id, self.party.value)
        self._invalidate()
        self.notify({"title": "MSA Rejected", "description": f"Successfully rejected {msa.name}", "variant": "default"})
        return msa

    def _invalidate(self) -> None:
        if self.pending_query is not None:
            self.pending_query.invalidate()


# ---------------------------------------------------------------------------
# Inline creation (offered when a hire is blocked by NO_ACTIVE_MSA)
# ---------------------------------------------------------------------------

def one_year_after(start: date) -> date:
    try:
        return start.replace(year=start.year + 1)
    except ValueError:  # 29 February
        return start.replace(year=start.year + 1, day=28)


class InlineMSAForm:
    DEFAULT_PAYMENT_TERMS_DAYS = 30
    NOTICE_PERIOD_DAYS = 30

    def __init__(
        self,
        api: VMSApi,
        company_id: str,
        bureau_id: str,
        bureau_name: str = "",
        notify: Optional[Notifier] = None,
        on_success: Optional[Callable[[MSA], None]] = None,
    ):
        self.api = api
        self.company_id = company_id
        self.bureau_id = bureau_id
        self.bureau_name = bureau_name
        self.notify = notify or log_notifier
        self.on_success = on_success
        self.error_handler = ErrorHandler()
        self.loading = False

    def defaults(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        return {
            "effectiveDate": today.isoformat(),
            "expirationDate": one_year_after(today).isoformat(),
            "paymentTermsDays": self.DEFAULT_PAYMENT_TERMS_DAYS,
        }

    def build_payload(self, form_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = {**self.defaults(), **(form_data or {})}
        errors: Dict[str, str] = {}

        effective = validate_date_iso(data.get("effectiveDate"), errors, "effectiveDate")
        expiration = validate_date_iso(data.get("expirationDate"), errors, "expirationDate")
        payment_terms = parse_int(data, "paymentTermsDays", errors, required=True)
        if "paymentTermsDays" not in errors and payment_terms < 1:
            add_error(errors, "paymentTermsDays", "Payment terms must be at least 1 day")
        contract_value = parse_number(data, "contractValue", errors)
        if effective and expiration and expiration <= effective:
            add_error(errors, "expirationDate", "End date must be after start date")

        raise_if_errors(errors)

        payload: Dict[str, Any] = {
            "companyId": self.company_id,
            "bureauId": self.bureau_id,
            "effectiveDate": effective.isoformat(),
            "expirationDate": expiration.isoformat(),
            "paymentTermsDays": payment_terms,
            "noticePeriodDays": self.NOTICE_PERIOD_DAYS,
            "autoRenew": False,
        }
        if contract_value is not None:
            payload["contractValue"] = contract_value
        return payload

    async def submit(self, form_data: Optional[Dict[str, Any]] = None) -> MSA:
        payload = self.build_payload(form_data)
        self.loading = True
        try:
            msa = await self.api.create_msa(payload)
        except Exception as e:
            self.error_handler.handle_exception(e, self.notify, fallback_message="Failed to create MSA")
            raise
        finally:
            self.loading = False

        logger.info("MSA created id=%s company_id=%s bureau_id=%s", msa.id, self.company_id, self.bureau_id)
        self.notify({
            "title": "MSA Created",
            "description": "MSA created successfully. You can now proceed with hiring.",
            "variant": "default",
        })
        if self.on_success:
            self.on_success(msa)
        return msa
