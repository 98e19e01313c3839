"""
Real VMS HTTP Client.

Purpose:
- Talks to the upstream VMS REST API (contracts, MSA, candidates, fees, workflows)
- Unwraps the `{success, data, error, errors, meta}` envelope
- Normalizes entities into our contract dataclasses

Usage:
- Wired in src/api/main.py when VMS_API_URL is configured
- Called by portal components through the VMSApi interface

Important:
- Keep this client as the ONLY place where VMS HTTP calls are made.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

import httpx

from src.integrations.contracts.interfaces import (
    MSA,
    ContractNotification,
    ContractTemplate,
    DuplicateCheckResult,
    FeeStructure,
    RateCard,
    VMSApi,
    WorkflowExecution,
)
from src.integrations.policy.response_wrappers import (
    ApiError,
    IntegrationResponseError,
    error_from_envelope,
    normalize_duplicate_check,
    normalize_execution,
    normalize_fee_structure,
    normalize_list,
    normalize_msa,
    normalize_notification,
    normalize_rate_card,
    normalize_template,
    parse_envelope,
)

logger = logging.getLogger(__name__)

# A 401 on these endpoints is an expected "not logged in" answer, not an expired session.
PUBLIC_ENDPOINTS = (
    "/api/auth/me",
    "/api/v2/jobs",
    "/api/vms/bureau-rankings",
)


def is_public_endpoint(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PUBLIC_ENDPOINTS)


class VMSApiClient(VMSApi):
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("VMS_API_URL", "")).rstrip("/")
        self.token = token if token is not None else (os.getenv("VMS_API_TOKEN") or None)
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._on_unauthorized = on_unauthorized
        if not self.base_url:
            logger.warning("VMS API URL is not set; requests will use relative paths.")

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #
    def set_auth_token(self, token: Optional[str]) -> None:
        self.token = token or None

    def _headers(self, method: str) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        # No Content-Type on GET/HEAD; the upstream rejects preflight-looking reads.
        if method.upper() not in ("GET", "HEAD"):
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform a request and return the envelope's `data`."""
        url = path if path.startswith("http") else f"{self.base_url}{path if path.startswith('/') else '/' + path}"
        logger.debug("VMS %s %s params=%s", method, url, params)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=self._headers(method))
        except httpx.RequestError as e:
            logger.error("Request error connecting to VMS API: %s", e)
            raise ApiError(str(e) or "Unknown error occurred", status=0) from e

        try:
            envelope = parse_envelope(response.json() if response.content else {})
        except (ValueError, IntegrationResponseError) as e:
            if response.is_success:
                raise ApiError(f"Invalid response from VMS API: {e}", status=response.status_code) from e
            raise ApiError("Request failed", status=response.status_code) from e

        if response.is_success:
            return envelope.data

        error = error_from_envelope(envelope, response.status_code)
        if response.status_code == 401:
            if not is_public_endpoint(path) and "/api/auth/" not in path:
                logger.warning("VMS session expired on %s; clearing auth token", path)
                self.set_auth_token(None)
                if self._on_unauthorized:
                    self._on_unauthorized()
            if error.message == "Request failed":
                error.message = "Session expired. Please log in again."
                error.args = (error.message,)
        logger.error("VMS API error: %s %s -> %s %s", method, path, response.status_code, error.message)
        raise error

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json=data)

    async def patch(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PATCH", path, json=data)

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #
    async def list_contract_templates(self, contract_type: str) -> List[ContractTemplate]:
        data = await self.get("/api/v2/contracts/templates", {"type": contract_type})
        return normalize_list(data, normalize_template)

    async def get_active_msa(self, company_id: str, bureau_id: str) -> Optional[MSA]:
        data = await self.get("/api/v2/contracts/msa/active", {"company_id": company_id, "bureau_id": bureau_id})
        return normalize_msa(data) if data else None

    async def list_rate_cards(self, bureau_id: str, company_id: str) -> List[RateCard]:
        data = await self.get("/api/v2/contracts/rate-cards", {"bureau_id": bureau_id, "company_id": company_id})
        return normalize_list(data, normalize_rate_card)

    async def create_contract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.post("/api/v2/contracts", payload)
        if not isinstance(data, dict) or not data.get("id"):
            raise IntegrationResponseError("Contract creation returned no id.", payload={"data": data})
        return data

    async def list_contract_notifications(self) -> List[ContractNotification]:
        data = await self.get("/api/v2/contracts/notifications")
        return normalize_list(data, normalize_notification)

    async def mark_notification_read(self, notification_id: str) -> None:
        await self.patch(f"/api/v2/contracts/notifications/{notification_id}/read", {})

    # ------------------------------------------------------------------ #
    # Fees
    # ------------------------------------------------------------------ #
    async def get_fee_structure(self, bureau_id: str) -> Optional[FeeStructure]:
        data = await self.get(f"/api/vms/bureaus/{bureau_id}/fee-structure")
        return normalize_fee_structure(data) if data else None

    # ------------------------------------------------------------------ #
    # Candidates
    # ------------------------------------------------------------------ #
    async def check_duplicate_candidate(self, email: str) -> DuplicateCheckResult:
        data = await self.post("/api/vms/candidates/check-duplicate", {"email": email})
        return normalize_duplicate_check(data or {})

    async def submit_candidate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.post("/api/vms/candidates", payload)
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------ #
    # MSA
    # ------------------------------------------------------------------ #
    async def list_msas_awaiting_approval(self) -> List[MSA]:
        data = await self.get("/api/msa/awaiting-approval")
        return normalize_list(data, normalize_msa)

    async def get_msa(self, msa_id: str) -> MSA:
        data = await self.get(f"/api/msa/{msa_id}")
        return normalize_msa(data or {})

    async def approve_msa(self, msa_id: str, notes: Optional[str] = None) -> MSA:
        body: Dict[str, Any] = {"notes": notes} if notes else {}
        data = await self.post(f"/api/msa/approve/{msa_id}", body)
        return normalize_msa(data or {})

    async def reject_msa(self, msa_id: str, reason: str) -> MSA:
        data = await self.post(f"/api/msa/reject/{msa_id}", {"reason": reason})
        return normalize_msa(data or {})

    async def create_msa(self, payload: Dict[str, Any]) -> MSA:
        data = await self.post("/api/msa/create", payload)
        if not data:
            raise ApiError("Failed to create MSA", status=0)
        return normalize_msa(data)

    # ------------------------------------------------------------------ #
    # Workflows
    # ------------------------------------------------------------------ #
    async def list_workflow_executions(self, status: str = "ALL", date_range: str = "today") -> List[WorkflowExecution]:
        data = await self.get("/api/vms/workflows/executions", {"status": status, "range": date_range})
        return normalize_list(data, normalize_execution)

    async def retry_workflow_execution(self, execution_id: str) -> None:
        await self.post(f"/api/vms/workflows/executions/{execution_id}/retry")

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    async def create_payment_intent(self, amount: float, currency: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = await self.post(
            "/api/create-payment-intent",
            {"amount": amount, "currency": currency, "metadata": metadata or {}},
        )
        return data if isinstance(data, dict) else {}
