import hmac
import logging
import os

from dotenv import load_dotenv
from fastapi import Header, HTTPException, Request, status

from src.integrations.contracts.interfaces import VMSApi
from src.portal.msa_approval import PendingMSAQuery
from src.portal.state_manager import StateManager
from src.utils.config_loader import PortalConfig

load_dotenv()

logger = logging.getLogger(__name__)

_ALLOWLIST_PATHS = {
    "/",
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/openapi.json",
    "/redoc",
}

# Wired by src.api.main at import time
vms_api: VMSApi = None
state_manager: StateManager = None
portal_config: PortalConfig = None
pending_msa_query: PendingMSAQuery = None


def get_api_keys():
    """Portal API keys from API_KEYS (comma separated), read on every request."""
    return [key.strip() for key in os.getenv("API_KEYS", "").split(",") if key.strip()]


async def api_key_protection(
    request: Request = None,  # Request stays typed so FastAPI injects it; None for direct calls
    x_api_key: str = Header(default=None, alias="X-API-KEY"),
):
    if request is not None and request.url.path in _ALLOWLIST_PATHS:
        return

    presented = (x_api_key or "").strip()
    if presented and any(hmac.compare_digest(presented, key) for key in get_api_keys()):
        return

    logger.warning("Rejected portal request: path=%s key_present=%s", request.url.path if request else "-", bool(presented))
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API Key",
    )


def should_use_real_integrations() -> bool:
    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    if mode in {"real", "live"}:
        return True
    if mode in {"mock", "test"}:
        return False
    return bool(os.getenv("VMS_API_URL"))


def _require(value, name: str):
    if value is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{name} not initialized")
    return value


def get_vms_api() -> VMSApi:
    return _require(vms_api, "VMS API client")


def get_state_manager() -> StateManager:
    return _require(state_manager, "State manager")


def get_portal_config() -> PortalConfig:
    return _require(portal_config, "Portal config")


def get_pending_msa_query() -> PendingMSAQuery:
    return _require(pending_msa_query, "Pending MSA query")
