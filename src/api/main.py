"""
FastAPI application - Main entry point

  uvicorn src.api.main:app --host 127.0.0.1 --port 8000
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

import src.api.dependencies as deps
from src.api.candidates_router import api as candidates_api
from src.api.contracts_router import api as contracts_api
from src.api.dependencies import api_key_protection, should_use_real_integrations
from src.api.errors import register_exception_handlers
from src.api.fees_router import api as fees_api
from src.api.msa_router import api as msa_api
from src.api.payments_router import api as payments_api
from src.api.workflows_router import api as workflows_api
from src.integrations.contracts.interfaces import VMSApi
from src.portal.msa_approval import PendingMSAQuery
from src.portal.state_manager import StateManager
from src.utils.config_loader import PortalConfig, load_portal_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVICE_NAME = "VMS Portal API"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting %s...", SERVICE_NAME)
    logger.info("Integrations mode: %s", "real" if should_use_real_integrations() else "mock")

    # Test Redis connection
    if deps.state_manager and deps.state_manager.redis.ping():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed")

    query = deps.pending_msa_query
    if query is not None:
        query.start()
    yield
    # Shutdown
    if query is not None:
        await query.stop()
    logger.info("Shutting down %s...", SERVICE_NAME)


# Initialize FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Fee calculation, contract wizard, candidate submission and MSA approval for the VMS",
    version=VERSION,
    lifespan=lifespan,
    dependencies=[Depends(api_key_protection)],  # protect everything by default
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================


def _load_config() -> PortalConfig:
    try:
        return load_portal_config()
    except FileNotFoundError as e:
        logger.warning("%s; using built-in defaults", e)
        return PortalConfig()


def _build_vms_api(config: PortalConfig) -> VMSApi:
    if should_use_real_integrations():
        from src.integrations.clients.real_http.vms_api import VMSApiClient

        return VMSApiClient(
            base_url=config.api.base_url or None,
            token=os.getenv(config.api.token_env) or None,
            timeout_seconds=config.api.timeout_seconds,
        )

    from src.integrations.clients.mocks.vms_api import MockVMSApi

    return MockVMSApi()


def _build_cache(config: PortalConfig):
    # Use real Redis when env is set, else the in-memory stub
    if os.getenv("REDIS_URL"):
        from src.database.redis_real import RedisCache

        return RedisCache(url=os.environ["REDIS_URL"], default_ttl=config.wizard.session_ttl_seconds)

    from src.database.redis import RedisCache

    return RedisCache(default_ttl=config.wizard.session_ttl_seconds)


def init_services(api: Optional[VMSApi] = None, cache=None, config: Optional[PortalConfig] = None) -> None:
    """(Re)wire the process-wide services used by the routers."""
    config = config or _load_config()
    api = api or _build_vms_api(config)
    cache = cache or _build_cache(config)

    deps.portal_config = config
    deps.vms_api = api
    deps.state_manager = StateManager(cache, ttl=config.wizard.session_ttl_seconds)
    deps.pending_msa_query = PendingMSAQuery(
        api,
        refetch_interval_seconds=config.polling.msa_refetch_seconds,
        stale_time_seconds=config.polling.msa_stale_seconds,
    )
    logger.info("Services wired: vms_api=%s cache=%s", type(api).__name__, type(cache).__name__)


init_services()

# Register API routers
app.include_router(fees_api, prefix="/api/v1")
app.include_router(contracts_api, prefix="/api/v1")
app.include_router(candidates_api, prefix="/api/v1")
app.include_router(msa_api, prefix="/api/v1")
app.include_router(workflows_api, prefix="/api/v1")
app.include_router(payments_api, prefix="/api/v1")


# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {"service": SERVICE_NAME, "status": "healthy", "version": VERSION, "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check (upstream mode, session cache)."""
    state_manager = deps.state_manager
    return {
        "status": "healthy",
        "integrations": type(deps.vms_api).__name__,
        "database": {"redis": state_manager.redis.ping() if state_manager else False},
        "timestamp": datetime.now().isoformat(),
    }
