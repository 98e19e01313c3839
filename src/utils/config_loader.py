"""
Configuration loader for the VMS portal service
"""

import os
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ValidationError
import logging

logger = logging.getLogger(__name__)


class ApiConfig(BaseModel):
    """Upstream VMS API configuration"""

    base_url: str = ""
    timeout_seconds: float = Field(default=20.0, gt=0, le=120)
    token_env: str = "VMS_API_TOKEN"


class PollingConfig(BaseModel):
    """Timer intervals; each component runs its own timer"""

    notifications_seconds: float = Field(default=30.0, gt=0)
    workflow_executions_seconds: float = Field(default=5.0, gt=0)
    msa_refetch_seconds: float = Field(default=300.0, gt=0)
    msa_stale_seconds: float = Field(default=120.0, ge=0)


class CandidateConfig(BaseModel):
    """Candidate submission configuration"""

    duplicate_check_debounce_ms: int = Field(default=500, ge=0, le=10_000)


class WizardConfig(BaseModel):
    """Contract wizard configuration"""

    session_ttl_seconds: int = Field(default=1800, ge=60)
    hours_per_month: int = Field(default=160, ge=1, le=744)


class PortalConfig(BaseModel):
    """Complete portal configuration"""

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    candidates: CandidateConfig = Field(default_factory=CandidateConfig)
    wizard: WizardConfig = Field(default_factory=WizardConfig)


def load_portal_config(config_path: Optional[Path] = None) -> PortalConfig:
    """
    Load and validate portal configuration from YAML file

    Args:
        config_path: Path to config file. Defaults to config/portal_config.yml

    Returns:
        Validated PortalConfig object; VMS_API_URL overrides api.base_url

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "portal_config.yml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    try:
        config = PortalConfig(**config_data)
    except ValidationError as e:
        logger.error(f"Config validation failed: {e}")
        raise

    env_url = os.getenv("VMS_API_URL")
    if env_url:
        config.api.base_url = env_url
    logger.info(f"Successfully loaded config from {config_path}")
    return config
