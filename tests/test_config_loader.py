from pathlib import Path

import pytest
from pydantic import ValidationError

from src.utils.config_loader import PortalConfig, load_portal_config


def test_shipped_config_loads(monkeypatch):
    monkeypatch.delenv("VMS_API_URL", raising=False)
    config = load_portal_config()
    assert config.polling.notifications_seconds == 30
    assert config.candidates.duplicate_check_debounce_ms == 500
    assert config.wizard.hours_per_month == 160


def test_partial_file_keeps_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("VMS_API_URL", raising=False)
    path = tmp_path / "portal.yml"
    path.write_text("polling:\n  workflow_executions_seconds: 2\n", encoding="utf-8")

    config = load_portal_config(path)

    assert config.polling.workflow_executions_seconds == 2
    assert config.polling.msa_refetch_seconds == 300
    assert config.api.timeout_seconds == 20


def test_env_overrides_base_url(tmp_path, monkeypatch):
    path = tmp_path / "portal.yml"
    path.write_text("api:\n  base_url: http://from-file\n", encoding="utf-8")
    monkeypatch.setenv("VMS_API_URL", "https://vms.example.nl")

    assert load_portal_config(path).api.base_url == "https://vms.example.nl"


def test_empty_file_is_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("VMS_API_URL", raising=False)
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_portal_config(path) == PortalConfig()


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_portal_config(Path("/nonexistent/portal.yml"))


def test_out_of_bounds_value_is_rejected(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("candidates:\n  duplicate_check_debounce_ms: -1\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_portal_config(path)
