"""Pytest fixtures for portal component and API tests."""

import pytest

from src.integrations.clients.mocks.vms_api import MockVMSApi
from src.integrations.contracts.interfaces import FeeStructure, FeeType
from src.utils.config_loader import PortalConfig


@pytest.fixture
def mock_api():
    """Seeded in-memory VMS API."""
    return MockVMSApi()


@pytest.fixture
def config():
    return PortalConfig()


@pytest.fixture
def toasts():
    """Collects toasts; pass `toasts.append` as a component's notifier."""
    return []


@pytest.fixture
def percentage_structure():
    return FeeStructure(id="fs-pct", fee_type=FeeType.PERCENTAGE, placement_fee_percentage=20)


@pytest.fixture
def hourly_structure():
    return FeeStructure(id="fs-hourly", fee_type=FeeType.HOURLY_MARKUP, hourly_markup_percentage=20)
