"""
Utility modules for the VMS portal service
"""
from .config_loader import PortalConfig, load_portal_config

__all__ = [
    'PortalConfig',
    'load_portal_config',
]
