"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used when:
- The upstream VMS API is not reachable from the current environment
- We want to exercise portal components end-to-end without external dependencies

Important:
- Mock clients must follow the SAME interface as real HTTP clients (VMSApi).
- Mock clients should return data shaped according to src/integrations/contracts/*

Switching to real:
Set VMS_API_URL (or INTEGRATIONS_MODE=real) and src/api/main.py wires
clients/real_http/* instead.
"""
from .vms_api import MockVMSApi

__all__ = ["MockVMSApi"]
