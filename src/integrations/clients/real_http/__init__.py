"""
Real HTTP integration clients.

These clients communicate with the upstream VMS REST API via HTTP:
- /api/v2/contracts/* (templates, MSA lookup, rate cards, contract creation)
- /api/vms/* (fee structures, candidates, workflow executions)
- /api/msa/* (approval workflow)

Important:
- Must implement the same interface as the mock clients
- Must return data shaped according to src/integrations/contracts/*

Switching:
The selection of mock vs real clients should happen in src/api/main.py only.
"""
from .vms_api import VMSApiClient

__all__ = ["VMSApiClient"]
