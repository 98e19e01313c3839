"""
Integrations layer.
This package contains all code used to communicate with the upstream VMS REST API:
- contracts, templates, rate cards and MSAs
- bureau fee structures
- candidate duplicate checks and submissions
- workflow executions and contract notifications

Key rule:
- Portal components MUST NOT call httpx directly.
- Components call a `VMSApi` implementation (under src/integrations/clients).
- We use the MOCK client during development and the REAL_HTTP client when VMS_API_URL is set.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (src/api/main.py).
"""

from .contracts.interfaces import (
    MSA,
    CandidateOwnership,
    ContractNotification,
    ContractTemplate,
    ContractType,
    DuplicateCheckResult,
    DuplicateWarning,
    ExecutionStatus,
    FeeCalculation,
    FeeStructure,
    FeeType,
    MatchReason,
    MSAStatus,
    Party,
    PlacementType,
    RateCard,
    RateCardLine,
    VMSApi,
    WorkflowExecution,
    WorkflowStep,
)

__all__ = [
    "MSA", "CandidateOwnership", "ContractNotification", "ContractTemplate",
    "ContractType", "DuplicateCheckResult", "DuplicateWarning", "ExecutionStatus",
    "FeeCalculation", "FeeStructure", "FeeType", "MatchReason", "MSAStatus",
    "Party", "PlacementType", "RateCard", "RateCardLine", "VMSApi",
    "WorkflowExecution", "WorkflowStep",
]
