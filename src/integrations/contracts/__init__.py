"""
Contracts (data models).

This folder defines the request/response shapes for the upstream VMS API.
Examples:
- Fee structure and rate card formats
- MSA approval records
- Duplicate-check results and candidate ownership

Both mock and real HTTP clients should use these contracts.
"""
