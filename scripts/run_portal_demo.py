#!/usr/bin/env python3
"""
Walk the portal components against the in-memory VMS API and print each stage.
Shows the fee calculator, the contract wizard up to submit, a duplicate
candidate check and an MSA approval.

Usage (from repo root):
  python scripts/run_portal_demo.py
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.integrations.clients.mocks.vms_api import MockVMSApi
from src.integrations.contracts.interfaces import PlacementType
from src.portal.candidate_submission import CandidateSubmissionForm
from src.portal.contract_wizard import ContractWizard
from src.portal.fee_calculator import FeeCalculatorWidget, format_currency
from src.portal.msa_approval import MSAApprovalService, PendingMSAQuery, approval_state


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def print_stage(title: str, data):
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)
    print()


def toast(t: dict):
    print_stage(f"TOAST: {t.get('title')}", t.get("description"))


async def main():
    setup_logging()
    api = MockVMSApi()

    # --- Fee calculator ---
    widget = FeeCalculatorWidget(api, bureau_id="bureau-2", notify=toast)
    await widget.load()
    widget.set_contract_type(PlacementType.INTERIM)
    widget.set_hourly_rate(65)
    widget.set_contract_duration(9)
    print_stage("FEE CALCULATOR: bureau-2 interim", widget.calculation.to_dict())
    print_stage("FEE TOTAL", format_currency(widget.calculation.total_fee))

    # --- Contract wizard ---
    wizard = ContractWizard(api, application_id="app-1", job_id="job-1", candidate_id="cand-9", notify=toast)
    await wizard.start()
    await wizard.set_parties(company_id="company-1", bureau_id="bureau-1")
    wizard.set_terms({"start_date": "2025-04-01", "vacation_days": 27})
    wizard.set_rates({"salary": 62000, "job_category": "IT", "seniority_level": "SENIOR"})
    for _ in range(len(ContractWizard.STEPS) - 1):
        wizard.next()
    print_stage("CONTRACT WIZARD: review", wizard.review())
    redirect = await wizard.submit()
    print_stage("CONTRACT WIZARD: redirect", redirect)

    # --- Candidate duplicate check ---
    form = CandidateSubmissionForm(api, job_id="job-1", distribution_id="dist-1", notify=toast)
    await form.check_duplicate("jan.jansen@example.com")
    print_stage("CANDIDATE: duplicate warning", {"warning": form.duplicate_warning, "ownership": form.ownership})

    # --- MSA approval ---
    query = PendingMSAQuery(api)
    await query.refresh()
    print_stage("MSA: awaiting approval", [m.msa_number for m in query.msas])
    service = MSAApprovalService(api, pending_query=query, notify=toast)
    msa = await service.approve(query.msas[0].id)
    print_stage("MSA: after approval", approval_state(msa))


if __name__ == "__main__":
    asyncio.run(main())
