"""
demo/walkthrough.py

End-to-end walkthrough of the registry workflow against a throwaway store.

Steps:
  - register a hospital and one of its doctors
  - reject the hospital with a rationale, approve the doctor
  - attempt logins (good, bad, platform admin)
  - print the decision diary, auth events and analytics

Usage:
  python -m demo.walkthrough [--keep PATH]

Without ``--keep`` the store lives in a temporary directory that is removed
at exit.
"""

import argparse
import logging
import tempfile
from pathlib import Path

from ledger.export import export_json
from workflow.bootstrap import build_workflow
from workflow.settings import Settings

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def run(db_path: Path) -> None:
    settings = Settings(db_path=db_path)
    workflow = build_workflow(settings)
    platform_admin = sorted(settings.platform_admin_emails)[0]

    hospital_id = workflow.register_institution(
        "Apollo", "Greams Road, Chennai", "Asha Rao", "A@Apollo.org ", "apollo-secret", "+91 44 0000", "accreditation.pdf"
    ).unwrap()
    workflow.register_practitioner(
        "Dr. Vikram Iyer", "vikram@apollo.org", "doctor-secret", hospital_id, "+91 44 0001", "license.pdf"
    ).unwrap()
    workflow.create_case("vikram@apollo.org", "Demo Patient", 34, "Female", ["fatigue"], ["EHR"]).unwrap()

    missing = workflow.decide_institution(hospital_id, True, "", platform_admin)
    print(f"Decision without rationale -> {missing.error.value}: {missing.message}")

    workflow.decide_institution(hospital_id, False, "Docs incomplete", platform_admin).unwrap()
    workflow.decide_practitioner("vikram@apollo.org", True, "License verified", platform_admin).unwrap()

    for email, secret in (("a@apollo.org", "apollo-secret"), ("a@apollo.org", "wrong"), (platform_admin, "anything")):
        outcome = workflow.validate_credentials(email, secret)
        print(f"Login {email!r}: {'ok' if outcome.ok else outcome.message}")

    print("\nStatuses:")
    for hospital in workflow.get_institutions():
        if hospital.id == hospital_id:
            print(f"  hospital {hospital.name}: {hospital.status} ({hospital.rejection_reason})")
    for account in workflow.get_accounts():
        print(f"  {account.role:<15} {account.email:<28} {account.status}")

    visible = workflow.list_cases_visible_to("a@apollo.org").unwrap()
    print(f"\nCases visible to the hospital admin: {len(visible)}")
    print(f"Analytics: {workflow.system_analytics().model_dump()}")
    print("\nLedger export:")
    print(export_json(workflow.ledger))

    workflow.dispatcher.wait_idle(timeout=settings.notify_timeout * 2)
    workflow.dispatcher.shutdown()


def main() -> None:
    parser = argparse.ArgumentParser(description="Registry workflow walkthrough")
    parser.add_argument("--keep", type=Path, default=None, help="persist the store at this path")
    args = parser.parse_args()

    if args.keep:
        run(args.keep)
        return
    with tempfile.TemporaryDirectory() as tmp:
        run(Path(tmp) / "registry.json")


if __name__ == "__main__":
    main()
