"""
workflow/bootstrap.py

Wire a ready-to-use workflow from ``Settings``: record store with demo seeds,
audit ledger, notification dispatcher and the registration workflow itself.
"""

from __future__ import annotations

import logging

from ledger.audit import AuditLedger, RetentionPolicy
from notifications.gateway import EmailGateway, EmailJSGateway, LoggingGateway, NotificationDispatcher
from storage.crypto import get_fernet
from storage.db import SqliteRecordStore
from storage.models import Account, Institution, RegistrationStatus, UserRole, normalize_email
from storage.records import ACCOUNTS, INSTITUTIONS, JsonRecordStore, RecordStore
from workflow.credentials import hash_secret
from workflow.registration import RegistrationWorkflow
from workflow.settings import Settings

logger = logging.getLogger(__name__)

# Pre-approved demo hospitals shown in the registration form's hospital picker.
SEED_HOSPITALS = (
    ("h_1", "AIIMS, New Delhi", "Ansari Nagar, New Delhi", "admin@aiims.edu"),
    ("h_2", "Apollo Hospitals, Chennai", "Greams Road, Chennai", "admin@apollo.com"),
    ("h_3", "Fortis Memorial Research Institute, Gurugram", "Sector 44, Gurugram", "admin@fortis.com"),
    ("h_4", "Medanta - The Medicity, Gurugram", "CH Baktawar Singh Rd, Gurugram", "admin@medanta.org"),
)


def default_seeds(settings: Settings) -> dict[str, list[dict]]:
    """First-access contents for the accounts and institutions collections."""
    secret_blob = hash_secret(settings.platform_admin_password)
    admins = [
        Account(
            email=normalize_email(seed.email),
            name=seed.name,
            role=UserRole.SUPER_ADMIN,
            status=RegistrationStatus.APPROVED,
            password_hash=secret_blob,
        ).model_dump(mode="json")
        for seed in settings.platform_admins
    ]
    hospitals = [
        Institution(
            id=hid, name=name, address=address, admin_email=admin, status=RegistrationStatus.APPROVED
        ).model_dump(mode="json")
        for hid, name, address, admin in SEED_HOSPITALS
    ]
    return {ACCOUNTS: admins, INSTITUTIONS: hospitals}


def build_store(settings: Settings) -> RecordStore:
    """``.db`` / ``.sqlite`` paths get the encrypted SQLite store, anything else the JSON file."""
    seeds = default_seeds(settings)
    if settings.db_path.suffix in (".db", ".sqlite", ".sqlite3"):
        return SqliteRecordStore(settings.db_path, seeds=seeds, fernet=get_fernet(settings.data_key))
    return JsonRecordStore(settings.db_path, seeds=seeds)


def build_gateway(settings: Settings) -> EmailGateway:
    if settings.emailjs_configured:
        return EmailJSGateway(
            settings.emailjs_service_id,
            settings.emailjs_template_id,
            settings.emailjs_public_key,
            timeout=settings.notify_timeout,
        )
    logger.warning("EmailJS credentials not configured; notices will only be logged.")
    return LoggingGateway()


def build_workflow(
    settings: Settings | None = None,
    store: RecordStore | None = None,
    gateway: EmailGateway | None = None,
) -> RegistrationWorkflow:
    settings = settings or Settings.from_env()
    store = store or build_store(settings)
    ledger = AuditLedger(store, RetentionPolicy.uniform(settings.audit_max_entries))
    dispatcher = NotificationDispatcher(gateway or build_gateway(settings))
    workflow = RegistrationWorkflow(store, ledger, dispatcher, settings)
    workflow.ensure_platform_admins()
    return workflow
