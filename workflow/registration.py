"""
workflow/registration.py

Identity & registration workflow.

Responsibilities
----------------
- Credential validation with one audit entry per attempt.
- Hospital and doctor registration (PENDING), with idempotent replacement
  of an earlier registration that was never approved.
- Approve / reject decisions with a mandatory rationale, recorded in the
  decision diary; a hospital and its admin account move in lockstep.
- Read-side case visibility and the query surface used by the dashboards.

The workflow keeps no state between calls: every operation loads the
collections it needs from the Record Store and writes them back whole.
Outbound email is queued on the dispatcher and never awaited.
"""

from __future__ import annotations

import logging
from typing import Optional

from ledger.audit import AuditLedger
from notifications import notices
from notifications.gateway import EmailMessage, NotificationDispatcher
from storage.models import (
    UNKNOWN_ROLE,
    Account,
    ActivityLogEntry,
    AuditStatus,
    AuthEventEntry,
    DecisionAction,
    DecisionDiaryEntry,
    DecisionTarget,
    Institution,
    LogType,
    PatientCase,
    RegistrationStatus,
    SystemAnalytics,
    TimelineEvent,
    UserRole,
    normalize_email,
    utc_now,
)
from storage.records import ACCOUNTS, CASES, INSTITUTIONS, RecordStore
from workflow.access import filter_visible_cases, find_account
from workflow.credentials import hash_secret, verify_secret
from workflow.errors import AlreadyRegistered, InvalidCredentials, MissingRationale, NotFound
from workflow.outcome import returns_outcome
from workflow.settings import Settings

logger = logging.getLogger(__name__)

USERS_UPDATED = "usersUpdated"
CASES_UPDATED = "casesUpdated"


class RegistrationWorkflow:
    def __init__(
        self,
        store: RecordStore,
        ledger: AuditLedger,
        dispatcher: NotificationDispatcher,
        settings: Settings | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.settings = settings or Settings()

    # -------------------------
    # Internal helpers
    # -------------------------
    def _accounts(self) -> list[Account]:
        return [Account(**raw) for raw in self.store.load(ACCOUNTS)]

    def _institutions(self) -> list[Institution]:
        return [Institution(**raw) for raw in self.store.load(INSTITUTIONS)]

    def _cases(self) -> list[PatientCase]:
        return [PatientCase(**raw) for raw in self.store.load(CASES)]

    @property
    def _platform_admins(self) -> list[str]:
        return sorted(self.settings.platform_admin_emails)

    def _queue(self, message: EmailMessage) -> None:
        self.ledger.record_activity(f"Email queued to {message.to_email}: {message.subject}", LogType.EMAIL)
        self.dispatcher.dispatch(message)

    @staticmethod
    def _ensure_not_approved(email: str, accounts: list[Account]) -> None:
        existing = find_account(accounts, email)
        if existing is not None and existing.status == RegistrationStatus.APPROVED:
            raise AlreadyRegistered(email)

    @staticmethod
    def _require_rationale(rationale: Optional[str]) -> str:
        reason = (rationale or "").strip()
        if not reason:
            raise MissingRationale()
        return reason

    def ensure_platform_admins(self) -> int:
        """Add any configured platform admin missing from the accounts collection."""
        accounts = self._accounts()
        known = {normalize_email(a.email) for a in accounts}
        added = [
            Account(
                email=normalize_email(seed.email),
                name=seed.name,
                role=UserRole.SUPER_ADMIN,
                status=RegistrationStatus.APPROVED,
                password_hash=hash_secret(self.settings.platform_admin_password),
            )
            for seed in self.settings.platform_admins
            if normalize_email(seed.email) not in known
        ]
        if added:
            self.store.save(ACCOUNTS, [a.model_dump(mode="json") for a in accounts + added])
            self.store.notify(USERS_UPDATED)
            logger.info("Seeded %d platform administrator account(s)", len(added))
        return len(added)

    # -------------------------
    # Authentication
    # -------------------------
    def _login_failed(self, email: str, role: str, details: str, ip_address: str) -> None:
        failures = self.ledger.failures_since_last_success(email) + 1
        threshold = self.settings.suspicious_after_failures
        suspicious = bool(threshold) and failures >= threshold
        self.ledger.record_auth_event(
            email,
            role,
            success=False,
            details=details,
            status=AuditStatus.SUSPICIOUS if suspicious else AuditStatus.FAILURE,
            ip_address=ip_address,
        )
        if suspicious:
            logger.warning("Suspicious login activity for %s (%d consecutive failures)", email, failures)
            self.ledger.record_activity(f"{failures} consecutive failed logins for {email}", LogType.ALERT)
            self._queue(notices.suspicious_login(email, failures, self._platform_admins))
        raise InvalidCredentials()

    @returns_outcome
    def validate_credentials(self, email: str, secret: str, ip_address: str = "local") -> Account:
        """
        Return the matching account, or fail with a uniform InvalidCredentials.

        Platform administrators bypass secret verification: any non-empty
        secret is accepted for a configured platform-admin email.
        """
        clean = normalize_email(email)
        account = find_account(self._accounts(), clean)

        if account is None:
            self._login_failed(clean, UNKNOWN_ROLE, "Unknown account", ip_address)
        if not secret:
            self._login_failed(clean, account.role, "Empty secret", ip_address)

        if clean in self.settings.platform_admin_emails:
            details = "Platform administrator sign-in"
        elif verify_secret(secret, account.password_hash):
            details = "Password verified"
        else:
            self._login_failed(clean, account.role, "Wrong password", ip_address)

        self.ledger.record_auth_event(clean, account.role, success=True, details=details, ip_address=ip_address)
        if self.settings.login_alerts:
            self._queue(notices.login_alert(clean, account.role, account.name, self._platform_admins))
        return account

    # -------------------------
    # Registration
    # -------------------------
    @returns_outcome
    def register_institution(
        self,
        name: str,
        address: str,
        admin_name: str,
        email: str,
        secret: str,
        contact: Optional[str] = None,
        document_ref: Optional[str] = None,
    ) -> str:
        clean = normalize_email(email)
        accounts = self._accounts()
        institutions = self._institutions()
        self._ensure_not_approved(clean, accounts)

        institution = Institution(
            name=name,
            address=address,
            admin_email=clean,
            contact_number=contact,
            accreditation_document=document_ref,
        )
        admin = Account(
            email=clean,
            name=admin_name,
            role=UserRole.HOSPITAL_ADMIN,
            hospital_id=institution.id,
            password_hash=hash_secret(secret or ""),
            contact_number=contact,
        )

        institutions = [
            h for h in institutions
            if normalize_email(h.admin_email) != clean or h.status == RegistrationStatus.APPROVED
        ] + [institution]
        accounts = [a for a in accounts if normalize_email(a.email) != clean] + [admin]
        self.store.save_many({
            INSTITUTIONS: [h.model_dump(mode="json") for h in institutions],
            ACCOUNTS: [a.model_dump(mode="json") for a in accounts],
        })
        self.store.notify(USERS_UPDATED)
        logger.info("Registered hospital '%s' (id=%s, admin=%s)", name, institution.id, clean)

        self.ledger.record_activity(f"Hospital registration received: {name} ({clean})")
        self._queue(notices.institution_registration(name, address, clean, admin_name, self._platform_admins))
        return institution.id

    @returns_outcome
    def register_practitioner(
        self,
        name: str,
        email: str,
        secret: str,
        institution_id: str,
        contact: Optional[str] = None,
        document_ref: Optional[str] = None,
    ) -> None:
        clean = normalize_email(email)
        accounts = self._accounts()
        institutions = self._institutions()
        self._ensure_not_approved(clean, accounts)

        doctor = Account(
            email=clean,
            name=name,
            role=UserRole.DOCTOR,
            hospital_id=institution_id,
            password_hash=hash_secret(secret or ""),
            contact_number=contact,
            license_document=document_ref,
        )
        accounts = [a for a in accounts if normalize_email(a.email) != clean] + [doctor]
        self.store.save(ACCOUNTS, [a.model_dump(mode="json") for a in accounts])
        self.store.notify(USERS_UPDATED)

        hospital = next((h for h in institutions if h.id == institution_id), None)
        if hospital is None:
            # Accepted as-is: only platform admins will see this doctor until reconciled.
            logger.warning("Doctor %s registered against unknown hospital id %r", clean, institution_id)
        logger.info("Registered doctor %s (hospital_id=%s)", clean, institution_id)

        self.ledger.record_activity(f"Doctor registration received: {name} ({clean})")
        hospital_admin = hospital.admin_email if hospital else self.settings.fallback_admin_email
        details = f"Hospital: {hospital.name if hospital else 'New Institution'} (ID: {institution_id})"
        self._queue(notices.practitioner_registration(hospital_admin, name, clean, details, self._platform_admins))

    # -------------------------
    # Decisions
    # -------------------------
    @returns_outcome
    def decide_institution(self, institution_id: str, approve: bool, rationale: str, actor_email: str) -> None:
        reason = self._require_rationale(rationale)
        institutions = self._institutions()
        idx = next((i for i, h in enumerate(institutions) if h.id == institution_id), None)
        if idx is None:
            raise NotFound(f"No institution with id {institution_id}.")

        status = RegistrationStatus.APPROVED if approve else RegistrationStatus.REJECTED
        hospital = institutions[idx].model_copy(update={"status": status.value, "rejection_reason": reason})
        institutions[idx] = hospital
        changes = {INSTITUTIONS: [h.model_dump(mode="json") for h in institutions]}

        accounts = self._accounts()
        admin_key = normalize_email(hospital.admin_email)
        a_idx = next((i for i, a in enumerate(accounts) if normalize_email(a.email) == admin_key), None)
        if a_idx is None:
            logger.warning("Hospital %s has no admin account for %s; only the hospital was updated", hospital.id, admin_key)
        else:
            accounts[a_idx] = accounts[a_idx].model_copy(update={"status": status.value, "rejection_reason": reason})
            changes[ACCOUNTS] = [a.model_dump(mode="json") for a in accounts]

        self.store.save_many(changes)
        self.store.notify(USERS_UPDATED)

        self.ledger.record_decision(DecisionDiaryEntry(
            actor_email=normalize_email(actor_email),
            target_name=hospital.name,
            target_type=DecisionTarget.HOSPITAL,
            action=DecisionAction(status.value),
            reason=reason,
            hospital_id=hospital.id,
        ))
        self.ledger.record_activity(f"Hospital {hospital.name} {status.value.lower()} by {normalize_email(actor_email)}")
        self._queue(notices.institution_decision(hospital.admin_email, hospital.name, approve, reason, self._platform_admins))

    @returns_outcome
    def decide_practitioner(self, email: str, approve: bool, rationale: str, actor_email: str) -> None:
        reason = self._require_rationale(rationale)
        clean = normalize_email(email)
        accounts = self._accounts()
        idx = next((i for i, a in enumerate(accounts) if normalize_email(a.email) == clean), None)
        if idx is None:
            raise NotFound(f"No account for {clean}.")

        status = RegistrationStatus.APPROVED if approve else RegistrationStatus.REJECTED
        doctor = accounts[idx].model_copy(update={"status": status.value, "rejection_reason": reason})
        accounts[idx] = doctor
        self.store.save(ACCOUNTS, [a.model_dump(mode="json") for a in accounts])
        self.store.notify(USERS_UPDATED)

        self.ledger.record_decision(DecisionDiaryEntry(
            actor_email=normalize_email(actor_email),
            target_name=doctor.name,
            target_type=DecisionTarget.DOCTOR,
            action=DecisionAction(status.value),
            reason=reason,
            hospital_id=doctor.hospital_id,
        ))
        self.ledger.record_activity(f"Doctor {doctor.name} {status.value.lower()} by {normalize_email(actor_email)}")
        self._queue(notices.practitioner_decision(doctor.email, doctor.name, approve, reason, self._platform_admins))

    # -------------------------
    # Patient cases
    # -------------------------
    @returns_outcome
    def list_cases_visible_to(self, account_email: str) -> list[PatientCase]:
        accounts = self._accounts()
        viewer = find_account(accounts, account_email)
        return filter_visible_cases(viewer, accounts, self._cases())

    @returns_outcome
    def create_case(
        self,
        doctor_email: str,
        patient_name: str = "Unknown",
        age: int = 0,
        gender: str = "Other",
        symptoms: Optional[list[str]] = None,
        data_types: Optional[list[str]] = None,
    ) -> str:
        now = utc_now()
        case = PatientCase(
            patient_name=patient_name or "Unknown",
            age=age or 0,
            gender=gender or "Other",
            symptoms=symptoms or [],
            data_types=data_types or [],
            assigned_doctor_email=normalize_email(doctor_email),
            last_updated=now,
            timeline=[TimelineEvent(id="1", date=now[:10], title="Case Created", description="Record initialized.")],
        )
        cases = self.store.load(CASES)
        self.store.save(CASES, [case.model_dump(mode="json")] + cases)
        self.store.notify(CASES_UPDATED)
        logger.info("Created case %s for %s", case.id, case.assigned_doctor_email)
        return case.id

    @returns_outcome
    def get_case(self, case_id: str) -> PatientCase:
        case = next((c for c in self._cases() if c.id == case_id), None)
        if case is None:
            raise NotFound(f"No case with id {case_id}.")
        return case

    # -------------------------
    # Query surface (no side effects)
    # -------------------------
    def get_institutions(self) -> list[Institution]:
        return self._institutions()

    def get_accounts(self) -> list[Account]:
        return self._accounts()

    def get_decision_diary(self, scope_id: Optional[str] = None) -> list[DecisionDiaryEntry]:
        return self.ledger.decision_diary(scope_id)

    def get_auth_events(self) -> list[AuthEventEntry]:
        return self.ledger.auth_events()

    def get_activity_log(self) -> list[ActivityLogEntry]:
        return self.ledger.activity_log()

    def system_analytics(self) -> SystemAnalytics:
        hospitals = self._institutions()
        accounts = self._accounts()
        return SystemAnalytics(
            total_hospitals=len(hospitals),
            pending_hospitals=sum(1 for h in hospitals if h.status == RegistrationStatus.PENDING),
            total_users=len(accounts),
            active_users=sum(1 for a in accounts if a.status == RegistrationStatus.APPROVED),
        )
