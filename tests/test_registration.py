"""
Hospital and doctor registration: pending records, idempotent replacement,
the approved-email guard and best-effort notification.
"""

import threading

from conftest import PLATFORM_ADMIN, RecordingGateway
from ledger.audit import AuditLedger
from notifications.gateway import NotificationDispatcher
from storage.models import RegistrationStatus, UserRole
from workflow.errors import ErrorKind
from workflow.registration import RegistrationWorkflow


def _by_email(workflow, email):
    return [a for a in workflow.get_accounts() if a.email == email]


def _hospitals_for(workflow, email):
    return [h for h in workflow.get_institutions() if h.admin_email == email]


class TestRegisterInstitution:
    def test_creates_pending_hospital_and_paired_admin(self, workflow, apollo):
        [hospital] = _hospitals_for(workflow, "a@apollo.org")
        [admin] = _by_email(workflow, "a@apollo.org")

        assert hospital.id == apollo
        assert hospital.status == RegistrationStatus.PENDING
        assert hospital.accreditation_document == "accreditation.pdf"
        assert admin.role == UserRole.HOSPITAL_ADMIN
        assert admin.status == RegistrationStatus.PENDING
        assert admin.hospital_id == apollo

    def test_email_is_normalised(self, workflow):
        hospital_id = workflow.register_institution(
            "Fortis", "Sector 44", "Ravi", "  Ravi@Fortis.ORG ", "pw-123456", "+91", "doc.pdf"
        ).unwrap()

        [hospital] = [h for h in workflow.get_institutions() if h.id == hospital_id]
        assert hospital.admin_email == "ravi@fortis.org"
        assert len(_by_email(workflow, "ravi@fortis.org")) == 1

    def test_secret_is_not_stored_in_clear(self, workflow, store, apollo):
        assert "apollo-pw" not in store.path.read_text(encoding="utf-8")

    def test_re_registration_while_pending_replaces_records(self, workflow, apollo):
        second = workflow.register_institution(
            "Apollo Hospitals", "New Road", "Asha R.", "A@apollo.org", "new-pw", "+91 2", "v2.pdf"
        ).unwrap()

        [hospital] = _hospitals_for(workflow, "a@apollo.org")
        [admin] = _by_email(workflow, "a@apollo.org")
        assert second != apollo
        assert hospital.id == second
        assert hospital.name == "Apollo Hospitals"
        assert admin.hospital_id == second
        assert workflow.validate_credentials("a@apollo.org", "new-pw").ok

    def test_re_registration_after_rejection_is_allowed(self, workflow, apollo):
        workflow.decide_institution(apollo, False, "Docs incomplete", PLATFORM_ADMIN).unwrap()

        outcome = workflow.register_institution("Apollo", "Greams Road", "Asha", "a@apollo.org", "pw", "+91", "d.pdf")

        assert outcome.ok
        [hospital] = _hospitals_for(workflow, "a@apollo.org")
        assert hospital.status == RegistrationStatus.PENDING

    def test_registration_after_approval_fails(self, workflow, apollo):
        workflow.decide_institution(apollo, True, "ok", PLATFORM_ADMIN).unwrap()
        before = workflow.get_institutions()

        outcome = workflow.register_institution("Apollo 2", "x", "y", "a@apollo.org", "pw", "+91", "d.pdf")

        assert not outcome.ok
        assert outcome.error == ErrorKind.ALREADY_REGISTERED
        assert workflow.get_institutions() == before

    def test_approved_hospital_email_without_account_can_register(self, workflow):
        outcome = workflow.register_institution(
            "AIIMS Annex", "Ring Road", "New Admin", "admin@aiims.edu", "pw", "+91", "d.pdf"
        )

        assert outcome.ok
        [seeded] = [h for h in workflow.get_institutions() if h.id == "h_1"]
        assert seeded.status == RegistrationStatus.APPROVED
        assert {h.id for h in _hospitals_for(workflow, "admin@aiims.edu")} == {"h_1", outcome.value}

    def test_platform_admin_email_cannot_be_registered(self, workflow):
        outcome = workflow.register_institution("X", "y", "z", PLATFORM_ADMIN, "pw", "+91", "d.pdf")

        assert outcome.error == ErrorKind.ALREADY_REGISTERED

    def test_broadcasts_change_and_notifies_platform_admins(self, workflow, store, dispatcher, gateway):
        events = []
        store.subscribe(events.append)

        workflow.register_institution("Apollo", "Greams Road", "Asha", "a@apollo.org", "pw", "+91", "d.pdf").unwrap()

        assert "usersUpdated" in events
        assert dispatcher.wait_idle(timeout=5)
        [mail] = gateway.sent
        assert mail.to_email == PLATFORM_ADMIN
        assert "Hospital Name: Apollo" in mail.message


class TestRegisterPractitioner:
    def test_creates_pending_doctor(self, workflow, apollo):
        outcome = workflow.register_practitioner("Dr. V", "V@Apollo.org", "pw", apollo, "+91", "license.pdf")

        assert outcome.ok
        assert outcome.value is None
        [doctor] = _by_email(workflow, "v@apollo.org")
        assert doctor.role == UserRole.DOCTOR
        assert doctor.status == RegistrationStatus.PENDING
        assert doctor.hospital_id == apollo
        assert doctor.license_document == "license.pdf"

    def test_re_registration_while_pending_keeps_one_account(self, workflow, apollo):
        workflow.register_practitioner("Dr. V", "v@apollo.org", "pw", apollo).unwrap()
        workflow.register_practitioner("Dr. Vikram", "v@apollo.org", "pw2", "h_1").unwrap()

        [doctor] = _by_email(workflow, "v@apollo.org")
        assert doctor.name == "Dr. Vikram"
        assert doctor.hospital_id == "h_1"

    def test_registration_after_approval_fails(self, workflow, apollo):
        workflow.register_practitioner("Dr. V", "v@apollo.org", "pw", apollo).unwrap()
        workflow.decide_practitioner("v@apollo.org", True, "verified", PLATFORM_ADMIN).unwrap()

        outcome = workflow.register_practitioner("Dr. V", "v@apollo.org", "pw", apollo)

        assert outcome.error == ErrorKind.ALREADY_REGISTERED

    def test_seeded_hospital_admin_email_has_no_account_and_can_register(self, workflow):
        assert _by_email(workflow, "admin@aiims.edu") == []

        outcome = workflow.register_practitioner("Dr. X", "admin@aiims.edu", "pw", "h_1")

        assert outcome.ok
        [doctor] = _by_email(workflow, "admin@aiims.edu")
        assert doctor.status == RegistrationStatus.PENDING

    def test_unknown_hospital_id_is_accepted(self, workflow, dispatcher, gateway, settings):
        outcome = workflow.register_practitioner("Dr. Orphan", "orphan@x.org", "pw", "St. Nowhere")

        assert outcome.ok
        [doctor] = _by_email(workflow, "orphan@x.org")
        assert doctor.hospital_id == "St. Nowhere"

        assert dispatcher.wait_idle(timeout=5)
        [mail] = gateway.sent
        assert mail.cc_email == settings.fallback_admin_email
        assert "New Institution (ID: St. Nowhere)" in mail.message

    def test_notice_copies_the_hospital_admin(self, workflow, dispatcher, gateway, apollo):
        workflow.register_practitioner("Dr. V", "v@apollo.org", "pw", apollo).unwrap()

        assert dispatcher.wait_idle(timeout=5)
        mail = next(m for m in gateway.sent if m.subject.startswith("New Doctor Registration"))
        assert mail.to_email == PLATFORM_ADMIN
        assert mail.cc_email == "a@apollo.org"


class TestNotificationIsBestEffort:
    def test_gateway_failure_does_not_fail_registration(self, store, settings):
        failing = NotificationDispatcher(RecordingGateway(fail=True))
        workflow = RegistrationWorkflow(store, AuditLedger(store), failing, settings)

        outcome = workflow.register_institution("Apollo", "Road", "Asha", "a@apollo.org", "pw", "+91", "d.pdf")

        assert outcome.ok
        assert failing.wait_idle(timeout=5)
        assert len(_hospitals_for(workflow, "a@apollo.org")) == 1
        failing.shutdown()

    def test_slow_gateway_does_not_block_registration(self, store, settings):
        release = threading.Event()
        slow = NotificationDispatcher(RecordingGateway(release=release))
        workflow = RegistrationWorkflow(store, AuditLedger(store), slow, settings)

        outcome = workflow.register_practitioner("Dr. V", "v@x.org", "pw", "h_1")

        assert outcome.ok
        assert not slow.wait_idle(timeout=0.05)
        release.set()
        assert slow.wait_idle(timeout=5)
        slow.shutdown()

    def test_queued_emails_are_listed_in_activity_log(self, workflow, apollo):
        types = [entry.type for entry in workflow.get_activity_log()]
        assert types == ["EMAIL", "INFO"]
