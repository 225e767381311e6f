"""
Shared fixtures for the registry test suite.

Every test gets its own JSON record store under ``tmp_path``, seeded with a
single platform administrator, and a recording email gateway in place of
EmailJS.
"""

import threading

import pytest

from ledger.audit import AuditLedger
from notifications.gateway import EmailGateway, NotificationDispatcher, NotificationFailure
from storage.records import JsonRecordStore
from workflow.bootstrap import default_seeds
from workflow.registration import RegistrationWorkflow
from workflow.settings import PlatformAdminSeed, Settings

PLATFORM_ADMIN = "root@genosym.test"


class RecordingGateway(EmailGateway):
    """Captures delivered messages; optionally fails or blocks every send."""

    def __init__(self, fail: bool = False, release: threading.Event | None = None):
        self.sent = []
        self.fail = fail
        self.release = release

    def _deliver(self, message):
        if self.release is not None:
            self.release.wait(timeout=5)
        if self.fail:
            raise NotificationFailure("gateway unavailable")
        self.sent.append(message)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        db_path=tmp_path / "registry.json",
        platform_admins=[PlatformAdminSeed(email=PLATFORM_ADMIN, name="Root Admin")],
        platform_admin_password="root-secret",
    )


@pytest.fixture
def store(settings):
    return JsonRecordStore(settings.db_path, seeds=default_seeds(settings))


@pytest.fixture
def ledger(store):
    return AuditLedger(store)


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def dispatcher(gateway):
    d = NotificationDispatcher(gateway)
    yield d
    d.shutdown()


@pytest.fixture
def workflow(store, ledger, dispatcher, settings):
    wf = RegistrationWorkflow(store, ledger, dispatcher, settings)
    wf.ensure_platform_admins()
    return wf


@pytest.fixture
def apollo(workflow):
    """A pending hospital 'Apollo' administered by a@apollo.org; returns its id."""
    outcome = workflow.register_institution(
        "Apollo", "Greams Road", "Asha Rao", "a@apollo.org", "apollo-pw", "+91 1", "accreditation.pdf"
    )
    assert outcome.ok
    return outcome.value
