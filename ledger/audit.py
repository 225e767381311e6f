"""
ledger/audit.py

Append-only audit & decision ledger.

Three independent logs live in the Record Store, newest entry first:

auth_events     : one entry per login attempt (platform-wide, no scoping)
decision_diary  : one entry per approve/reject decision, scopable by hospital id
activity_log    : operator feed: registrations, queued emails, security alerts

Entries are never edited or deleted.  Growth is unbounded unless a
``RetentionPolicy`` caps a log, in which case only the newest N are kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from storage.models import (
    ActivityLogEntry,
    AuditAction,
    AuditStatus,
    AuthEventEntry,
    DecisionDiaryEntry,
    LogType,
    normalize_email,
)
from storage.records import ACTIVITY_LOG, AUTH_EVENTS, DECISION_DIARY, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionPolicy:
    max_auth_events: Optional[int] = None
    max_decisions: Optional[int] = None
    max_activity: Optional[int] = None

    @classmethod
    def uniform(cls, max_entries: Optional[int]) -> "RetentionPolicy":
        return cls(max_entries, max_entries, max_entries)


class AuditLedger:
    """Reads and appends ledger entries through an injected Record Store."""

    def __init__(self, store: RecordStore, retention: RetentionPolicy | None = None):
        self.store = store
        self.retention = retention or RetentionPolicy()

    def _append(self, collection: str, entry: dict, limit: Optional[int], event: str) -> None:
        entries = [entry] + self.store.load(collection)
        if limit is not None and len(entries) > limit:
            logger.debug("Retention trimmed %d entries from %s", len(entries) - limit, collection)
            entries = entries[:limit]
        self.store.save(collection, entries)
        self.store.notify(event)

    # -------------------------
    # Authentication events
    # -------------------------
    def record_auth_event(
        self,
        email: str,
        role: str,
        success: bool,
        details: str,
        status: AuditStatus | None = None,
        ip_address: str = "local",
    ) -> AuthEventEntry:
        entry = AuthEventEntry(
            user_email=normalize_email(email),
            user_role=role,
            action=AuditAction.LOGIN_SUCCESS if success else AuditAction.LOGIN_FAILED,
            status=status or (AuditStatus.SUCCESS if success else AuditStatus.FAILURE),
            details=details,
            ip_address=ip_address,
        )
        self._append(AUTH_EVENTS, entry.model_dump(mode="json"), self.retention.max_auth_events, "auditUpdated")
        logger.info("AUDIT: [%s] user=%s status=%s", entry.action, entry.user_email, entry.status)
        return entry

    def auth_events(self) -> list[AuthEventEntry]:
        return [AuthEventEntry(**raw) for raw in self.store.load(AUTH_EVENTS)]

    def failures_since_last_success(self, email: str) -> int:
        """Count failed attempts for *email* newer than its latest successful login."""
        key = normalize_email(email)
        count = 0
        for event in self.auth_events():
            if event.user_email != key:
                continue
            if event.action == AuditAction.LOGIN_SUCCESS:
                break
            count += 1
        return count

    # -------------------------
    # Decision diary
    # -------------------------
    def record_decision(self, entry: DecisionDiaryEntry) -> DecisionDiaryEntry:
        self._append(DECISION_DIARY, entry.model_dump(mode="json"), self.retention.max_decisions, "diaryUpdated")
        logger.info(
            "DIARY: %s %s '%s' by %s",
            entry.action, entry.target_type, entry.target_name, entry.actor_email,
        )
        return entry

    def decision_diary(self, scope_id: Optional[str] = None) -> list[DecisionDiaryEntry]:
        entries = [DecisionDiaryEntry(**raw) for raw in self.store.load(DECISION_DIARY)]
        if scope_id:
            entries = [e for e in entries if e.hospital_id == scope_id]
        return entries

    # -------------------------
    # Activity log
    # -------------------------
    def record_activity(self, message: str, log_type: LogType = LogType.INFO) -> ActivityLogEntry:
        entry = ActivityLogEntry(message=message, type=log_type)
        self._append(ACTIVITY_LOG, entry.model_dump(mode="json"), self.retention.max_activity, "logUpdated")
        return entry

    def activity_log(self) -> list[ActivityLogEntry]:
        return [ActivityLogEntry(**raw) for raw in self.store.load(ACTIVITY_LOG)]
