"""
storage/models.py

Pydantic v2 data models for the Genosym registry.

These models describe the records held by the Record Store (accounts,
institutions, patient cases) and the append-only ledgers (auth events,
decision diary, activity log).  They are NOT ORM models; persistence is
handled entirely by records.py / db.py, which store ``model_dump(mode="json")``
dictionaries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(tz=timezone.utc).isoformat()


def normalize_email(email: str | None) -> str:
    """Identity key used everywhere: trimmed and lower-cased."""
    return (email or "").strip().lower()


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(str, Enum):
    """The three roles an account can hold."""
    SUPER_ADMIN = "SUPER_ADMIN"        # platform administrator
    HOSPITAL_ADMIN = "HOSPITAL_ADMIN"  # institution administrator
    DOCTOR = "DOCTOR"                  # practitioner


class RegistrationStatus(str, Enum):
    """Approval lifecycle shared by accounts and institutions."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"


class AuditStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    SUSPICIOUS = "SUSPICIOUS"


class DecisionTarget(str, Enum):
    HOSPITAL = "HOSPITAL"
    DOCTOR = "DOCTOR"


class DecisionAction(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LogType(str, Enum):
    INFO = "INFO"
    EMAIL = "EMAIL"
    ALERT = "ALERT"


UNKNOWN_ROLE = "UNKNOWN"


# ---------------------------------------------------------------------------
# Identity records
# ---------------------------------------------------------------------------


class Account(BaseModel):
    """Any platform identity, keyed by normalised email."""
    email: str
    name: str
    role: UserRole
    status: RegistrationStatus = RegistrationStatus.PENDING
    hospital_id: Optional[str] = None
    password_hash: Optional[str] = Field(
        default=None,
        description='PBKDF2 blob "<hex_salt>:<hex_hash>"; never the raw secret.',
    )
    contact_number: Optional[str] = None
    license_document: Optional[str] = None
    rejection_reason: Optional[str] = None

    class Config:
        use_enum_values = True


class Institution(BaseModel):
    """A hospital applying for platform access, paired with one admin account."""
    id: str = Field(default_factory=lambda: f"hosp_{uuid4().hex[:12]}")
    name: str
    address: str
    admin_email: str
    status: RegistrationStatus = RegistrationStatus.PENDING
    registered_at: str = Field(default_factory=utc_now)
    contact_number: Optional[str] = None
    accreditation_document: Optional[str] = None
    rejection_reason: Optional[str] = None

    class Config:
        use_enum_values = True


# ---------------------------------------------------------------------------
# Patient cases
# ---------------------------------------------------------------------------


class TimelineEvent(BaseModel):
    id: str
    date: str
    title: str
    description: str
    type: Literal["medical", "system", "upload"] = "system"


class PatientCase(BaseModel):
    """Case metadata used for visibility filtering; clinical analysis lives elsewhere."""
    id: str = Field(default_factory=lambda: f"CASE-{uuid4().hex[:12]}")
    patient_name: str = "Unknown"
    age: int = 0
    gender: Literal["Male", "Female", "Other"] = "Other"
    blood_type: Optional[str] = None
    symptoms: list[str] = Field(default_factory=list)
    diagnosis_status: Literal["Undiagnosed", "Diagnosed", "Analyzing"] = "Analyzing"
    data_types: list[str] = Field(default_factory=list)
    assigned_doctor_email: str
    last_updated: str = Field(default_factory=utc_now)
    consent_status: bool = True
    timeline: list[TimelineEvent] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------


class DecisionDiaryEntry(BaseModel):
    """Immutable record of an approve/reject action."""
    id: str = Field(default_factory=lambda: f"diary_{uuid4().hex[:12]}")
    timestamp: str = Field(default_factory=utc_now)
    actor_email: str
    target_name: str
    target_type: DecisionTarget
    action: DecisionAction
    reason: str = Field(min_length=1)
    hospital_id: Optional[str] = None

    class Config:
        use_enum_values = True
        frozen = True


class AuthEventEntry(BaseModel):
    """Immutable record of one login attempt."""
    id: str = Field(default_factory=lambda: f"audit_{uuid4().hex[:12]}")
    timestamp: str = Field(default_factory=utc_now)
    user_email: str
    user_role: UserRole | Literal["UNKNOWN"] = UNKNOWN_ROLE
    action: AuditAction
    status: AuditStatus
    details: str = ""
    ip_address: str = "local"

    class Config:
        use_enum_values = True
        frozen = True


class ActivityLogEntry(BaseModel):
    """Operator-facing activity feed line (registrations, queued emails, alerts)."""
    id: str = Field(default_factory=lambda: f"log_{uuid4().hex[:12]}")
    message: str
    type: LogType = LogType.INFO
    timestamp: str = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True
        frozen = True


class SystemAnalytics(BaseModel):
    total_hospitals: int
    pending_hospitals: int
    total_users: int
    active_users: int
