"""
workflow/access.py

Read-side access control.

Visibility of patient cases
---------------------------
- SUPER_ADMIN     sees every case
- HOSPITAL_ADMIN  sees cases whose assigned doctor belongs to the same hospital
- DOCTOR          sees only the cases assigned to them

Emails are compared trimmed and lower-cased on both sides.
"""

from __future__ import annotations

from typing import Iterable

from storage.models import Account, PatientCase, RegistrationStatus, UserRole, normalize_email

DASHBOARD_ROUTES = {
    UserRole.SUPER_ADMIN.value: "/admin/super",
    UserRole.HOSPITAL_ADMIN.value: "/admin/hospital",
    UserRole.DOCTOR.value: "/doctor/dashboard",
}


def find_account(accounts: Iterable[Account], email: str) -> Account | None:
    key = normalize_email(email)
    return next((a for a in accounts if normalize_email(a.email) == key), None)


def filter_visible_cases(
    viewer: Account | None,
    accounts: list[Account],
    cases: list[PatientCase],
) -> list[PatientCase]:
    """Apply the three-tier rule; an unknown viewer sees nothing."""
    if viewer is None:
        return []

    if viewer.role == UserRole.SUPER_ADMIN:
        return list(cases)

    if viewer.role == UserRole.HOSPITAL_ADMIN:
        if not viewer.hospital_id:
            return []
        staff = {normalize_email(a.email) for a in accounts if a.hospital_id == viewer.hospital_id}
        return [c for c in cases if normalize_email(c.assigned_doctor_email) in staff]

    own = normalize_email(viewer.email)
    return [c for c in cases if normalize_email(c.assigned_doctor_email) == own]


def can_enter_dashboard(account: Account) -> bool:
    """Platform admins are pre-approved; everyone else must be APPROVED."""
    return account.role == UserRole.SUPER_ADMIN or account.status == RegistrationStatus.APPROVED


def dashboard_for(account: Account) -> str | None:
    if not can_enter_dashboard(account):
        return None
    return DASHBOARD_ROUTES.get(account.role)
