"""
notifications/notices.py

Email bodies for registration and decision notices.

Every notice goes through one generic template with ``to_email``,
``cc_email``, ``subject``, ``message`` and ``to_name`` parameters.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from notifications.gateway import EmailMessage


def _join(emails: Iterable[str]) -> str:
    return ", ".join(emails)


def _status_word(approved: bool) -> str:
    return "APPROVED" if approved else "REJECTED"


def institution_registration(
    name: str, address: str, admin_email: str, admin_name: str, platform_admins: Iterable[str]
) -> EmailMessage:
    message = (
        "ACTION REQUIRED: New Hospital Registration\n\n"
        f"Hospital Name: {name}\n"
        f"Address: {address}\n"
        f"Admin Name: {admin_name}\n"
        f"Admin Email: {admin_email}\n\n"
        "Please login to the Super Admin Dashboard to APPROVE or REJECT this request."
    )
    return EmailMessage(
        to_email=_join(platform_admins),
        subject="New Hospital Registration Request",
        message=message,
        to_name="Super Admins",
    )


def institution_decision(
    admin_email: str, hospital_name: str, approved: bool, reason: Optional[str], platform_admins: Iterable[str]
) -> EmailMessage:
    follow_up = (
        "You may now login to the Genosym Platform to manage your doctors."
        if approved
        else "Please contact support if you believe this is an error."
    )
    reason_text = f"\nReason: {reason}" if reason else ""
    message = (
        f'Your registration request for "{hospital_name}" has been {_status_word(approved)}.'
        f"{reason_text}\n\n{follow_up}"
    )
    return EmailMessage(
        to_email=admin_email,
        cc_email=_join(platform_admins),
        subject="Genosym-AI Hospital Registration Status",
        message=message,
        to_name="Hospital Administrator",
    )


def practitioner_registration(
    hospital_admin_email: str, doctor_name: str, doctor_email: str, details: str, platform_admins: Iterable[str]
) -> EmailMessage:
    # Platform admins approve; the hospital admin is copied for visibility.
    message = (
        "ACTION REQUIRED: New Doctor Registration\n\n"
        f"Doctor Name: {doctor_name}\n"
        f"Email: {doctor_email}\n"
        f"Details: {details}\n\n"
        "This doctor has registered and is awaiting approval.\n"
        "Please login to the Super Admin Dashboard to APPROVE or REJECT this request."
    )
    return EmailMessage(
        to_email=_join(platform_admins),
        cc_email=hospital_admin_email,
        subject="New Doctor Registration Request - Action Required",
        message=message,
        to_name="Super Admins",
    )


def practitioner_decision(
    doctor_email: str, doctor_name: str, approved: bool, reason: Optional[str], platform_admins: Iterable[str]
) -> EmailMessage:
    reason_text = f"\nReason: {reason}" if reason else ""
    follow_up = "\n\nYou may now login to the portal to access patient case tools." if approved else ""
    message = (
        f"Dear {doctor_name},\n\n"
        f"Your request to access the Genosym AI platform has been {_status_word(approved)}."
        f"{reason_text}{follow_up}"
    )
    return EmailMessage(
        to_email=doctor_email,
        cc_email=_join(platform_admins),
        subject="Genosym-AI Doctor Registration Status",
        message=message,
        to_name=doctor_name,
    )


def login_alert(user_email: str, user_role: str, user_name: str, platform_admins: Iterable[str]) -> EmailMessage:
    message = (
        "Security Alert: User Login Detected\n\n"
        f"User: {user_name} ({user_email})\n"
        f"Role: {user_role}\n"
        f"Time: {datetime.now(tz=timezone.utc).isoformat()}\n\n"
        "This is an automated notification."
    )
    return EmailMessage(
        to_email=_join(platform_admins),
        subject="Genosym-AI Login Alert",
        message=message,
        to_name="Super Admins",
    )


def suspicious_login(user_email: str, failures: int, platform_admins: Iterable[str]) -> EmailMessage:
    message = (
        "Security Alert: Repeated Failed Logins\n\n"
        f"Account: {user_email}\n"
        f"Consecutive failures: {failures}\n\n"
        "Review the audit ledger in the Super Admin Dashboard."
    )
    return EmailMessage(
        to_email=_join(platform_admins),
        subject="Genosym-AI Suspicious Login Activity",
        message=message,
        to_name="Super Admins",
    )
