"""
workflow/settings.py

Runtime configuration, read from environment variables.

Only the storage path, the platform-admin seed list and the notification
gateway need configuring; everything else has a demo-friendly default.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_PLATFORM_ADMINS = (
    ("admin.one@genosym.ai", "Platform Admin One"),
    ("admin.two@genosym.ai", "Platform Admin Two"),
)


class PlatformAdminSeed(BaseModel):
    email: str
    name: str


class Settings(BaseModel):
    db_path: Path = Path("data") / "genosym_registry.json"
    data_key: Optional[str] = None
    platform_admins: list[PlatformAdminSeed] = Field(
        default_factory=lambda: [PlatformAdminSeed(email=e, name=n) for e, n in DEFAULT_PLATFORM_ADMINS]
    )
    platform_admin_password: str = "password123"
    fallback_admin_email: str = "admin@genosym.com"

    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    emailjs_public_key: Optional[str] = None
    notify_timeout: float = 5.0

    suspicious_after_failures: int = 3
    login_alerts: bool = False
    audit_max_entries: Optional[int] = None

    @property
    def platform_admin_emails(self) -> frozenset[str]:
        return frozenset(a.email.strip().lower() for a in self.platform_admins)

    @property
    def emailjs_configured(self) -> bool:
        return bool(self.emailjs_service_id and self.emailjs_template_id and self.emailjs_public_key)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values: dict = {}

        if env.get("GENOSYM_DB_PATH"):
            values["db_path"] = Path(env["GENOSYM_DB_PATH"])
        if env.get("APP_DATA_KEY"):
            values["data_key"] = env["APP_DATA_KEY"]
        if env.get("GENOSYM_PLATFORM_ADMINS"):
            emails = [e.strip() for e in env["GENOSYM_PLATFORM_ADMINS"].split(",") if e.strip()]
            values["platform_admins"] = [
                PlatformAdminSeed(email=e, name=e.split("@", 1)[0]) for e in emails
            ]
        if env.get("GENOSYM_SUPERADMIN_PASSWORD"):
            values["platform_admin_password"] = env["GENOSYM_SUPERADMIN_PASSWORD"]

        values["emailjs_service_id"] = env.get("EMAILJS_SERVICE_ID") or None
        values["emailjs_template_id"] = env.get("EMAILJS_TEMPLATE_ID") or None
        values["emailjs_public_key"] = env.get("EMAILJS_PUBLIC_KEY") or None

        if env.get("GENOSYM_NOTIFY_TIMEOUT"):
            values["notify_timeout"] = float(env["GENOSYM_NOTIFY_TIMEOUT"])
        if env.get("GENOSYM_SUSPICIOUS_AFTER"):
            values["suspicious_after_failures"] = int(env["GENOSYM_SUSPICIOUS_AFTER"])
        if env.get("GENOSYM_LOGIN_ALERTS"):
            values["login_alerts"] = env["GENOSYM_LOGIN_ALERTS"].strip().lower() in ("1", "true", "yes", "on")
        if env.get("GENOSYM_AUDIT_MAX_ENTRIES"):
            values["audit_max_entries"] = int(env["GENOSYM_AUDIT_MAX_ENTRIES"])

        return cls(**values)
