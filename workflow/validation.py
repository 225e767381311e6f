"""
workflow/validation.py

Registration form checks applied at the UI boundary before the workflow is
called.  The workflow itself only requires the fields to be present.
"""

from __future__ import annotations

import re
from typing import Optional, Type

from pydantic import BaseModel, ValidationError, field_validator, model_validator

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 8


def _required(value: Optional[str], message: str) -> str:
    if not (value or "").strip():
        raise ValueError(message)
    return value.strip()


class _BaseRegistrationForm(BaseModel):
    full_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    contact_number: str = ""
    document_name: str = ""

    class Config:
        validate_default = True

    @field_validator("full_name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required(v, "Full name is required")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = _required(v, "Email is required")
        if not _EMAIL_RE.search(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @field_validator("contact_number")
    @classmethod
    def _contact(cls, v: str) -> str:
        return _required(v, "Contact number is required")

    @model_validator(mode="after")
    def _passwords_match(self) -> "_BaseRegistrationForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class InstitutionRegistrationForm(_BaseRegistrationForm):
    hospital_name: str = ""
    address: str = ""

    @field_validator("hospital_name")
    @classmethod
    def _hospital_name(cls, v: str) -> str:
        return _required(v, "Hospital name is required")

    @field_validator("address")
    @classmethod
    def _address(cls, v: str) -> str:
        return _required(v, "Address is required")

    @field_validator("document_name")
    @classmethod
    def _document(cls, v: str) -> str:
        return _required(v, "Accreditation document required")


class PractitionerRegistrationForm(_BaseRegistrationForm):
    hospital_id: str = ""

    @field_validator("hospital_id")
    @classmethod
    def _hospital(cls, v: str) -> str:
        return _required(v, "Please select your institution")

    @field_validator("document_name")
    @classmethod
    def _document(cls, v: str) -> str:
        return _required(v, "Medical license required")


def form_errors(form_cls: Type[_BaseRegistrationForm], data: dict) -> dict[str, str]:
    """
    Validate *data* against *form_cls* and return ``{field: message}``.

    An empty dict means the form is valid.  The password-confirmation check
    only runs once every field passed, and is reported under
    ``confirm_password``.
    """
    try:
        form_cls(**data)
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for err in exc.errors():
            field = err["loc"][0] if err["loc"] else "confirm_password"
            message = err["msg"].removeprefix("Value error, ")
            errors.setdefault(str(field), message)
        return errors
    return {}
