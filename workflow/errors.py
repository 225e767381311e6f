"""
workflow/errors.py

Business-rule failures of the registration workflow.

These are raised inside the workflow and turned into failed ``Outcome``
values at the public boundary (see workflow.outcome).  Store faults are a
different family (storage.errors.StoreFault) and are never converted.
"""

from __future__ import annotations

from enum import Enum

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials. Access denied."


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "InvalidCredentials"
    ALREADY_REGISTERED = "AlreadyRegistered"
    MISSING_RATIONALE = "MissingRationale"
    NOT_FOUND = "NotFound"


class WorkflowError(Exception):
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentials(WorkflowError):
    """Unknown email or wrong secret; the message never says which."""
    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class AlreadyRegistered(WorkflowError):
    kind = ErrorKind.ALREADY_REGISTERED

    def __init__(self, email: str):
        super().__init__(f"{email} is already registered and approved.")


class MissingRationale(WorkflowError):
    kind = ErrorKind.MISSING_RATIONALE

    def __init__(self) -> None:
        super().__init__("A rationale is required to record this decision.")


class NotFound(WorkflowError):
    kind = ErrorKind.NOT_FOUND
