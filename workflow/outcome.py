"""
workflow/outcome.py

Typed result returned by every public workflow operation.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from workflow.errors import ErrorKind, WorkflowError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Outcome(BaseModel, Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    class Config:
        arbitrary_types_allowed = True

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: WorkflowError) -> "Outcome":
        return cls(ok=False, error=exc.kind, message=exc.message)

    def unwrap(self) -> T:
        """Return the value, or raise ``ValueError`` for a failed outcome."""
        if not self.ok:
            raise ValueError(f"{self.error.value}: {self.message}")
        return self.value


def returns_outcome(func: Callable[..., Any]) -> Callable[..., Outcome]:
    """
    Wrap a workflow method so business-rule failures come back as values.

    Only ``WorkflowError`` is converted; store faults and programming errors
    propagate unchanged.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Outcome:
        try:
            return Outcome.success(func(*args, **kwargs))
        except WorkflowError as exc:
            logger.info("%s failed: %s (%s)", func.__name__, exc.kind.value, exc.message)
            return Outcome.failure(exc)

    return wrapper
