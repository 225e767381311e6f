"""
notifications/gateway.py

Best-effort outbound email.

Contract
--------
- ``EmailGateway.send`` returns ``True``/``False`` and never raises
- ``NotificationDispatcher.dispatch`` hands delivery to a worker thread and
  returns immediately; a slow or failing gateway cannot block or fail the
  workflow operation that queued the message
- EmailJS calls carry a bounded timeout; failures are logged and dropped,
  there is no retry

Without EmailJS credentials the ``LoggingGateway`` is used, so local demos
keep working with email "sent" to the log.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


class NotificationFailure(Exception):
    """Delivery failed. Always absorbed inside this module."""


class EmailMessage(BaseModel):
    to_email: str
    subject: str
    message: str
    to_name: str = ""
    cc_email: Optional[str] = None

    def template_params(self) -> dict[str, str]:
        params = {
            "to_email": self.to_email,
            "subject": self.subject,
            "message": self.message,
            "to_name": self.to_name,
        }
        if self.cc_email:
            params["cc_email"] = self.cc_email
        return params


class EmailGateway:
    """Base gateway: subclasses implement ``_deliver`` and may raise NotificationFailure."""

    def _deliver(self, message: EmailMessage) -> None:
        raise NotImplementedError

    def send(self, message: EmailMessage) -> bool:
        try:
            self._deliver(message)
        except NotificationFailure as exc:
            logger.warning("Email '%s' to %s not delivered: %s", message.subject, message.to_email, exc)
            return False
        except Exception:
            logger.exception("Unexpected error delivering email '%s'", message.subject)
            return False
        return True


class LoggingGateway(EmailGateway):
    """Writes emails to the log instead of sending them."""

    def _deliver(self, message: EmailMessage) -> None:
        logger.info(
            "[mock email] to=%s cc=%s subject=%s", message.to_email, message.cc_email or "-", message.subject
        )


class EmailJSGateway(EmailGateway):
    """
    Sends through the EmailJS REST API using a single generic template.

    Each message is a standalone ``requests.post``; no Session is shared
    between the dispatcher threads.
    """

    def __init__(
        self,
        service_id: str,
        template_id: str,
        public_key: str,
        timeout: float = 5.0,
        post: Optional[Callable[..., requests.Response]] = None,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.timeout = timeout
        self._post = post

    def _deliver(self, message: EmailMessage) -> None:
        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": message.template_params(),
        }
        try:
            response = (self._post or requests.post)(EMAILJS_SEND_URL, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationFailure(str(exc)) from exc
        logger.info("[EmailJS] Sent '%s': %s %s", message.subject, response.status_code, response.text)


class NotificationDispatcher:
    """Fire-and-forget delivery on a small worker pool."""

    def __init__(self, gateway: EmailGateway, max_workers: int = 2):
        self.gateway = gateway
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def _run(self, message: EmailMessage) -> bool:
        try:
            return self.gateway.send(message)
        except Exception:
            logger.exception("Gateway raised while sending '%s'", message.subject)
            return False

    def dispatch(self, message: EmailMessage) -> Optional[Future]:
        """Queue *message*; returns the future, or ``None`` if it could not be queued."""
        try:
            future = self._executor.submit(self._run, message)
        except RuntimeError:
            logger.warning("Dispatcher is shut down; dropped email '%s'", message.subject)
            return None
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued message finished; returns False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)
