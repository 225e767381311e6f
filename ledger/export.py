"""
ledger/export.py

Ledger export helper: produce a JSON string with the decision diary and the
authentication events for compliance review.

A hospital-scoped export contains only that hospital's decisions and omits
the platform-wide auth events.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ledger.audit import AuditLedger

logger = logging.getLogger(__name__)

_DISCLAIMER = (
    "This export is generated from the demo registry for review purposes only. "
    "It is NOT a certified audit trail."
)


def build_export_bundle(ledger: AuditLedger, scope_id: Optional[str] = None) -> dict[str, Any]:
    bundle: dict[str, Any] = {
        "export_generated_at": datetime.now(tz=timezone.utc).isoformat(),
        "scope": scope_id or "platform",
        "decision_diary": [e.model_dump(mode="json") for e in ledger.decision_diary(scope_id)],
        "disclaimer": _DISCLAIMER,
    }
    if scope_id is None:
        bundle["auth_events"] = [e.model_dump(mode="json") for e in ledger.auth_events()]
    return bundle


def export_json(ledger: AuditLedger, scope_id: Optional[str] = None) -> str:
    """
    Produce a pretty-printed JSON string of the ledger.

    Args:
        ledger:   The ledger to export.
        scope_id: Hospital id to restrict the decision diary to, or ``None``
                  for the full platform export.
    """
    bundle = build_export_bundle(ledger, scope_id)
    logger.info(
        "Exported ledger scope=%s decisions=%d", bundle["scope"], len(bundle["decision_diary"])
    )
    return json.dumps(bundle, indent=2, ensure_ascii=False, default=str)
