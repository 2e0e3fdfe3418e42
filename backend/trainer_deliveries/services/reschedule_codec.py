"""Reschedule request codec for the ``client_notes`` text field.

Two encodings exist in stored data:

* versioned: ``reschedule_request_v1:`` followed by a JSON object with
  ``requestedDate``, ``reason`` and ``requestedAt``. Everything written today
  uses this form.
* legacy free text: any note containing "reschedule requested"
  (case-insensitive). The text after the first colon is the reason; there is
  no structured date. Read-only.

Decoding never raises. Anything that cannot be understood is reported as
"no request" so a corrupted note cannot block the rest of the lifecycle.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

RESCHEDULE_REQUEST_PREFIX = "reschedule_request_v1:"
LEGACY_RESCHEDULE_MARKER = "reschedule requested"


@dataclass(frozen=True)
class RescheduleRequest:
    """A client's pending proposal to move the hand-off date."""

    requested_date: datetime | None
    reason: str | None
    requested_at: datetime | None


def normalize_iso_datetime(value: Any) -> datetime | None:
    """Strictly parse an ISO-8601 value into an aware UTC datetime.

    Returns None for anything that is not a valid date; naive values are
    taken to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def format_iso_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    normalized = normalize_iso_datetime(value)
    if normalized is None:
        return None
    return normalized.isoformat().replace("+00:00", "Z")


def encode_reschedule_request(request: RescheduleRequest) -> str:
    payload = {
        "requestedDate": format_iso_datetime(request.requested_date),
        "reason": request.reason,
        "requestedAt": format_iso_datetime(request.requested_at),
    }
    return RESCHEDULE_REQUEST_PREFIX + json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _decode_versioned(body: str) -> RescheduleRequest | None:
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError):
        return None
    if not isinstance(raw, dict):
        return None

    reason = raw.get("reason")
    return RescheduleRequest(
        requested_date=normalize_iso_datetime(raw.get("requestedDate")),
        reason=None if reason is None else str(reason),
        requested_at=normalize_iso_datetime(raw.get("requestedAt")),
    )


def _decode_legacy(text: str) -> RescheduleRequest | None:
    if LEGACY_RESCHEDULE_MARKER not in text.lower():
        return None
    _, colon, tail = text.partition(":")
    reason = tail.strip() if colon else ""
    return RescheduleRequest(requested_date=None, reason=reason or None, requested_at=None)


def decode_reschedule_request(text: Any) -> RescheduleRequest | None:
    """Return the request embedded in ``text``, or None if there is none."""
    if not isinstance(text, str) or not text:
        return None
    if text.startswith(RESCHEDULE_REQUEST_PREFIX):
        return _decode_versioned(text[len(RESCHEDULE_REQUEST_PREFIX):])
    return _decode_legacy(text)


def is_reschedule_payload(text: Any) -> bool:
    """True if ``text`` carries a request in either form, readable or not."""
    if not isinstance(text, str):
        return False
    return text.startswith(RESCHEDULE_REQUEST_PREFIX) or decode_reschedule_request(text) is not None
