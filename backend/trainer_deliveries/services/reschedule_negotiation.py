"""Where a delivery's pending reschedule request lives.

The structured ``reschedule_*`` columns are authoritative. ``client_notes`` is
read only as a fallback for rows written before those columns existed, and is
written as an encoded mirror for older app builds when configured to.
"""

from __future__ import annotations

from typing import Any

from .delivery_rules import allows_reschedule_request
from .reschedule_codec import (
    RescheduleRequest,
    decode_reschedule_request,
    encode_reschedule_request,
    is_reschedule_payload,
)


def _stored_reschedule_request(delivery: Any) -> RescheduleRequest | None:
    if delivery.reschedule_requested_at is not None:
        return RescheduleRequest(
            requested_date=delivery.reschedule_requested_date,
            reason=delivery.reschedule_reason,
            requested_at=delivery.reschedule_requested_at,
        )
    return decode_reschedule_request(delivery.client_notes)


def pending_reschedule_request(delivery: Any) -> RescheduleRequest | None:
    """The request awaiting an answer; None once the delivery is past scheduling."""
    if not allows_reschedule_request(delivery.status):
        return None
    return _stored_reschedule_request(delivery)


def store_reschedule_request(delivery: Any, request: RescheduleRequest, *, mirror_to_client_notes: bool) -> None:
    if request.requested_at is None:
        raise ValueError("Stored reschedule requests need requested_at")
    delivery.reschedule_requested_date = request.requested_date
    delivery.reschedule_reason = request.reason
    delivery.reschedule_requested_at = request.requested_at
    if mirror_to_client_notes:
        delivery.client_notes = encode_reschedule_request(request)


def clear_reschedule_request(delivery: Any) -> bool:
    """Drop any stored request, structured or embedded. Returns True if one existed."""
    had_request = _stored_reschedule_request(delivery) is not None

    delivery.reschedule_requested_date = None
    delivery.reschedule_reason = None
    delivery.reschedule_requested_at = None
    # Plain client notes survive; only an embedded payload is removed.
    if is_reschedule_payload(delivery.client_notes):
        delivery.client_notes = None
    return had_request
