"""One-time import of reschedule requests embedded in client_notes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models import DeliveryAuditEvent, ProductDelivery
from ..services.delivery_rules import allows_reschedule_request, now_utc
from ..services.reschedule_codec import (
    LEGACY_RESCHEDULE_MARKER,
    RESCHEDULE_REQUEST_PREFIX,
    RescheduleRequest,
    decode_reschedule_request,
    format_iso_datetime,
)
from ..services.reschedule_negotiation import store_reschedule_request

logger = logging.getLogger(__name__)

# Audit rows need an actor; imports are attributed to the nil UUID.
SYSTEM_ACTOR_ID = UUID(int=0)


@dataclass
class RescheduleImportReport:
    imported: list[UUID] = field(default_factory=list)
    skipped_not_reschedulable: list[UUID] = field(default_factory=list)
    unreadable: list[UUID] = field(default_factory=list)


def import_legacy_reschedule_requests_use_case(
    *,
    db: Session,
    dry_run: bool = False,
    at: datetime | None = None,
) -> RescheduleImportReport:
    """Copy requests found in client_notes into the structured reschedule columns.

    Rows that already have a structured request are left alone. Requests on
    deliveries that can no longer be rescheduled are reported, not imported.
    """
    ts = at or now_utc()
    report = RescheduleImportReport()

    candidates = db.query(ProductDelivery).filter(
        ProductDelivery.reschedule_requested_at.is_(None),
        or_(
            ProductDelivery.client_notes.startswith(RESCHEDULE_REQUEST_PREFIX),
            ProductDelivery.client_notes.ilike(f"%{LEGACY_RESCHEDULE_MARKER}%"),
        ),
    ).all()

    for delivery in candidates:
        decoded = decode_reschedule_request(delivery.client_notes)
        if decoded is None:
            report.unreadable.append(delivery.id)
            continue
        if not allows_reschedule_request(delivery.status):
            report.skipped_not_reschedulable.append(delivery.id)
            continue

        # Legacy free-text requests never recorded when they were made.
        request = RescheduleRequest(
            requested_date=decoded.requested_date,
            reason=decoded.reason,
            requested_at=decoded.requested_at or delivery.updated_at or ts,
        )
        report.imported.append(delivery.id)
        if dry_run:
            continue

        # Keep client_notes as they are; older app builds still read them.
        store_reschedule_request(delivery, request, mirror_to_client_notes=False)
        db.add(
            DeliveryAuditEvent(
                delivery_id=delivery.id,
                action="reschedule_imported",
                actor_id=SYSTEM_ACTOR_ID,
                actor_role="system",
                old_status=delivery.status,
                new_status=delivery.status,
                details={
                    "requestedDate": format_iso_datetime(request.requested_date),
                    "requestedAt": format_iso_datetime(request.requested_at),
                    "legacyForm": not delivery.client_notes.startswith(RESCHEDULE_REQUEST_PREFIX),
                },
            )
        )

    if not dry_run:
        db.commit()
    logger.info(
        "reschedule.import imported=%d skipped_not_reschedulable=%d unreadable=%d dry_run=%s",
        len(report.imported), len(report.skipped_not_reschedulable), len(report.unreadable), dry_run,
    )
    return report
