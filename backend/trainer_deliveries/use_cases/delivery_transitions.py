"""Delivery lifecycle use-cases used by delivery router endpoints.

Every transition goes through the same steps: load the record, check the
actor belongs to it, check the actor's capability for the action, check the
source state, check the optional expected version, apply, audit, commit.
The allowed (source, capability, target) combinations live in
``services.delivery_rules.TRANSITION_RULES``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth import Actor
from ..config import settings
from ..domain_errors import (
    DeliveryConflict,
    DeliveryNotFound,
    DeliveryValidationError,
    InvalidTransition,
)
from ..models import DeliveryAuditEvent, NotificationOutbox, ProductDelivery
from ..security import has_capability, is_delivery_client, is_delivery_trainer, require_delivery_access
from ..services.delivery_rules import (
    CAPABILITY_CLIENT,
    CAPABILITY_PARTY,
    CAPABILITY_TRAINER,
    TransitionRule,
    allows_reschedule_request,
    apply_status_timestamps,
    ensure_tracking_number_allowed,
    get_rule,
    is_source_allowed,
    now_utc,
    resulting_status,
)
from ..services.reschedule_codec import RescheduleRequest, format_iso_datetime, normalize_iso_datetime
from ..services.reschedule_negotiation import (
    clear_reschedule_request,
    pending_reschedule_request,
    store_reschedule_request,
)

logger = logging.getLogger(__name__)

_CAPABILITY_NAMES = {
    CAPABILITY_TRAINER: "trainer",
    CAPABILITY_CLIENT: "client",
    CAPABILITY_PARTY: "trainer or client",
}

_NOTIFICATION_MESSAGES = {
    "mark_ready": "{product} is ready for pickup",
    "mark_scheduled": "{product} delivery has been scheduled",
    "mark_out_for_delivery": "{product} is on its way",
    "mark_delivered": "{product} was marked as delivered",
    "confirm_receipt": "Client confirmed receipt of {product}",
    "report_issue": "Client reported an issue with {product}",
    "cancel": "Delivery of {product} was cancelled",
    "request_reschedule": "Client asked to reschedule {product}",
    "approve_reschedule": "Your new date for {product} was approved",
    "reject_reschedule": "Your new date for {product} was declined",
}


def get_delivery_or_404(*, db: Session, delivery_id: UUID) -> ProductDelivery:
    delivery = db.query(ProductDelivery).filter(
        ProductDelivery.id == delivery_id,
    ).first()
    if not delivery:
        raise DeliveryNotFound(delivery_id)
    return delivery


def _begin_transition(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    action: str,
    expected_version: int | None,
) -> tuple[ProductDelivery, TransitionRule]:
    rule = get_rule(action)
    delivery = get_delivery_or_404(db=db, delivery_id=delivery_id)

    require_delivery_access(delivery, actor)
    if not has_capability(delivery, actor, rule.capability):
        raise InvalidTransition.wrong_actor(
            action=rule.action,
            label=rule.label,
            required=_CAPABILITY_NAMES[rule.capability],
        )
    # A finished record reports its state whatever version the caller holds.
    if not is_source_allowed(rule, delivery.status):
        raise InvalidTransition.wrong_state(
            action=rule.action,
            label=rule.label,
            current_status=delivery.status,
        )
    if expected_version is not None and delivery.version != expected_version:
        raise DeliveryConflict(
            delivery.id,
            expected_version=expected_version,
            actual_version=delivery.version,
        )
    return delivery, rule


def _parse_date_input(value: Any, *, field: str) -> datetime:
    parsed = normalize_iso_datetime(value)
    if parsed is None:
        raise DeliveryValidationError(
            "DELIVERY_INVALID_DATE",
            f"Invalid {field}",
            details={"field": field},
        )
    return parsed


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _append_note(existing: str | None, line: str) -> str:
    return "\n".join(part for part in (_clean_text(existing), line) if part)


def _notification_recipients(delivery: ProductDelivery, actor: Actor) -> list[UUID]:
    if is_delivery_trainer(delivery, actor):
        return [delivery.client_id]
    if is_delivery_client(delivery, actor):
        return [delivery.trainer_id]
    return [delivery.trainer_id, delivery.client_id]


def _enqueue_notifications(*, db: Session, delivery: ProductDelivery, rule: TransitionRule, actor: Actor) -> None:
    message = _NOTIFICATION_MESSAGES[rule.action].format(product=delivery.product_name)
    for recipient_id in _notification_recipients(delivery, actor):
        db.add(
            NotificationOutbox(
                type=f"delivery_{rule.action}",
                delivery_id=delivery.id,
                triggered_by_id=actor.id,
                recipient_user_id=recipient_id,
                message=message,
                meta_data={"status": delivery.status},
                status="pending",
                idempotency_key=f"delivery_{rule.action}:{delivery.id}:{delivery.version}:{recipient_id}",
            )
        )


def _finish_transition(
    *,
    db: Session,
    delivery: ProductDelivery,
    rule: TransitionRule,
    actor: Actor,
    old_status: str,
    at: datetime,
    details: dict[str, Any] | None = None,
) -> ProductDelivery:
    audit_details = dict(details or {})
    if not allows_reschedule_request(delivery.status) and clear_reschedule_request(delivery):
        audit_details["rescheduleDiscarded"] = True
    delivery.updated_at = at

    db.add(
        DeliveryAuditEvent(
            delivery_id=delivery.id,
            action=rule.audit_action,
            actor_id=actor.id,
            actor_role=actor.role,
            old_status=old_status,
            new_status=delivery.status,
            details=audit_details,
        )
    )
    _enqueue_notifications(db=db, delivery=delivery, rule=rule, actor=actor)

    # Read before commit; rollback expires the instance.
    delivery_id = delivery.id
    new_status = delivery.status
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(
            "delivery.conflict id=%s action=%s actor=%s",
            delivery_id, rule.action, actor.id,
        )
        raise DeliveryConflict(delivery_id, expected_version=None, actual_version=None)

    logger.info(
        "delivery.transition id=%s action=%s from=%s to=%s actor=%s",
        delivery_id, rule.action, old_status, new_status, actor.id,
    )
    return delivery


def _simple_transition(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    action: str,
    expected_version: int | None,
    at: datetime | None,
) -> ProductDelivery:
    delivery, rule = _begin_transition(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        action=action,
        expected_version=expected_version,
    )
    ts = at or now_utc()
    old_status = delivery.status
    delivery.status = resulting_status(rule, old_status)
    stamps = apply_status_timestamps(
        next_status=delivery.status,
        delivered_at=delivery.delivered_at,
        confirmed_at=delivery.confirmed_at,
        at=ts,
    )
    delivery.delivered_at = stamps["delivered_at"]
    delivery.confirmed_at = stamps["confirmed_at"]
    return _finish_transition(db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts)


def mark_ready_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer has the product in hand."""
    return _simple_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="mark_ready",
        expected_version=expected_version, at=at,
    )


def mark_scheduled_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    scheduled_date: Any,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer fixes a hand-off date."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="mark_scheduled",
        expected_version=expected_version,
    )
    new_date = _parse_date_input(scheduled_date, field="scheduledDate")
    ts = at or now_utc()
    old_status = delivery.status
    delivery.status = resulting_status(rule, old_status)
    delivery.scheduled_date = new_date
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={"scheduledDate": format_iso_datetime(new_date)},
    )


def mark_out_for_delivery_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    tracking_number: str | None = None,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer has dispatched the product."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="mark_out_for_delivery",
        expected_version=expected_version,
    )
    tracking = _clean_text(tracking_number)
    try:
        ensure_tracking_number_allowed(delivery_method=delivery.delivery_method, tracking_number=tracking)
    except ValueError as exc:
        raise DeliveryValidationError(
            "DELIVERY_TRACKING_NOT_ALLOWED",
            str(exc),
            details={"deliveryMethod": delivery.delivery_method},
        ) from exc

    ts = at or now_utc()
    old_status = delivery.status
    delivery.status = resulting_status(rule, old_status)
    details: dict[str, Any] = {}
    if tracking:
        delivery.tracking_number = tracking
        details["trackingNumber"] = tracking
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts, details=details,
    )


def mark_delivered_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer handed the product over; stamps delivered_at."""
    return _simple_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="mark_delivered",
        expected_version=expected_version, at=at,
    )


def confirm_receipt_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Client confirms the hand-off; stamps confirmed_at."""
    return _simple_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="confirm_receipt",
        expected_version=expected_version, at=at,
    )


def report_issue_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    reason: str,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Client disputes the delivery."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="report_issue",
        expected_version=expected_version,
    )
    cleaned = _clean_text(reason)
    if not cleaned:
        raise DeliveryValidationError(
            "DELIVERY_INVALID_INPUT",
            "A reason is required to report an issue",
            details={"field": "reason"},
        )
    ts = at or now_utc()
    old_status = delivery.status
    delivery.status = resulting_status(rule, old_status)
    delivery.dispute_reason = cleaned
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={"reason": cleaned},
    )


def cancel_delivery_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    reason: str | None = None,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Either party cancels. Cancelled is terminal."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="cancel",
        expected_version=expected_version,
    )
    cleaned = _clean_text(reason)
    ts = at or now_utc()
    old_status = delivery.status
    delivery.status = resulting_status(rule, old_status)
    delivery.cancellation_reason = cleaned
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={"reason": cleaned},
    )


def request_reschedule_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    proposed_date: Any,
    reason: str | None = None,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Client proposes a new hand-off date. Status is unchanged."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="request_reschedule",
        expected_version=expected_version,
    )
    requested_date = _parse_date_input(proposed_date, field="proposedDate")
    ts = at or now_utc()
    old_status = delivery.status

    replaced = pending_reschedule_request(delivery) is not None
    request = RescheduleRequest(
        requested_date=requested_date,
        reason=_clean_text(reason),
        requested_at=ts,
    )
    store_reschedule_request(
        delivery,
        request,
        mirror_to_client_notes=settings.RESCHEDULE_MIRROR_CLIENT_NOTES,
    )
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={
            "requestedDate": format_iso_datetime(requested_date),
            "reason": request.reason,
            "replacedPrevious": replaced,
        },
    )


def approve_reschedule_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    new_date: Any,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer accepts a reschedule; the delivery becomes scheduled on new_date."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="approve_reschedule",
        expected_version=expected_version,
    )
    request = pending_reschedule_request(delivery)
    if request is None:
        raise InvalidTransition.no_reschedule_request(action=rule.action)
    normalized_new_date = _parse_date_input(new_date, field="newDate")

    ts = at or now_utc()
    old_status = delivery.status
    prior_date = format_iso_datetime(delivery.scheduled_date)
    decision = " ".join(
        part
        for part in (
            "Reschedule approved",
            f"from {prior_date}" if prior_date else None,
            f"to {format_iso_datetime(normalized_new_date)}",
            f"(reason: {request.reason})" if request.reason else None,
        )
        if part
    )

    delivery.status = resulting_status(rule, old_status)
    delivery.scheduled_date = normalized_new_date
    delivery.notes = _append_note(delivery.notes, decision)
    clear_reschedule_request(delivery)
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={
            "previousDate": prior_date,
            "scheduledDate": format_iso_datetime(normalized_new_date),
            "requestedDate": format_iso_datetime(request.requested_date),
        },
    )


def reject_reschedule_use_case(
    *,
    db: Session,
    delivery_id: UUID,
    actor: Actor,
    reason: str | None = None,
    expected_version: int | None = None,
    at: datetime | None = None,
) -> ProductDelivery:
    """Trainer declines a reschedule; status and date stay as they were."""
    delivery, rule = _begin_transition(
        db=db, delivery_id=delivery_id, actor=actor, action="reject_reschedule",
        expected_version=expected_version,
    )
    request = pending_reschedule_request(delivery)
    if request is None:
        raise InvalidTransition.no_reschedule_request(action=rule.action)

    ts = at or now_utc()
    old_status = delivery.status
    rejection_reason = _clean_text(reason) or request.reason or "No reason provided"
    delivery.notes = _append_note(delivery.notes, f"Reschedule rejected: {rejection_reason}")
    clear_reschedule_request(delivery)
    return _finish_transition(
        db=db, delivery=delivery, rule=rule, actor=actor, old_status=old_status, at=ts,
        details={"reason": rejection_reason},
    )
