"""Create delivery records for a placed order."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..auth import Actor
from ..domain_errors import DomainError, DeliveryValidationError
from ..models import DeliveryAuditEvent, NotificationOutbox, ProductDelivery
from ..services.delivery_rules import DELIVERY_METHODS, now_utc
from ..services.reschedule_codec import format_iso_datetime, normalize_iso_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryLine:
    """One product line of an order that needs physical hand-off."""

    product_name: str
    quantity: int = 1
    product_id: UUID | None = None
    order_item_id: UUID | None = None


def _resolve_trainer_id(*, actor: Actor, trainer_id: UUID | None) -> UUID:
    if actor.is_manager:
        if trainer_id is None:
            raise DeliveryValidationError(
                "DELIVERY_INVALID_INPUT",
                "trainerId is required when creating deliveries on behalf of a trainer",
                details={"field": "trainerId"},
            )
        return trainer_id
    if actor.role != "trainer":
        raise DomainError(
            code="DELIVERY_CREATE_FORBIDDEN",
            http_status=403,
            message="Only trainers can create deliveries",
        )
    if trainer_id is not None and trainer_id != actor.id:
        raise DomainError(
            code="DELIVERY_CREATE_FORBIDDEN",
            http_status=403,
            message="Trainers can only create their own deliveries",
        )
    return actor.id


def create_deliveries_for_order_use_case(
    *,
    db: Session,
    actor: Actor,
    order_id: UUID | None,
    client_id: UUID,
    lines: list[DeliveryLine],
    scheduled_date: Any = None,
    delivery_method: str | None = None,
    trainer_id: UUID | None = None,
) -> list[ProductDelivery]:
    """Create one pending delivery per order line."""
    resolved_trainer_id = _resolve_trainer_id(actor=actor, trainer_id=trainer_id)

    if not lines:
        raise DeliveryValidationError(
            "DELIVERY_INVALID_INPUT",
            "At least one product is required",
            details={"field": "products"},
        )
    method = delivery_method or "in_person"
    if method not in DELIVERY_METHODS:
        raise DeliveryValidationError(
            "DELIVERY_INVALID_INPUT",
            f"Unknown delivery method: {method}",
            details={"field": "deliveryMethod"},
        )
    normalized_date = None
    if scheduled_date is not None:
        normalized_date = normalize_iso_datetime(scheduled_date)
        if normalized_date is None:
            raise DeliveryValidationError(
                "DELIVERY_INVALID_DATE",
                "Invalid scheduledDate",
                details={"field": "scheduledDate"},
            )

    for line in lines:
        if not line.product_name.strip() or line.quantity < 1:
            raise DeliveryValidationError(
                "DELIVERY_INVALID_INPUT",
                "Each product needs a name and a positive quantity",
                details={"field": "products"},
            )

    ts = now_utc()
    deliveries: list[ProductDelivery] = []
    for line in lines:
        delivery = ProductDelivery(
            id=uuid4(),
            order_id=order_id,
            order_item_id=line.order_item_id,
            trainer_id=resolved_trainer_id,
            client_id=client_id,
            product_id=line.product_id,
            product_name=line.product_name.strip(),
            quantity=line.quantity,
            status="pending",
            delivery_method=method,
            scheduled_date=normalized_date,
            created_at=ts,
            updated_at=ts,
        )
        db.add(delivery)
        deliveries.append(delivery)
    db.flush()

    for delivery in deliveries:
        db.add(
            DeliveryAuditEvent(
                delivery_id=delivery.id,
                action="delivery_created",
                actor_id=actor.id,
                actor_role=actor.role,
                old_status=None,
                new_status="pending",
                details={
                    "orderId": str(order_id) if order_id else None,
                    "scheduledDate": format_iso_datetime(normalized_date),
                },
            )
        )
        db.add(
            NotificationOutbox(
                type="delivery_created",
                delivery_id=delivery.id,
                triggered_by_id=actor.id,
                recipient_user_id=client_id,
                message=f"{delivery.product_name} will be delivered to you",
                meta_data={"orderId": str(order_id) if order_id else None},
                status="pending",
                idempotency_key=f"delivery_created:{delivery.id}:{client_id}",
            )
        )

    db.commit()
    logger.info(
        "delivery.created order=%s count=%d trainer=%s client=%s",
        order_id, len(deliveries), resolved_trainer_id, client_id,
    )
    return deliveries
