"""Read-side delivery listings for trainer, client and manager views."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import Actor
from ..domain_errors import DomainError
from ..models import ProductDelivery
from ..security import require_delivery_access
from ..services.delivery_rules import DELIVERY_STATUSES, OPEN_STATUSES, RESCHEDULABLE_STATUSES
from ..services.reschedule_codec import LEGACY_RESCHEDULE_MARKER, RESCHEDULE_REQUEST_PREFIX
from ..services.reschedule_negotiation import pending_reschedule_request
from .delivery_transitions import get_delivery_or_404

ROLE_FILTERS = ("trainer", "client")


def _default_role_filter(actor: Actor) -> str:
    return "client" if actor.role == "client" else "trainer"


def list_deliveries_use_case(
    *,
    db: Session,
    actor: Actor,
    role_filter: str | None = None,
) -> list[ProductDelivery]:
    """Records where the actor is the trainer (or the client), newest first."""
    role = role_filter or _default_role_filter(actor)
    if role not in ROLE_FILTERS:
        raise DomainError(
            code="DELIVERY_INVALID_ROLE_FILTER",
            http_status=400,
            message=f"Unknown role filter: {role}",
        )

    query = db.query(ProductDelivery)
    if role == "trainer":
        query = query.filter(ProductDelivery.trainer_id == actor.id)
    else:
        query = query.filter(ProductDelivery.client_id == actor.id)
    return query.order_by(ProductDelivery.created_at.desc()).all()


def get_delivery_use_case(*, db: Session, delivery_id: UUID, actor: Actor) -> ProductDelivery:
    delivery = get_delivery_or_404(db=db, delivery_id=delivery_id)
    require_delivery_access(delivery, actor)
    return delivery


def list_open_deliveries_use_case(*, db: Session, actor: Actor) -> list[ProductDelivery]:
    """Trainer's deliveries still waiting for hand-off, soonest first."""
    return db.query(ProductDelivery).filter(
        ProductDelivery.trainer_id == actor.id,
        ProductDelivery.status.in_(OPEN_STATUSES),
    ).order_by(ProductDelivery.scheduled_date.asc()).all()


def _request_sort_key(delivery: ProductDelivery):
    request = pending_reschedule_request(delivery)
    requested_at = request.requested_at if request else None
    # Legacy requests carry no timestamp; they go last, by record age.
    return (requested_at is None, requested_at or delivery.created_at)


def list_reschedule_requests_use_case(*, db: Session, actor: Actor) -> list[ProductDelivery]:
    """Trainer's deliveries holding a pending reschedule request, oldest request first."""
    candidates = db.query(ProductDelivery).filter(
        ProductDelivery.trainer_id == actor.id,
        ProductDelivery.status.in_(RESCHEDULABLE_STATUSES),
        or_(
            ProductDelivery.reschedule_requested_at.isnot(None),
            ProductDelivery.client_notes.startswith(RESCHEDULE_REQUEST_PREFIX),
            ProductDelivery.client_notes.ilike(f"%{LEGACY_RESCHEDULE_MARKER}%"),
        ),
    ).order_by(ProductDelivery.created_at.asc()).all()

    # SQL narrows the set; the codec decides (malformed payloads drop out here).
    with_request = [d for d in candidates if pending_reschedule_request(d) is not None]
    return sorted(with_request, key=_request_sort_key)


def list_all_deliveries_use_case(
    *,
    db: Session,
    limit: int,
    offset: int = 0,
    status: str | None = None,
    search: str | None = None,
) -> list[ProductDelivery]:
    """Manager listing with status and product-name filters."""
    query = db.query(ProductDelivery)
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        unknown = [s for s in statuses if s not in DELIVERY_STATUSES]
        if unknown:
            raise DomainError(
                code="DELIVERY_INVALID_STATUS_FILTER",
                http_status=400,
                message=f"Unknown delivery status: {', '.join(unknown)}",
            )
        query = query.filter(ProductDelivery.status.in_(statuses))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                ProductDelivery.product_name.ilike(pattern),
                ProductDelivery.tracking_number.ilike(pattern),
            )
        )
    return query.order_by(ProductDelivery.created_at.desc()).offset(offset).limit(limit).all()
