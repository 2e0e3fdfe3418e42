"""Delivery endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
from ..auth import Actor, RoleChecker, get_current_actor
from ..config import settings
from ..database import get_db
from ..schemas import (
    CancelRequest,
    DeliveryCreate,
    DeliveryCreateResponse,
    DeliveryResponse,
    OutForDeliveryRequest,
    ReportIssueRequest,
    RescheduleApproval,
    RescheduleProposal,
    RescheduleRejection,
    ScheduleRequest,
    TransitionRequest,
)
from ..services.delivery_response_builder import deliveries_to_response, delivery_to_response
from ..use_cases.delivery_creation import DeliveryLine, create_deliveries_for_order_use_case
from ..use_cases.delivery_queries import (
    get_delivery_use_case,
    list_all_deliveries_use_case,
    list_deliveries_use_case,
    list_open_deliveries_use_case,
    list_reschedule_requests_use_case,
)
from ..use_cases.delivery_transitions import (
    approve_reschedule_use_case,
    cancel_delivery_use_case,
    confirm_receipt_use_case,
    mark_delivered_use_case,
    mark_out_for_delivery_use_case,
    mark_ready_use_case,
    mark_scheduled_use_case,
    reject_reschedule_use_case,
    report_issue_use_case,
    request_reschedule_use_case,
)

router = APIRouter(prefix="/deliveries", tags=["deliveries"])

require_trainer = RoleChecker("trainer")
require_manager = RoleChecker()


@router.get("", response_model=list[DeliveryResponse])
def list_deliveries(
    role: Optional[str] = Query(None, pattern="^(trainer|client)$"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Deliveries where the caller is the trainer or the client."""
    return deliveries_to_response(list_deliveries_use_case(db=db, actor=actor, role_filter=role))


@router.get("/pending", response_model=list[DeliveryResponse])
def list_open_deliveries(
    actor: Actor = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    """Trainer's deliveries not yet handed over."""
    return deliveries_to_response(list_open_deliveries_use_case(db=db, actor=actor))


@router.get("/reschedule-requests", response_model=list[DeliveryResponse])
def list_reschedule_requests(
    actor: Actor = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    """Trainer's deliveries with a reschedule waiting for an answer."""
    return deliveries_to_response(list_reschedule_requests_use_case(db=db, actor=actor))


@router.get("/all", response_model=list[DeliveryResponse])
def list_all_deliveries(
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=settings.DELIVERY_LIST_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """Manager view over every delivery."""
    deliveries = list_all_deliveries_use_case(
        db=db,
        limit=limit,
        offset=offset,
        status=status,
        search=search,
    )
    return deliveries_to_response(deliveries)


@router.post("", response_model=DeliveryCreateResponse, status_code=201)
def create_deliveries(
    data: DeliveryCreate,
    actor: Actor = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    """Create one delivery per product line of an order."""
    deliveries = create_deliveries_for_order_use_case(
        db=db,
        actor=actor,
        order_id=data.order_id,
        client_id=data.client_id,
        trainer_id=data.trainer_id,
        lines=[
            DeliveryLine(
                product_name=line.product_name,
                quantity=line.quantity,
                product_id=line.product_id,
                order_item_id=line.order_item_id,
            )
            for line in data.products
        ],
        scheduled_date=data.scheduled_date,
        delivery_method=data.delivery_method,
    )
    return DeliveryCreateResponse(delivery_ids=[delivery.id for delivery in deliveries])


@router.get("/{delivery_id}", response_model=DeliveryResponse)
def get_delivery(
    delivery_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get delivery by ID."""
    return delivery_to_response(get_delivery_use_case(db=db, delivery_id=delivery_id, actor=actor))


@router.post("/{delivery_id}/ready", response_model=DeliveryResponse)
def mark_ready(
    delivery_id: UUID,
    data: Optional[TransitionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = mark_ready_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/schedule", response_model=DeliveryResponse)
def mark_scheduled(
    delivery_id: UUID,
    data: ScheduleRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = mark_scheduled_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        scheduled_date=data.scheduled_date,
        expected_version=data.expected_version,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/out-for-delivery", response_model=DeliveryResponse)
def mark_out_for_delivery(
    delivery_id: UUID,
    data: Optional[OutForDeliveryRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = mark_out_for_delivery_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        tracking_number=data.tracking_number if data else None,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/delivered", response_model=DeliveryResponse)
def mark_delivered(
    delivery_id: UUID,
    data: Optional[TransitionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = mark_delivered_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/confirm", response_model=DeliveryResponse)
def confirm_receipt(
    delivery_id: UUID,
    data: Optional[TransitionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = confirm_receipt_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/report-issue", response_model=DeliveryResponse)
def report_issue(
    delivery_id: UUID,
    data: ReportIssueRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = report_issue_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        reason=data.reason,
        expected_version=data.expected_version,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/cancel", response_model=DeliveryResponse)
def cancel_delivery(
    delivery_id: UUID,
    data: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = cancel_delivery_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        reason=data.reason if data else None,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/reschedule-request", response_model=DeliveryResponse)
def request_reschedule(
    delivery_id: UUID,
    data: RescheduleProposal,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = request_reschedule_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        proposed_date=data.proposed_date,
        reason=data.reason,
        expected_version=data.expected_version,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/reschedule-approve", response_model=DeliveryResponse)
def approve_reschedule(
    delivery_id: UUID,
    data: RescheduleApproval,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = approve_reschedule_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        new_date=data.new_date,
        expected_version=data.expected_version,
    )
    return delivery_to_response(delivery)


@router.post("/{delivery_id}/reschedule-reject", response_model=DeliveryResponse)
def reject_reschedule(
    delivery_id: UUID,
    data: Optional[RescheduleRejection] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    delivery = reject_reschedule_use_case(
        db=db,
        delivery_id=delivery_id,
        actor=actor,
        reason=data.reason if data else None,
        expected_version=data.expected_version if data else None,
    )
    return delivery_to_response(delivery)
