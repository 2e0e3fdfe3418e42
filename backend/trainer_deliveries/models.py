"""SQLAlchemy models for product delivery fulfillment."""
from sqlalchemy import (
    Column, String, Integer, DateTime, Text,
    ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


DELIVERY_STATUS_VALUES = (
    'pending', 'ready', 'scheduled', 'out_for_delivery',
    'delivered', 'confirmed', 'disputed', 'cancelled',
)
DELIVERY_METHOD_VALUES = ('in_person', 'locker', 'front_desk', 'shipped')


class ProductDelivery(Base):
    """One physical-product hand-off owed by a trainer to a client."""
    __tablename__ = "product_deliveries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Owned by the commerce platform; kept as opaque references.
    order_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    order_item_id = Column(UUID(as_uuid=True), nullable=True)
    trainer_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    client_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), nullable=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    status = Column(String(30), nullable=False, default='pending', index=True)
    delivery_method = Column(String(30), nullable=False, default='in_person')
    tracking_number = Column(String(255), nullable=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=True, index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)  # Trainer-authored
    client_notes = Column(Text, nullable=True)  # Client-authored; may carry an encoded reschedule request
    dispute_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Pending reschedule request; reschedule_requested_at is NULL when there is none.
    reschedule_requested_date = Column(DateTime(timezone=True), nullable=True)
    reschedule_reason = Column(Text, nullable=True)
    reschedule_requested_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(status.in_(DELIVERY_STATUS_VALUES), name='chk_delivery_status'),
        CheckConstraint(delivery_method.in_(DELIVERY_METHOD_VALUES), name='chk_delivery_method'),
        CheckConstraint('quantity >= 1', name='chk_delivery_quantity'),
        CheckConstraint(
            "tracking_number IS NULL OR delivery_method = 'shipped'",
            name='chk_delivery_tracking_shipped',
        ),
        Index('idx_deliveries_trainer_status', 'trainer_id', 'status'),
    )

    # Relationships
    audit_events = relationship("DeliveryAuditEvent", back_populates="delivery", order_by="DeliveryAuditEvent.created_at")


class DeliveryAuditEvent(Base):
    """Audit trail row written with every successful transition."""
    __tablename__ = "delivery_audit_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    delivery_id = Column(UUID(as_uuid=True), ForeignKey("product_deliveries.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    actor_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    actor_role = Column(String(30), nullable=False)
    old_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=True)
    details = Column(JSONB, default={})
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'delivery_created', 'delivery_ready', 'delivery_scheduled',
                'delivery_out_for_delivery', 'delivery_delivered', 'delivery_confirmed',
                'delivery_disputed', 'delivery_cancelled',
                'reschedule_requested', 'reschedule_approved', 'reschedule_rejected',
                'reschedule_imported',
            ]),
            name='chk_delivery_audit_action'
        ),
    )

    # Relationships
    delivery = relationship("ProductDelivery", back_populates="audit_events")


class NotificationOutbox(Base):
    """
    Notification outbox - ONE ROW PER RECIPIENT.
    Drained by the notification service; nothing in this service sends.
    """
    __tablename__ = "notification_outbox"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(String(50), nullable=False)
    delivery_id = Column(UUID(as_uuid=True), ForeignKey("product_deliveries.id"), nullable=True, index=True)
    triggered_by_id = Column(UUID(as_uuid=True), nullable=True)
    recipient_user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    message = Column(Text, nullable=False)
    meta_data = Column(JSONB, default={})  # 'metadata' is reserved by SQLAlchemy
    status = Column(String(20), default='pending', index=True)  # pending/sent/failed/skipped
    # Format: type:delivery_id:version:user_id
    idempotency_key = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
