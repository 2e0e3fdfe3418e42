"""product_deliveries, delivery audit trail and notification outbox

Revision ID: 001
Revises:
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "product_deliveries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("order_item_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("trainer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("delivery_method", sa.String(length=30), nullable=False, server_default="in_person"),
        sa.Column("tracking_number", sa.String(length=255), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("client_notes", sa.Text(), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'ready', 'scheduled', 'out_for_delivery', "
            "'delivered', 'confirmed', 'disputed', 'cancelled')",
            name="chk_delivery_status",
        ),
        sa.CheckConstraint(
            "delivery_method IN ('in_person', 'locker', 'front_desk', 'shipped')",
            name="chk_delivery_method",
        ),
        sa.CheckConstraint("quantity >= 1", name="chk_delivery_quantity"),
        sa.CheckConstraint(
            "tracking_number IS NULL OR delivery_method = 'shipped'",
            name="chk_delivery_tracking_shipped",
        ),
    )
    op.create_index("ix_product_deliveries_order_id", "product_deliveries", ["order_id"])
    op.create_index("ix_product_deliveries_trainer_id", "product_deliveries", ["trainer_id"])
    op.create_index("ix_product_deliveries_client_id", "product_deliveries", ["client_id"])
    op.create_index("ix_product_deliveries_status", "product_deliveries", ["status"])
    op.create_index("ix_product_deliveries_scheduled_date", "product_deliveries", ["scheduled_date"])
    op.create_index("ix_product_deliveries_created_at", "product_deliveries", ["created_at"])
    op.create_index("idx_deliveries_trainer_status", "product_deliveries", ["trainer_id", "status"])

    op.create_table(
        "delivery_audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "delivery_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("product_deliveries.id"),
            nullable=False,
        ),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_role", sa.String(length=30), nullable=False),
        sa.Column("old_status", sa.String(length=30), nullable=True),
        sa.Column("new_status", sa.String(length=30), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "action IN ('delivery_created', 'delivery_ready', 'delivery_scheduled', "
            "'delivery_out_for_delivery', 'delivery_delivered', 'delivery_confirmed', "
            "'delivery_disputed', 'delivery_cancelled', "
            "'reschedule_requested', 'reschedule_approved', 'reschedule_rejected')",
            name="chk_delivery_audit_action",
        ),
    )
    op.create_index("ix_delivery_audit_events_delivery_id", "delivery_audit_events", ["delivery_id"])
    op.create_index("ix_delivery_audit_events_action", "delivery_audit_events", ["action"])
    op.create_index("ix_delivery_audit_events_actor_id", "delivery_audit_events", ["actor_id"])
    op.create_index("ix_delivery_audit_events_created_at", "delivery_audit_events", ["created_at"])

    op.create_table(
        "notification_outbox",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column(
            "delivery_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("product_deliveries.id"),
            nullable=True,
        ),
        sa.Column("triggered_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("recipient_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("meta_data", postgresql.JSONB(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True, server_default="pending"),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_notification_outbox_delivery_id", "notification_outbox", ["delivery_id"])
    op.create_index("ix_notification_outbox_recipient_user_id", "notification_outbox", ["recipient_user_id"])
    op.create_index("ix_notification_outbox_status", "notification_outbox", ["status"])
    op.create_index("ix_notification_outbox_created_at", "notification_outbox", ["created_at"])


def downgrade() -> None:
    op.drop_table("notification_outbox")
    op.drop_table("delivery_audit_events")
    op.drop_table("product_deliveries")
