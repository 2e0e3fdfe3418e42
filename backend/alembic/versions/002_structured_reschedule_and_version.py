"""structured reschedule request, optimistic version and cancellation reason

Revision ID: 002
Revises: 001
Create Date: 2026-10-15
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("ALTER TABLE product_deliveries ADD COLUMN IF NOT EXISTS reschedule_requested_date TIMESTAMPTZ")
    op.execute("ALTER TABLE product_deliveries ADD COLUMN IF NOT EXISTS reschedule_reason TEXT")
    op.execute("ALTER TABLE product_deliveries ADD COLUMN IF NOT EXISTS reschedule_requested_at TIMESTAMPTZ")
    op.execute("ALTER TABLE product_deliveries ADD COLUMN IF NOT EXISTS cancellation_reason TEXT")
    op.execute("ALTER TABLE product_deliveries ADD COLUMN IF NOT EXISTS version INTEGER NOT NULL DEFAULT 1")

    # Requests still living in client_notes are copied over by import_legacy_reschedules.py.
    op.execute("ALTER TABLE delivery_audit_events DROP CONSTRAINT IF EXISTS chk_delivery_audit_action")
    op.execute(
        """
        ALTER TABLE delivery_audit_events
        ADD CONSTRAINT chk_delivery_audit_action CHECK (
            action IN (
                'delivery_created', 'delivery_ready', 'delivery_scheduled',
                'delivery_out_for_delivery', 'delivery_delivered', 'delivery_confirmed',
                'delivery_disputed', 'delivery_cancelled',
                'reschedule_requested', 'reschedule_approved', 'reschedule_rejected',
                'reschedule_imported'
            )
        )
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE delivery_audit_events DROP CONSTRAINT IF EXISTS chk_delivery_audit_action")
    op.execute(
        """
        ALTER TABLE delivery_audit_events
        ADD CONSTRAINT chk_delivery_audit_action CHECK (
            action IN (
                'delivery_created', 'delivery_ready', 'delivery_scheduled',
                'delivery_out_for_delivery', 'delivery_delivered', 'delivery_confirmed',
                'delivery_disputed', 'delivery_cancelled',
                'reschedule_requested', 'reschedule_approved', 'reschedule_rejected'
            )
        )
        """
    )
    op.execute("ALTER TABLE product_deliveries DROP COLUMN IF EXISTS version")
    op.execute("ALTER TABLE product_deliveries DROP COLUMN IF EXISTS cancellation_reason")
    op.execute("ALTER TABLE product_deliveries DROP COLUMN IF EXISTS reschedule_requested_at")
    op.execute("ALTER TABLE product_deliveries DROP COLUMN IF EXISTS reschedule_reason")
    op.execute("ALTER TABLE product_deliveries DROP COLUMN IF EXISTS reschedule_requested_date")
