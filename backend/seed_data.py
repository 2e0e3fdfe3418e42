"""Seed database with demo deliveries."""
from trainer_deliveries.database import SessionLocal
from trainer_deliveries.models import ProductDelivery
from trainer_deliveries.services.reschedule_codec import RescheduleRequest
from trainer_deliveries.services.reschedule_negotiation import store_reschedule_request
from datetime import datetime, timedelta, timezone
import uuid

TRAINER_ID = uuid.UUID('00000000-0000-0000-0000-000000000101')
CLIENT_ID = uuid.UUID('00000000-0000-0000-0000-000000000102')
SECOND_CLIENT_ID = uuid.UUID('00000000-0000-0000-0000-000000000103')
ORDER_ID = uuid.UUID('00000000-0000-0000-0000-000000000201')


def seed():
    """Seed database with demo deliveries."""
    db = SessionLocal()
    now = datetime.now(timezone.utc)

    try:
        deliveries_data = [
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000301'),
                'client_id': CLIENT_ID,
                'product_name': 'Resistance band set',
                'status': 'pending',
                'delivery_method': 'in_person',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000302'),
                'client_id': CLIENT_ID,
                'product_name': 'Foam roller',
                'status': 'ready',
                'delivery_method': 'front_desk',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000303'),
                'client_id': CLIENT_ID,
                'product_name': 'Kettlebell 12kg',
                'status': 'scheduled',
                'delivery_method': 'locker',
                'scheduled_date': now + timedelta(days=3),
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000304'),
                'client_id': SECOND_CLIENT_ID,
                'product_name': 'Protein shaker',
                'status': 'out_for_delivery',
                'delivery_method': 'shipped',
                'tracking_number': 'TRK-100200300',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000305'),
                'client_id': SECOND_CLIENT_ID,
                'product_name': 'Yoga mat',
                'status': 'delivered',
                'delivery_method': 'in_person',
                'delivered_at': now - timedelta(days=1),
            },
        ]

        deliveries = []
        for delivery_data in deliveries_data:
            delivery = ProductDelivery(
                order_id=ORDER_ID,
                trainer_id=TRAINER_ID,
                quantity=1,
                **delivery_data
            )
            db.add(delivery)
            deliveries.append(delivery)

        # One open reschedule request so the trainer's queue is not empty.
        store_reschedule_request(
            deliveries[2],
            RescheduleRequest(
                requested_date=now + timedelta(days=5),
                reason='Travelling that week',
                requested_at=now,
            ),
            mirror_to_client_notes=True,
        )

        db.commit()
        print(f"Seeded {len(deliveries)} deliveries for trainer {TRAINER_ID}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
