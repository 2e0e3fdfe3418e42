from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.orm.exc import StaleDataError

from trainer_deliveries.auth import Actor
from trainer_deliveries.domain_errors import DomainError
from trainer_deliveries.models import DeliveryAuditEvent, NotificationOutbox
from trainer_deliveries.services.reschedule_codec import RESCHEDULE_REQUEST_PREFIX
from trainer_deliveries.services.delivery_rules import TRANSITION_RULES
from trainer_deliveries.use_cases.delivery_transitions import (
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

NOW = datetime(2026, 2, 20, 12, 0, tzinfo=timezone.utc)
LATER = datetime(2026, 2, 21, 12, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, result) -> None:
        self._result = result

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._result


class _SessionStub:
    def __init__(self, delivery, *, stale_on_commit: bool = False) -> None:
        self.delivery = delivery
        self.stale_on_commit = stale_on_commit
        self.added: list[object] = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, _model):
        return _QueryStub(self.delivery)

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def commit(self) -> None:
        if self.stale_on_commit:
            raise StaleDataError("UPDATE statement on table 'product_deliveries' expected to update 1 row(s)")
        self.commit_calls += 1

    def rollback(self) -> None:
        self.rollback_calls += 1
        # Rolled-back instances are expired; attribute reads would hit the database.
        if self.delivery is not None and hasattr(self.delivery, "id"):
            del self.delivery.id

    def audit_events(self) -> list[DeliveryAuditEvent]:
        return [obj for obj in self.added if isinstance(obj, DeliveryAuditEvent)]

    def notifications(self) -> list[NotificationOutbox]:
        return [obj for obj in self.added if isinstance(obj, NotificationOutbox)]


def _delivery(*, status="pending", delivery_method="in_person", **overrides):
    fields = dict(
        id=uuid4(),
        trainer_id=uuid4(),
        client_id=uuid4(),
        product_name="Kettlebell 12kg",
        quantity=1,
        status=status,
        delivery_method=delivery_method,
        tracking_number=None,
        scheduled_date=None,
        delivered_at=None,
        confirmed_at=None,
        notes=None,
        client_notes=None,
        dispute_reason=None,
        cancellation_reason=None,
        reschedule_requested_date=None,
        reschedule_reason=None,
        reschedule_requested_at=None,
        version=1,
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _trainer(delivery) -> Actor:
    return Actor(id=delivery.trainer_id, role="trainer")


def _client(delivery) -> Actor:
    return Actor(id=delivery.client_id, role="client")


def _assert_error(exc_info, *, code: str, http_status: int) -> DomainError:
    assert exc_info.value.code == code
    assert exc_info.value.http_status == http_status
    return exc_info.value


# Happy paths ---------------------------------------------------------------

def test_in_person_pickup_to_confirmation() -> None:
    delivery = _delivery()
    db = _SessionStub(delivery)

    mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), at=NOW)
    assert delivery.status == "ready"

    mark_delivered_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), at=NOW)
    assert delivery.status == "delivered"
    assert delivery.delivered_at == NOW

    confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery), at=LATER)
    assert delivery.status == "confirmed"
    assert delivery.confirmed_at == LATER
    assert delivery.delivered_at == NOW

    assert [event.action for event in db.audit_events()] == [
        "delivery_ready",
        "delivery_delivered",
        "delivery_confirmed",
    ]
    assert db.commit_calls == 3


def test_delivered_at_stays_empty_until_handover() -> None:
    disputed_early = _delivery()
    db = _SessionStub(disputed_early)

    mark_ready_use_case(db=db, delivery_id=disputed_early.id, actor=_trainer(disputed_early), at=NOW)
    assert (disputed_early.delivered_at, disputed_early.confirmed_at) == (None, None)

    report_issue_use_case(
        db=db, delivery_id=disputed_early.id, actor=_client(disputed_early), reason="Wrong size", at=LATER,
    )
    assert disputed_early.status == "disputed"
    assert disputed_early.dispute_reason == "Wrong size"
    assert (disputed_early.delivered_at, disputed_early.confirmed_at) == (None, None)

    dispatched = _delivery(status="ready")
    mark_out_for_delivery_use_case(
        db=_SessionStub(dispatched), delivery_id=dispatched.id, actor=_trainer(dispatched), at=NOW,
    )
    assert dispatched.status == "out_for_delivery"
    assert (dispatched.delivered_at, dispatched.confirmed_at) == (None, None)


def test_mark_ready_twice_fails_the_second_time() -> None:
    delivery = _delivery()
    db = _SessionStub(delivery)

    mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery))
    with pytest.raises(DomainError) as exc_info:
        mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery))

    _assert_error(exc_info, code="DELIVERY_INVALID_STATE", http_status=409)
    assert delivery.status == "ready"
    assert db.commit_calls == 1


def test_shipped_delivery_records_tracking_number() -> None:
    delivery = _delivery(status="scheduled", delivery_method="shipped")
    db = _SessionStub(delivery)

    mark_out_for_delivery_use_case(
        db=db, delivery_id=delivery.id, actor=_trainer(delivery), tracking_number="  TRK-42  ", at=NOW,
    )

    assert delivery.status == "out_for_delivery"
    assert delivery.tracking_number == "TRK-42"
    assert db.audit_events()[0].details == {"trackingNumber": "TRK-42"}


def test_tracking_number_rejected_for_non_shipped_method() -> None:
    delivery = _delivery(status="ready", delivery_method="locker")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        mark_out_for_delivery_use_case(
            db=db, delivery_id=delivery.id, actor=_trainer(delivery), tracking_number="TRK-42",
        )

    _assert_error(exc_info, code="DELIVERY_TRACKING_NOT_ALLOWED", http_status=400)
    assert delivery.status == "ready"
    assert db.commit_calls == 0


def test_mark_scheduled_sets_normalized_date() -> None:
    delivery = _delivery(status="ready")
    db = _SessionStub(delivery)

    mark_scheduled_use_case(
        db=db, delivery_id=delivery.id, actor=_trainer(delivery), scheduled_date="2026-03-01T12:00:00+02:00", at=NOW,
    )

    assert delivery.status == "scheduled"
    assert delivery.scheduled_date == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert delivery.updated_at == NOW


def test_mark_scheduled_rejects_unparseable_date() -> None:
    delivery = _delivery(status="pending")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        mark_scheduled_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), scheduled_date="next week")

    error = _assert_error(exc_info, code="DELIVERY_INVALID_DATE", http_status=400)
    assert error.details == {"field": "scheduledDate"}
    assert delivery.status == "pending"


# Reschedule negotiation ----------------------------------------------------

def test_reschedule_request_then_approval() -> None:
    delivery = _delivery(status="ready", notes="Bring to the studio")
    db = _SessionStub(delivery)

    request_reschedule_use_case(
        db=db,
        delivery_id=delivery.id,
        actor=_client(delivery),
        proposed_date="2026-03-01T10:00:00Z",
        reason="Travelling",
        at=NOW,
    )

    assert delivery.status == "ready"
    assert delivery.reschedule_requested_date == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert delivery.reschedule_reason == "Travelling"
    assert delivery.reschedule_requested_at == NOW
    assert delivery.client_notes.startswith(RESCHEDULE_REQUEST_PREFIX)

    approve_reschedule_use_case(
        db=db,
        delivery_id=delivery.id,
        actor=_trainer(delivery),
        new_date="2026-03-02T10:00:00Z",
        at=LATER,
    )

    assert delivery.status == "scheduled"
    assert delivery.scheduled_date == datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
    assert delivery.reschedule_requested_at is None
    assert delivery.reschedule_reason is None
    assert delivery.client_notes is None
    assert delivery.notes == (
        "Bring to the studio\nReschedule approved to 2026-03-02T10:00:00Z (reason: Travelling)"
    )
    assert [event.action for event in db.audit_events()] == ["reschedule_requested", "reschedule_approved"]


def test_approval_note_mentions_previous_date() -> None:
    delivery = _delivery(
        status="scheduled",
        scheduled_date=datetime(2026, 2, 25, 9, 0, tzinfo=timezone.utc),
        reschedule_requested_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
        reschedule_requested_at=NOW,
    )
    db = _SessionStub(delivery)

    approve_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_trainer(delivery), new_date="2026-03-01", at=LATER,
    )

    assert delivery.notes == "Reschedule approved from 2026-02-25T09:00:00Z to 2026-03-01T00:00:00Z"
    assert db.audit_events()[0].details["previousDate"] == "2026-02-25T09:00:00Z"


def test_reschedule_rejection_keeps_status_and_date() -> None:
    scheduled = datetime(2026, 2, 25, 9, 0, tzinfo=timezone.utc)
    delivery = _delivery(status="scheduled", scheduled_date=scheduled)
    db = _SessionStub(delivery)

    request_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_client(delivery), proposed_date="2026-03-01", at=NOW,
    )
    reject_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_trainer(delivery), reason="Fully booked", at=LATER,
    )

    assert delivery.status == "scheduled"
    assert delivery.scheduled_date == scheduled
    assert delivery.notes == "Reschedule rejected: Fully booked"
    assert delivery.reschedule_requested_at is None
    assert delivery.client_notes is None


def test_reschedule_rejection_falls_back_to_request_reason_then_default() -> None:
    with_reason = _delivery(status="pending", reschedule_reason="Sick", reschedule_requested_at=NOW)
    reject_reschedule_use_case(db=_SessionStub(with_reason), delivery_id=with_reason.id, actor=_trainer(with_reason))
    assert with_reason.notes == "Reschedule rejected: Sick"

    without_reason = _delivery(status="pending", reschedule_requested_at=NOW)
    reject_reschedule_use_case(
        db=_SessionStub(without_reason), delivery_id=without_reason.id, actor=_trainer(without_reason),
    )
    assert without_reason.notes == "Reschedule rejected: No reason provided"


def test_new_request_replaces_pending_one() -> None:
    delivery = _delivery(
        status="pending",
        reschedule_requested_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
        reschedule_reason="First",
        reschedule_requested_at=NOW,
    )
    db = _SessionStub(delivery)

    request_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_client(delivery), proposed_date="2026-03-05", reason="Second", at=LATER,
    )

    assert delivery.reschedule_reason == "Second"
    assert delivery.reschedule_requested_at == LATER
    assert db.audit_events()[0].details["replacedPrevious"] is True


def test_approval_and_rejection_need_a_pending_request() -> None:
    delivery = _delivery(status="scheduled", client_notes="Leave at reception")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as approve_info:
        approve_reschedule_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), new_date="2026-03-01")
    with pytest.raises(DomainError) as reject_info:
        reject_reschedule_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery))

    _assert_error(approve_info, code="DELIVERY_NO_RESCHEDULE_REQUEST", http_status=409)
    _assert_error(reject_info, code="DELIVERY_NO_RESCHEDULE_REQUEST", http_status=409)
    assert delivery.client_notes == "Leave at reception"


def test_approval_reads_legacy_request_from_client_notes() -> None:
    delivery = _delivery(status="ready", client_notes="Reschedule requested: client has a conflict")
    db = _SessionStub(delivery)

    approve_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_trainer(delivery), new_date="2026-03-01", at=NOW,
    )

    assert delivery.status == "scheduled"
    assert delivery.client_notes is None
    assert delivery.notes.endswith("(reason: client has a conflict)")


def test_corrupted_payload_does_not_block_the_lifecycle() -> None:
    delivery = _delivery(status="ready", client_notes=RESCHEDULE_REQUEST_PREFIX + "{broken")
    db = _SessionStub(delivery)

    mark_delivered_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), at=NOW)

    assert delivery.status == "delivered"


def test_leaving_reschedulable_states_discards_pending_request() -> None:
    delivery = _delivery(status="scheduled", reschedule_requested_at=NOW, reschedule_reason="Busy")
    db = _SessionStub(delivery)

    mark_delivered_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), at=LATER)

    assert delivery.reschedule_requested_at is None
    assert delivery.reschedule_reason is None
    assert db.audit_events()[0].details == {"rescheduleDiscarded": True}


def test_request_not_allowed_after_dispatch() -> None:
    delivery = _delivery(status="out_for_delivery")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        request_reschedule_use_case(
            db=db, delivery_id=delivery.id, actor=_client(delivery), proposed_date="2026-03-01",
        )

    _assert_error(exc_info, code="DELIVERY_INVALID_STATE", http_status=409)


def test_mirror_can_be_switched_off(monkeypatch) -> None:
    from trainer_deliveries.config import settings

    monkeypatch.setattr(settings, "RESCHEDULE_MIRROR_CLIENT_NOTES", False)
    delivery = _delivery(status="pending", client_notes="Ring twice")
    db = _SessionStub(delivery)

    request_reschedule_use_case(
        db=db, delivery_id=delivery.id, actor=_client(delivery), proposed_date="2026-03-01", at=NOW,
    )

    assert delivery.client_notes == "Ring twice"
    assert delivery.reschedule_requested_at == NOW


# Disputes and cancellation -------------------------------------------------

def test_report_issue_after_delivery_records_reason() -> None:
    delivery = _delivery(status="delivered", delivered_at=NOW)
    db = _SessionStub(delivery)

    report_issue_use_case(
        db=db, delivery_id=delivery.id, actor=_client(delivery), reason="  Box was damaged ", at=LATER,
    )

    assert delivery.status == "disputed"
    assert delivery.dispute_reason == "Box was damaged"
    assert delivery.delivered_at == NOW
    assert delivery.confirmed_at is None


def test_report_issue_requires_reason() -> None:
    delivery = _delivery(status="delivered")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        report_issue_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery), reason="   ")

    _assert_error(exc_info, code="DELIVERY_INVALID_INPUT", http_status=400)
    assert delivery.status == "delivered"


def test_disputed_delivery_can_still_be_cancelled_but_not_confirmed() -> None:
    delivery = _delivery(status="disputed")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery))
    _assert_error(exc_info, code="DELIVERY_INVALID_STATE", http_status=409)

    cancel_delivery_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), reason="Refunded")
    assert delivery.status == "cancelled"
    assert delivery.cancellation_reason == "Refunded"


def test_either_party_can_cancel() -> None:
    by_client = _delivery(status="pending")
    cancel_delivery_use_case(db=_SessionStub(by_client), delivery_id=by_client.id, actor=_client(by_client))
    assert by_client.status == "cancelled"
    assert by_client.cancellation_reason is None

    by_trainer = _delivery(status="out_for_delivery")
    cancel_delivery_use_case(db=_SessionStub(by_trainer), delivery_id=by_trainer.id, actor=_trainer(by_trainer))
    assert by_trainer.status == "cancelled"


_ACTION_CALLS = {
    "mark_ready": lambda db, d, a: mark_ready_use_case(db=db, delivery_id=d.id, actor=a),
    "mark_scheduled": lambda db, d, a: mark_scheduled_use_case(
        db=db, delivery_id=d.id, actor=a, scheduled_date="2026-03-01",
    ),
    "mark_out_for_delivery": lambda db, d, a: mark_out_for_delivery_use_case(db=db, delivery_id=d.id, actor=a),
    "mark_delivered": lambda db, d, a: mark_delivered_use_case(db=db, delivery_id=d.id, actor=a),
    "confirm_receipt": lambda db, d, a: confirm_receipt_use_case(db=db, delivery_id=d.id, actor=a),
    "report_issue": lambda db, d, a: report_issue_use_case(db=db, delivery_id=d.id, actor=a, reason="Broken"),
    "cancel": lambda db, d, a: cancel_delivery_use_case(db=db, delivery_id=d.id, actor=a),
    "request_reschedule": lambda db, d, a: request_reschedule_use_case(
        db=db, delivery_id=d.id, actor=a, proposed_date="2026-03-01",
    ),
    "approve_reschedule": lambda db, d, a: approve_reschedule_use_case(
        db=db, delivery_id=d.id, actor=a, new_date="2026-03-01",
    ),
    "reject_reschedule": lambda db, d, a: reject_reschedule_use_case(db=db, delivery_id=d.id, actor=a),
}


def test_every_rule_has_a_use_case() -> None:
    assert set(_ACTION_CALLS) == set(TRANSITION_RULES)


@pytest.mark.parametrize("terminal_status", ["confirmed", "cancelled"])
@pytest.mark.parametrize("action", sorted(_ACTION_CALLS))
def test_terminal_states_reject_every_action(terminal_status: str, action: str) -> None:
    delivery = _delivery(status=terminal_status, reschedule_requested_at=NOW)
    db = _SessionStub(delivery)
    rule = TRANSITION_RULES[action]
    actor = _client(delivery) if rule.capability == "client" else _trainer(delivery)

    with pytest.raises(DomainError) as exc_info:
        _ACTION_CALLS[action](db, delivery, actor)

    _assert_error(exc_info, code="DELIVERY_INVALID_STATE", http_status=409)
    assert delivery.status == terminal_status
    assert db.added == []
    assert db.commit_calls == 0


# Access, actor and concurrency checks -------------------------------------

def test_missing_delivery_is_not_found() -> None:
    db = _SessionStub(None)
    missing_id = uuid4()

    with pytest.raises(DomainError) as exc_info:
        mark_ready_use_case(db=db, delivery_id=missing_id, actor=Actor(id=uuid4(), role="trainer"))

    error = _assert_error(exc_info, code="DELIVERY_NOT_FOUND", http_status=404)
    assert error.details == {"deliveryId": str(missing_id)}


def test_outsider_is_denied_access() -> None:
    delivery = _delivery(status="pending")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        mark_ready_use_case(db=db, delivery_id=delivery.id, actor=Actor(id=uuid4(), role="trainer"))

    _assert_error(exc_info, code="DELIVERY_ACCESS_DENIED", http_status=403)


def test_wrong_party_is_reported_separately_from_wrong_state() -> None:
    delivery = _delivery(status="pending")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as actor_info:
        mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery))
    with pytest.raises(DomainError) as state_info:
        confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery))

    actor_error = _assert_error(actor_info, code="DELIVERY_ACTOR_NOT_PERMITTED", http_status=403)
    state_error = _assert_error(state_info, code="DELIVERY_INVALID_STATE", http_status=409)
    assert actor_error.details["reason"] == "actor"
    assert actor_error.message == "Only the trainer can mark ready this delivery"
    assert state_error.details["reason"] == "state"
    assert state_error.message == "Cannot confirm receipt of a delivery that is pending"


def test_trainer_cannot_confirm_on_behalf_of_client() -> None:
    delivery = _delivery(status="delivered")
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery))

    _assert_error(exc_info, code="DELIVERY_ACTOR_NOT_PERMITTED", http_status=403)
    assert delivery.status == "delivered"


def test_manager_may_act_for_either_party() -> None:
    delivery = _delivery(status="delivered")
    db = _SessionStub(delivery)
    manager = Actor(id=uuid4(), role="manager")

    confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=manager, at=NOW)

    assert delivery.status == "confirmed"
    recipients = {n.recipient_user_id for n in db.notifications()}
    assert recipients == {delivery.trainer_id, delivery.client_id}


def test_expected_version_mismatch_is_a_conflict() -> None:
    delivery = _delivery(status="pending", version=4)
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), expected_version=3)

    error = _assert_error(exc_info, code="DELIVERY_VERSION_CONFLICT", http_status=409)
    assert error.details["expectedVersion"] == 3
    assert error.details["actualVersion"] == 4
    assert delivery.status == "pending"


def test_matching_expected_version_is_applied() -> None:
    delivery = _delivery(status="pending", version=4)
    db = _SessionStub(delivery)

    mark_ready_use_case(db=db, delivery_id=delivery.id, actor=_trainer(delivery), expected_version=4)

    assert delivery.status == "ready"


@pytest.mark.parametrize("terminal_status", ["confirmed", "cancelled"])
def test_stale_version_against_finished_record_reports_state(terminal_status: str) -> None:
    delivery = _delivery(status=terminal_status, version=3)
    db = _SessionStub(delivery)

    with pytest.raises(DomainError) as exc_info:
        cancel_delivery_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery), expected_version=2)

    error = _assert_error(exc_info, code="DELIVERY_INVALID_STATE", http_status=409)
    assert error.details["status"] == terminal_status
    assert db.added == []


def test_concurrent_write_detected_at_commit_is_a_conflict() -> None:
    delivery = _delivery(status="pending")
    delivery_id = delivery.id
    db = _SessionStub(delivery, stale_on_commit=True)

    with pytest.raises(DomainError) as exc_info:
        mark_ready_use_case(db=db, delivery_id=delivery_id, actor=_trainer(delivery))

    error = _assert_error(exc_info, code="DELIVERY_VERSION_CONFLICT", http_status=409)
    assert error.details["deliveryId"] == str(delivery_id)
    assert db.rollback_calls == 1
    assert not hasattr(delivery, "id")


# Side records --------------------------------------------------------------

def test_transition_writes_audit_event_and_notifies_counterparty() -> None:
    delivery = _delivery(status="pending")
    db = _SessionStub(delivery)
    trainer = _trainer(delivery)

    mark_ready_use_case(db=db, delivery_id=delivery.id, actor=trainer, at=NOW)

    [event] = db.audit_events()
    assert event.delivery_id == delivery.id
    assert event.actor_id == trainer.id
    assert event.actor_role == "trainer"
    assert (event.old_status, event.new_status) == ("pending", "ready")

    [notification] = db.notifications()
    assert notification.recipient_user_id == delivery.client_id
    assert notification.type == "delivery_mark_ready"
    assert notification.message == "Kettlebell 12kg is ready for pickup"
    assert notification.idempotency_key == f"delivery_mark_ready:{delivery.id}:1:{delivery.client_id}"


def test_client_action_notifies_trainer() -> None:
    delivery = _delivery(status="delivered")
    db = _SessionStub(delivery)

    confirm_receipt_use_case(db=db, delivery_id=delivery.id, actor=_client(delivery))

    assert [n.recipient_user_id for n in db.notifications()] == [delivery.trainer_id]
