"""Delivery lifecycle transition table and invariant helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

DELIVERY_STATUSES: tuple[str, ...] = (
    "pending",
    "ready",
    "scheduled",
    "out_for_delivery",
    "delivered",
    "confirmed",
    "disputed",
    "cancelled",
)
DELIVERY_METHODS: tuple[str, ...] = ("in_person", "locker", "front_desk", "shipped")

TERMINAL_STATUSES: frozenset[str] = frozenset({"confirmed", "cancelled"})
NON_TERMINAL_STATUSES: frozenset[str] = frozenset(DELIVERY_STATUSES) - TERMINAL_STATUSES
RESCHEDULABLE_STATUSES: frozenset[str] = frozenset({"pending", "ready", "scheduled"})
OPEN_STATUSES: tuple[str, ...] = ("pending", "ready", "scheduled", "out_for_delivery")

CAPABILITY_TRAINER = "trainer"
CAPABILITY_CLIENT = "client"
CAPABILITY_PARTY = "party"  # either side


@dataclass(frozen=True)
class TransitionRule:
    action: str
    sources: frozenset[str]
    capability: str
    target: str | None  # None keeps the current status
    label: str
    audit_action: str


TRANSITION_RULES: dict[str, TransitionRule] = {
    rule.action: rule
    for rule in (
        TransitionRule(
            action="mark_ready",
            sources=frozenset({"pending"}),
            capability=CAPABILITY_TRAINER,
            target="ready",
            label="mark ready",
            audit_action="delivery_ready",
        ),
        TransitionRule(
            action="mark_scheduled",
            sources=frozenset({"pending", "ready"}),
            capability=CAPABILITY_TRAINER,
            target="scheduled",
            label="schedule",
            audit_action="delivery_scheduled",
        ),
        TransitionRule(
            action="mark_out_for_delivery",
            sources=frozenset({"ready", "scheduled"}),
            capability=CAPABILITY_TRAINER,
            target="out_for_delivery",
            label="send out",
            audit_action="delivery_out_for_delivery",
        ),
        TransitionRule(
            action="mark_delivered",
            sources=frozenset({"ready", "scheduled", "out_for_delivery"}),
            capability=CAPABILITY_TRAINER,
            target="delivered",
            label="mark delivered",
            audit_action="delivery_delivered",
        ),
        TransitionRule(
            action="confirm_receipt",
            sources=frozenset({"delivered"}),
            capability=CAPABILITY_CLIENT,
            target="confirmed",
            label="confirm receipt of",
            audit_action="delivery_confirmed",
        ),
        # Disputes before hand-off ("ready") are kept from the legacy behaviour.
        TransitionRule(
            action="report_issue",
            sources=frozenset({"ready", "delivered"}),
            capability=CAPABILITY_CLIENT,
            target="disputed",
            label="report an issue with",
            audit_action="delivery_disputed",
        ),
        TransitionRule(
            action="cancel",
            sources=NON_TERMINAL_STATUSES,
            capability=CAPABILITY_PARTY,
            target="cancelled",
            label="cancel",
            audit_action="delivery_cancelled",
        ),
        TransitionRule(
            action="request_reschedule",
            sources=RESCHEDULABLE_STATUSES,
            capability=CAPABILITY_CLIENT,
            target=None,
            label="request a new date for",
            audit_action="reschedule_requested",
        ),
        TransitionRule(
            action="approve_reschedule",
            sources=RESCHEDULABLE_STATUSES,
            capability=CAPABILITY_TRAINER,
            target="scheduled",
            label="approve a new date for",
            audit_action="reschedule_approved",
        ),
        TransitionRule(
            action="reject_reschedule",
            sources=NON_TERMINAL_STATUSES,
            capability=CAPABILITY_TRAINER,
            target=None,
            label="reject a new date for",
            audit_action="reschedule_rejected",
        ),
    )
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_rule(action: str) -> TransitionRule:
    try:
        return TRANSITION_RULES[action]
    except KeyError:
        raise ValueError(f"Unknown delivery transition: {action}") from None


def is_terminal_status(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


def is_known_status(status: str | None) -> bool:
    return status in DELIVERY_STATUSES


def is_source_allowed(rule: TransitionRule, current_status: str | None) -> bool:
    return current_status in rule.sources


def resulting_status(rule: TransitionRule, current_status: str) -> str:
    return rule.target or current_status


def allows_reschedule_request(status: str | None) -> bool:
    return status in RESCHEDULABLE_STATUSES


def apply_status_timestamps(
    *,
    next_status: str,
    delivered_at: datetime | None,
    confirmed_at: datetime | None,
    at: datetime | None = None,
) -> dict[str, datetime | None]:
    """Timestamps are written once and never moved."""
    ts = at or now_utc()
    updated_delivered_at = delivered_at
    updated_confirmed_at = confirmed_at

    if next_status == "delivered" and updated_delivered_at is None:
        updated_delivered_at = ts
    if next_status == "confirmed" and updated_confirmed_at is None:
        updated_confirmed_at = ts

    return {
        "delivered_at": updated_delivered_at,
        "confirmed_at": updated_confirmed_at,
    }


def ensure_tracking_number_allowed(*, delivery_method: str | None, tracking_number: str | None) -> None:
    if tracking_number and delivery_method != "shipped":
        raise ValueError("Tracking numbers are only allowed for shipped deliveries")
