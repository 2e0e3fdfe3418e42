"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class DeliveryNotFound(DomainError):
    """Referenced delivery record does not exist."""

    def __init__(self, delivery_id: UUID | str) -> None:
        super().__init__(
            code="DELIVERY_NOT_FOUND",
            http_status=404,
            message="Delivery not found",
            details={"deliveryId": str(delivery_id)},
        )


class DeliveryAccessDenied(DomainError):
    """Actor is neither the trainer nor the client of the delivery."""

    def __init__(self, delivery_id: UUID | str) -> None:
        super().__init__(
            code="DELIVERY_ACCESS_DENIED",
            http_status=403,
            message="You do not have permission to access this delivery",
            details={"deliveryId": str(delivery_id)},
        )


class InvalidTransition(DomainError):
    """Transition attempted from a disallowed state or by the wrong party.

    ``details["reason"]`` is ``"state"`` or ``"actor"`` so clients can tell
    the two apart without parsing the message.
    """

    @classmethod
    def wrong_state(cls, *, action: str, label: str, current_status: str) -> "InvalidTransition":
        return cls(
            code="DELIVERY_INVALID_STATE",
            http_status=409,
            message=f"Cannot {label} a delivery that is {current_status.replace('_', ' ')}",
            details={"reason": "state", "action": action, "status": current_status},
        )

    @classmethod
    def wrong_actor(cls, *, action: str, label: str, required: str) -> "InvalidTransition":
        return cls(
            code="DELIVERY_ACTOR_NOT_PERMITTED",
            http_status=403,
            message=f"Only the {required} can {label} this delivery",
            details={"reason": "actor", "action": action, "requiredCapability": required},
        )

    @classmethod
    def no_reschedule_request(cls, *, action: str) -> "InvalidTransition":
        return cls(
            code="DELIVERY_NO_RESCHEDULE_REQUEST",
            http_status=409,
            message="This delivery has no pending reschedule request",
            details={"reason": "state", "action": action},
        )


class DeliveryConflict(DomainError):
    """Record changed since the caller read it."""

    def __init__(self, delivery_id: UUID | str, *, expected_version: int | None, actual_version: int | None) -> None:
        super().__init__(
            code="DELIVERY_VERSION_CONFLICT",
            http_status=409,
            message="Delivery was modified by someone else; reload and try again",
            details={
                "deliveryId": str(delivery_id),
                "expectedVersion": expected_version,
                "actualVersion": actual_version,
            },
        )


class DeliveryValidationError(DomainError):
    """Bad input at the use-case boundary (dates, tracking numbers)."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=400, message=message, details=details)
