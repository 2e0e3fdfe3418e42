"""Access checks for delivery records (party membership and capabilities)."""

from __future__ import annotations

from typing import Any

from .auth import Actor
from .domain_errors import DeliveryAccessDenied
from .services.delivery_rules import CAPABILITY_CLIENT, CAPABILITY_PARTY, CAPABILITY_TRAINER


def is_delivery_trainer(delivery: Any, actor: Actor) -> bool:
    return delivery.trainer_id == actor.id


def is_delivery_client(delivery: Any, actor: Actor) -> bool:
    return delivery.client_id == actor.id


def can_view_delivery(delivery: Any, actor: Actor) -> bool:
    """Visibility policy: the two parties and manager-like roles."""
    if actor.is_manager:
        return True
    return is_delivery_trainer(delivery, actor) or is_delivery_client(delivery, actor)


def require_delivery_access(delivery: Any, actor: Actor) -> None:
    if not can_view_delivery(delivery, actor):
        raise DeliveryAccessDenied(delivery.id)


def has_capability(delivery: Any, actor: Actor, capability: str) -> bool:
    """Whether the actor may act as ``capability`` on this delivery."""
    if actor.is_manager:
        return True
    if capability == CAPABILITY_TRAINER:
        return is_delivery_trainer(delivery, actor)
    if capability == CAPABILITY_CLIENT:
        return is_delivery_client(delivery, actor)
    if capability == CAPABILITY_PARTY:
        return is_delivery_trainer(delivery, actor) or is_delivery_client(delivery, actor)
    return False
