"""Delivery response shaping helpers."""

from __future__ import annotations

from typing import Any

from ..schemas import DeliveryResponse, RescheduleRequestOut
from .reschedule_negotiation import pending_reschedule_request


def delivery_to_response(delivery: Any) -> DeliveryResponse:
    response = DeliveryResponse.model_validate(delivery)
    request = pending_reschedule_request(delivery)
    if request is not None:
        response.reschedule_request = RescheduleRequestOut(
            requested_date=request.requested_date,
            reason=request.reason,
            requested_at=request.requested_at,
        )
    return response


def deliveries_to_response(deliveries: list[Any]) -> list[DeliveryResponse]:
    return [delivery_to_response(delivery) for delivery in deliveries]
