"""Application service: Check Availability use case (query).

Used by order entry to warn before an order is submitted.  Nothing is
held; the answer can be stale a moment later.
"""

from __future__ import annotations

from pos_inventory.application.dto import AvailabilityDTO, OrderItemSpec, report_to_dto
from pos_inventory.domain.service.availability_service import AvailabilityService


class CheckAvailabilityHandler:

    def __init__(self, availability: AvailabilityService) -> None:
        self._availability = availability

    def handle(self, items: list[OrderItemSpec]) -> AvailabilityDTO:
        lines = [item.to_order_line() for item in items]
        report = self._availability.order_availability(lines)
        return report_to_dto(report)
