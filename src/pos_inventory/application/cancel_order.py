"""Application service: Cancel Order use case.

Releases the order's reservation.  Stock never changes: nothing was
deducted while the reservation was held.
"""

from __future__ import annotations

from pos_inventory.application.dto import OrderOutcomeDTO
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.service.reservation_service import ReservationEngine


class CancelOrderHandler:

    def __init__(self, engine: ReservationEngine) -> None:
        self._engine = engine

    def handle(self, order_id: str, actor: Actor, reason: str = "Order cancelled") -> OrderOutcomeDTO:
        reservation = self._engine.reservation_for_order(order_id)
        if reservation is None:
            return OrderOutcomeDTO(
                order_id=order_id,
                has_inventory_integration=False,
                message="No inventory reservation for this order",
            )

        result = self._engine.release_reservation(reservation.id, actor, reason)
        if result.already_released:
            message = "Reservation was already released"
        else:
            message = f"Released {len(result.released_lines)} ingredient hold(s)"
        return OrderOutcomeDTO(
            order_id=order_id,
            has_inventory_integration=True,
            message=message,
            reservation_id=result.reservation.id,
            status=result.reservation.status.value,
        )
