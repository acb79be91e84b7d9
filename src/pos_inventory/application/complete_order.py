"""Application service: Complete Order use case.

Turns the order's reservation into a permanent stock decrement.  Orders
that never needed a reservation (untracked menu items) complete without
touching inventory.
"""

from __future__ import annotations

from pos_inventory.application.dto import OrderOutcomeDTO
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.service.reservation_service import ReservationEngine


class CompleteOrderHandler:

    def __init__(self, engine: ReservationEngine) -> None:
        self._engine = engine

    def handle(self, order_id: str, actor: Actor) -> OrderOutcomeDTO:
        reservation = self._engine.reservation_for_order(order_id)
        if reservation is None:
            return OrderOutcomeDTO(
                order_id=order_id,
                has_inventory_integration=False,
                message="No inventory reservation for this order",
            )

        result = self._engine.consume_reservation(reservation.id, actor)
        return OrderOutcomeDTO(
            order_id=order_id,
            has_inventory_integration=True,
            message=(
                f"Consumed {len(result.consumed_lines)} ingredient(s) "
                f"worth {result.total_value}"
            ),
            reservation_id=result.reservation.id,
            status=result.reservation.status.value,
        )
