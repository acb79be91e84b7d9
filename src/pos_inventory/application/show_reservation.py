"""Application service: Show Reservation use case (query)."""

from __future__ import annotations

from pos_inventory.application.dto import ReservationDTO, reservation_to_dto
from pos_inventory.domain.model.clock import Clock, utc_now
from pos_inventory.domain.service.reservation_service import ReservationEngine


class ShowReservationHandler:

    def __init__(self, engine: ReservationEngine, clock: Clock = utc_now) -> None:
        self._engine = engine
        self._clock = clock

    def handle(self, reservation_id: str) -> ReservationDTO:
        view = self._engine.reservation_status(reservation_id)
        return reservation_to_dto(view.reservation, self._clock())
