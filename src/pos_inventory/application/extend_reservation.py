"""Application service: Extend Reservation use case."""

from __future__ import annotations

from pos_inventory.application.dto import ReservationDTO, reservation_to_dto
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.clock import Clock, utc_now
from pos_inventory.domain.service.reservation_service import ReservationEngine


class ExtendReservationHandler:

    def __init__(self, engine: ReservationEngine, clock: Clock = utc_now) -> None:
        self._engine = engine
        self._clock = clock

    def handle(self, reservation_id: str, minutes: int, actor: Actor, reason: str = "") -> ReservationDTO:
        reservation = self._engine.extend_reservation(reservation_id, minutes, actor, reason)
        return reservation_to_dto(reservation, self._clock())
