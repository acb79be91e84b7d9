"""Application service: Reserve Order use case.

Wraps ``ReservationEngine.create_reservation`` for order submission.  When
the store fails part-way through, the handler makes one attempt to release
whatever may exist for the order and reports how that went in a
``CleanupResult`` attached to the raised ``OrderProcessingError``.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pos_inventory.application.dto import OrderItemSpec
from pos_inventory.domain.exceptions import (
    DomainException,
    OrderProcessingError,
    StoreUnavailableError,
    ValidationError,
)
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.reservation_result import (
    VALIDATION_FAILED,
    ReservationOptions,
    ReservationResult,
)
from pos_inventory.domain.service.reservation_service import ReservationEngine

logger = structlog.get_logger(__name__)

CLEANUP_REASON = "order processing failed"


@dataclass(frozen=True)
class CleanupResult:
    attempted: bool
    succeeded: bool
    error: str | None = None


class ReserveOrderHandler:

    def __init__(self, engine: ReservationEngine) -> None:
        self._engine = engine

    def handle(
        self,
        order_id: str,
        items: list[OrderItemSpec],
        actor: Actor,
        options: ReservationOptions | None = None,
    ) -> ReservationResult:
        try:
            lines = [item.to_order_line() for item in items]
        except ValidationError as exc:
            return ReservationResult.failed(VALIDATION_FAILED, str(exc))

        try:
            return self._engine.create_reservation(order_id, lines, actor, options)
        except StoreUnavailableError as exc:
            cleanup = self._cleanup(order_id, actor)
            logger.error(
                "order_processing_failed",
                order_id=order_id,
                error=str(exc),
                cleanup_succeeded=cleanup.succeeded,
            )
            raise OrderProcessingError(
                f"Could not reserve inventory for order {order_id}: {exc}",
                cleanup=cleanup,
            ) from exc

    def _cleanup(self, order_id: str, actor: Actor) -> CleanupResult:
        try:
            reservation = self._engine.reservation_for_order(order_id)
            if reservation is not None and reservation.is_open:
                self._engine.release_reservation(reservation.id, actor, CLEANUP_REASON)
        except DomainException as exc:
            logger.warning("order_cleanup_failed", order_id=order_id, error=str(exc))
            return CleanupResult(attempted=True, succeeded=False, error=str(exc))
        return CleanupResult(attempted=True, succeeded=True)
