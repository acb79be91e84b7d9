"""Expiry Sweeper: background release of reservations past their deadline.

Readers already treat an expired reservation as not holding stock; the
sweeper makes that durable by releasing it through the normal
``ReservationEngine.release_reservation`` path, so every expiry gets the
same state transition and audit entry as a cancellation.

One reservation failing to release, for any reason, is logged with its
traceback and skipped; the rest of the sweep carries on and the failure is
retried on the next pass.  An error that stops a whole pass is logged and
the background loop keeps ticking.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import structlog

from pos_inventory.domain.model.actor import SYSTEM_ACTOR, Actor
from pos_inventory.domain.service.reservation_service import ReservationEngine

logger = structlog.get_logger(__name__)

EXPIRY_REASON = "automatic cleanup - expired"


@dataclass(frozen=True)
class SweepFailure:
    reservation_id: str
    error: str


@dataclass(frozen=True)
class SweepResult:
    total_expired: int
    released: int
    failed: list[SweepFailure] = field(default_factory=list)


class ExpirySweeper:

    def __init__(
        self,
        engine: ReservationEngine,
        interval_seconds: float = 60,
        actor: Actor = SYSTEM_ACTOR,
    ) -> None:
        self._engine = engine
        self._interval = interval_seconds
        self._actor = actor
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def sweep(self) -> SweepResult:
        expired = self._engine.find_expired()
        released = 0
        failures: list[SweepFailure] = []
        for reservation in expired:
            try:
                self._engine.release_reservation(reservation.id, self._actor, EXPIRY_REASON)
            except Exception as exc:
                logger.exception(
                    "expired_release_failed",
                    reservation_id=reservation.id,
                    order_id=reservation.order_id,
                    error=str(exc),
                )
                failures.append(SweepFailure(reservation.id, str(exc)))
                continue
            released += 1

        if expired:
            logger.info(
                "expiry_sweep_completed",
                total_expired=len(expired),
                released=released,
                failed=len(failures),
            )
        return SweepResult(total_expired=len(expired), released=released, failed=failures)

    # --- Background loop ------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="reservation-expiry-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("expiry_sweeper_started", interval_seconds=self._interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("expiry_sweeper_stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.sweep()
            except Exception as exc:
                # Retried on the next tick.
                logger.exception("expiry_sweep_failed", error=str(exc))
            self._stop.wait(self._interval)
