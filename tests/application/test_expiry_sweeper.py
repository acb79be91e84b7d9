"""Tests for the background release of expired reservations."""

import time
from decimal import Decimal

from pos_inventory.application.expiry_sweeper import EXPIRY_REASON, ExpirySweeper
from pos_inventory.domain.exceptions import StoreUnavailableError
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.audit import ReferenceType
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.recipe import OrderLine, RecipeRequirement
from pos_inventory.domain.model.reservation import ReservationStatus
from pos_inventory.domain.model.reservation_result import ReservationOptions
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.service.audit_service import AuditLedger
from pos_inventory.domain.service.availability_service import AvailabilityService
from pos_inventory.domain.service.reservation_service import ReservationEngine
from tests.fakes import FakeClock, FakeUnitOfWork

CASHIER = Actor("till-1")


def _setup():
    uow = FakeUnitOfWork(
        [Ingredient("flour", "Flour", Unit.GRAMS, Decimal("1000"))],
        [RecipeRequirement.of("bread", "flour", "300", "g")],
    )
    clock = FakeClock()
    availability = AvailabilityService(uow, clock)
    engine = ReservationEngine(uow, availability, AuditLedger(uow, clock=clock), clock=clock)
    return uow, clock, availability, engine


def _reserve(engine, order_id, ttl):
    return engine.create_reservation(
        order_id, [OrderLine("bread", 1)], CASHIER, ReservationOptions(ttl_minutes=ttl)
    ).reservation


class TestSweep:

    def test_nothing_to_do(self):
        _, _, _, engine = _setup()
        _reserve(engine, "o1", 15)
        result = ExpirySweeper(engine).sweep()
        assert result.total_expired == 0
        assert result.released == 0

    def test_expired_reservation_is_released_and_stock_freed(self):
        uow, clock, availability, engine = _setup()
        expired = _reserve(engine, "o1", 1)
        live = _reserve(engine, "o2", 15)
        clock.advance(minutes=1)

        result = ExpirySweeper(engine, interval_seconds=60).sweep()

        assert result.total_expired == 1
        assert result.released == 1
        assert result.failed == []
        stored = uow.reservations.get_by_id(expired.id)
        assert stored.status == ReservationStatus.RELEASED
        assert stored.modified_by == "system"
        assert EXPIRY_REASON in stored.notes
        assert uow.reservations.get_by_id(live.id).status == ReservationStatus.ACTIVE

        release = uow.audit.list_all()[0]
        assert release.reference_type == ReferenceType.ORDER_RELEASE
        assert release.performed_by == "system"
        assert availability.ingredient_availability("flour").available == Decimal("700")

    def test_freed_stock_can_be_reserved_again(self):
        _, clock, _, engine = _setup()
        for i in range(3):
            _reserve(engine, f"o{i}", 1)
        assert _reserve(engine, "late", 15) is None

        clock.advance(minutes=2)
        ExpirySweeper(engine).sweep()
        assert _reserve(engine, "late", 15) is not None

    def test_second_sweep_is_a_no_op(self):
        _, clock, _, engine = _setup()
        _reserve(engine, "o1", 1)
        clock.advance(minutes=5)
        sweeper = ExpirySweeper(engine)
        sweeper.sweep()
        assert sweeper.sweep().total_expired == 0

    def test_one_failure_does_not_stop_the_sweep(self, monkeypatch):
        _, clock, _, engine = _setup()
        first = _reserve(engine, "o1", 1)
        _reserve(engine, "o2", 1)
        clock.advance(minutes=2)

        original = engine.release_reservation

        def flaky(reservation_id, actor, reason):
            if reservation_id == first.id:
                raise StoreUnavailableError("write failed")
            return original(reservation_id, actor, reason)

        monkeypatch.setattr(engine, "release_reservation", flaky)
        result = ExpirySweeper(engine).sweep()
        assert result.total_expired == 2
        assert result.released == 1
        assert [f.reservation_id for f in result.failed] == [first.id]
        assert result.failed[0].error == "write failed"

    def test_unexpected_error_on_one_reservation_is_contained(self, monkeypatch):
        _, clock, _, engine = _setup()
        broken = _reserve(engine, "o1", 1)
        _reserve(engine, "o2", 1)
        clock.advance(minutes=2)

        original = engine.release_reservation

        def malformed(reservation_id, actor, reason):
            if reservation_id == broken.id:
                raise KeyError("lines")
            return original(reservation_id, actor, reason)

        monkeypatch.setattr(engine, "release_reservation", malformed)
        result = ExpirySweeper(engine).sweep()
        assert result.released == 1
        assert [f.reservation_id for f in result.failed] == [broken.id]


class TestBackgroundLoop:

    def test_start_and_stop(self):
        uow, clock, _, engine = _setup()
        expired = _reserve(engine, "o1", 1)
        clock.advance(minutes=2)

        sweeper = ExpirySweeper(engine, interval_seconds=0.01)
        sweeper.start()
        try:
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                if uow.reservations.get_by_id(expired.id).status == ReservationStatus.RELEASED:
                    break
                time.sleep(0.01)
        finally:
            sweeper.stop(timeout=5)

        assert not sweeper.running
        assert uow.reservations.get_by_id(expired.id).status == ReservationStatus.RELEASED

    def test_loop_survives_a_failed_pass(self, monkeypatch):
        uow, clock, _, engine = _setup()
        expired = _reserve(engine, "o1", 1)
        clock.advance(minutes=2)

        original = engine.find_expired
        calls = []

        def unreadable_once():
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("unreadable reservation record")
            return original()

        monkeypatch.setattr(engine, "find_expired", unreadable_once)
        sweeper = ExpirySweeper(engine, interval_seconds=0.01)
        sweeper.start()
        try:
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                if uow.reservations.get_by_id(expired.id).status == ReservationStatus.RELEASED:
                    break
                time.sleep(0.01)
            assert sweeper.running
        finally:
            sweeper.stop(timeout=5)

        assert len(calls) >= 2
        assert uow.reservations.get_by_id(expired.id).status == ReservationStatus.RELEASED
