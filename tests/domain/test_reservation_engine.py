"""Tests for the Reservation Engine: create, consume, release, extend.

Everything runs against the in-memory unit of work with a controllable
clock, so expiry is exercised by moving time rather than sleeping.
"""

import threading
from decimal import Decimal

import pytest

from pos_inventory.domain.exceptions import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    ReservationExpiredError,
    StateConflictError,
    StoreUnavailableError,
    ValidationError,
)
from pos_inventory.domain.model.actor import Actor, Position
from pos_inventory.domain.model.audit import FlagType, ReferenceType
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.recipe import OrderLine, RecipeRequirement
from pos_inventory.domain.model.reservation import (
    LineStatus,
    ReservationStatus,
    ReservationType,
)
from pos_inventory.domain.model.reservation_result import (
    INSUFFICIENT_INVENTORY,
    NOTHING_RESERVABLE,
    VALIDATION_FAILED,
    OverrideRequest,
    ReservationOptions,
)
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.domain.service.audit_service import AuditLedger
from pos_inventory.domain.service.availability_service import AvailabilityService
from pos_inventory.domain.service.override_policy import (
    INSUFFICIENT_PERMISSIONS,
    INVALID_OVERRIDE_REASON,
)
from pos_inventory.domain.service.reservation_service import (
    ReservationEngine,
    ReservationPolicy,
)
from tests.fakes import FakeClock, FakeUnitOfWork

CASHIER = Actor("till-1")
MANAGER = Actor("manager-1", Position.SHIFT_MANAGER)


def _setup(flour="1000", rice_flour="0", cheese="500"):
    ingredients = [
        Ingredient("flour", "Flour", Unit.GRAMS, Decimal(flour), unit_cost=Money.of("0.004")),
        Ingredient("rice-flour", "Rice Flour", Unit.GRAMS, Decimal(rice_flour),
                   unit_cost=Money.of("0.006")),
        Ingredient("cheese", "Mozzarella", Unit.GRAMS, Decimal(cheese),
                   unit_cost=Money.of("0.01")),
        Ingredient("basil", "Basil", Unit.GRAMS, Decimal("0")),
    ]
    recipes = [
        RecipeRequirement.of("bread", "flour", "300", "g"),
        RecipeRequirement.of("big-bread", "flour", "800", "g"),
        RecipeRequirement.of("focaccia", "flour", "0.5", "kg"),
        RecipeRequirement.of("pizza", "flour", "300", "g", substitutes=["rice-flour"]),
        RecipeRequirement.of("pizza", "cheese", "100", "g"),
        RecipeRequirement.of("pizza", "basil", "5", "g", is_required=False),
        RecipeRequirement.of("rice-cake", "rice-flour", "400", "g"),
    ]
    uow = FakeUnitOfWork(ingredients, recipes)
    clock = FakeClock()
    availability = AvailabilityService(uow, clock)
    ledger = AuditLedger(uow, clock=clock)
    engine = ReservationEngine(uow, availability, ledger, ReservationPolicy(), clock)
    return uow, clock, availability, engine


def _reserve(engine, order_id, item, quantity=1, actor=CASHIER, **options):
    return engine.create_reservation(
        order_id, [OrderLine(item, quantity)], actor, ReservationOptions(**options)
    )


def _audit_types(uow):
    return [e.reference_type for e in reversed(uow.audit.list_all())]


# ── Worked scenarios ─────────────────────────────────────────────────────────


class TestScenarios:

    def test_reserve_reduces_availability(self):
        uow, _, availability, engine = _setup()
        result = _reserve(engine, "o1", "bread")
        assert result.success
        assert result.reservation.status == ReservationStatus.ACTIVE
        assert availability.ingredient_availability("flour").available == Decimal("700")
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("1000")

    def test_second_order_reports_shortage(self):
        _, _, _, engine = _setup()
        _reserve(engine, "o1", "bread")
        result = _reserve(engine, "o2", "big-bread")
        assert not result.success
        assert result.error == INSUFFICIENT_INVENTORY
        assert "Flour short by 100 grams" in result.message
        assert result.can_retry_with_override
        [short] = result.insufficient
        assert short.ingredient_id == "flour"
        assert short.shortage == Decimal("100")

    def test_shortage_message_in_recipe_unit(self):
        _, _, _, engine = _setup(flour="200")
        result = _reserve(engine, "o1", "bread")
        assert result.message == "Insufficient inventory: Flour short by 100 grams"

    def test_consume_deducts_stock(self):
        uow, _, availability, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.consume_reservation(reservation.id, CASHIER)
        stock = availability.ingredient_availability("flour")
        assert stock.on_hand == Decimal("700")
        assert stock.available == Decimal("700")
        assert stock.reserved == Decimal("0")

    def test_release_leaves_stock_untouched(self):
        _, _, availability, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.release_reservation(reservation.id, CASHIER, "customer left")
        stock = availability.ingredient_availability("flour")
        assert stock.on_hand == Decimal("1000")
        assert stock.available == Decimal("1000")

    def test_repeat_call_returns_same_reservation(self):
        uow, _, availability, engine = _setup()
        first = _reserve(engine, "X", "bread")
        commits = uow.commits
        second = _reserve(engine, "X", "bread")
        assert second.success
        assert second.is_idempotent
        assert second.reservation.id == first.reservation.id
        assert uow.commits == commits
        assert availability.ingredient_availability("flour").reserved == Decimal("300")
        assert _audit_types(uow) == [ReferenceType.ORDER_RESERVATION]

    def test_item_without_recipe_needs_no_reservation(self):
        uow, _, availability, engine = _setup(flour="0")
        assert availability.menu_item_availability("soda", 10).is_feasible
        result = _reserve(engine, "o1", "soda", 10)
        assert result.success
        assert not result.has_ingredient_tracking
        assert result.reservation is None
        assert uow.reservations.list_all() == []


# ── Validation ───────────────────────────────────────────────────────────────


class TestValidation:

    def test_blank_order_id(self):
        _, _, _, engine = _setup()
        result = engine.create_reservation(" ", [OrderLine("bread", 1)], CASHIER)
        assert result.error == VALIDATION_FAILED

    def test_no_lines(self):
        _, _, _, engine = _setup()
        result = engine.create_reservation("o1", [], CASHIER)
        assert result.error == VALIDATION_FAILED
        assert "at least one line" in result.message

    def test_non_positive_ttl(self):
        _, _, _, engine = _setup()
        result = _reserve(engine, "o1", "bread", ttl_minutes=-5)
        assert result.error == VALIDATION_FAILED

    def test_recipe_pointing_at_unknown_ingredient(self):
        uow, _, _, engine = _setup()
        uow.recipes.save(RecipeRequirement.of("truffle-pasta", "truffle", "10", "g"))
        result = _reserve(engine, "o1", "truffle-pasta")
        assert result.error == VALIDATION_FAILED
        assert "truffle" in result.message
        assert uow.reservations.list_all() == []


# ── Reservation contents ─────────────────────────────────────────────────────


class TestReservationLines:

    def test_lines_carry_cost_and_allocation(self):
        _, clock, _, engine = _setup()
        result = _reserve(engine, "o1", "pizza", 2, notes="table 4")
        reservation = result.reservation
        flour = next(line for line in reservation.lines if line.ingredient_id == "flour")
        assert flour.quantity_reserved == Decimal("600")
        assert flour.line_cost == Money.of("2.40")
        assert flour.batch_allocations[0].batch_id == "flour-aggregate"
        assert flour.reserved_at == clock()
        assert result.total_value == Money.of("4.40")
        assert reservation.notes == "table 4"

    def test_optional_ingredient_with_no_stock_is_skipped(self):
        _, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "pizza").reservation
        assert "basil" not in [line.ingredient_id for line in reservation.lines]
        assert reservation.status == ReservationStatus.ACTIVE

    def test_default_ttl_applies(self):
        _, clock, _, engine = _setup()
        result = _reserve(engine, "o1", "bread")
        assert (result.expires_at - clock()).total_seconds() == 15 * 60

    def test_custom_ttl(self):
        _, clock, _, engine = _setup()
        result = _reserve(engine, "o1", "bread", ttl_minutes=3)
        assert (result.expires_at - clock()).total_seconds() == 3 * 60

    def test_reservation_is_audited_without_stock_impact(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "pizza").reservation
        [entry] = uow.audit.list_all()
        assert entry.reference_type == ReferenceType.ORDER_RESERVATION
        assert entry.reference_id == "o1"
        assert entry.system_generated
        assert reservation.id in entry.notes
        assert all(line.delta == 0 for line in entry.lines)
        assert entry.total_value_impact == Decimal("0")


class TestSubstitution:

    def test_substitute_covers_short_ingredient(self):
        _, _, availability, engine = _setup(flour="100", rice_flour="500")
        result = _reserve(engine, "o1", "pizza")
        assert result.success
        line = next(line for line in result.reservation.lines if line.substituted_for == "flour")
        assert line.ingredient_id == "rice-flour"
        assert line.quantity_reserved == Decimal("300")
        assert availability.ingredient_availability("rice-flour").available == Decimal("200")
        assert availability.ingredient_availability("flour").reserved == Decimal("0")

    def test_substitute_already_needed_elsewhere_in_order(self):
        _, _, _, engine = _setup(flour="100", rice_flour="500")
        result = engine.create_reservation(
            "o1", [OrderLine("pizza", 1), OrderLine("rice-cake", 1)], CASHIER
        )
        assert not result.success
        assert result.error == INSUFFICIENT_INVENTORY

    def test_failure_offers_substitution_options(self):
        _, _, _, engine = _setup(flour="100", rice_flour="200")
        result = _reserve(engine, "o1", "pizza")
        assert result.error == INSUFFICIENT_INVENTORY
        [option] = result.substitution_options
        assert option.original.ingredient_id == "flour"
        assert option.candidates[0].ingredient_id == "rice-flour"
        assert not option.covered


class TestPartial:

    def test_partial_holds_what_is_available(self):
        _, _, availability, engine = _setup()
        _reserve(engine, "o1", "bread")
        result = _reserve(engine, "o2", "big-bread", allow_partial=True)
        assert result.success
        reservation = result.reservation
        assert reservation.status == ReservationStatus.PARTIAL
        [line] = reservation.lines
        assert line.quantity_reserved == Decimal("700")
        assert line.shortfall == Decimal("100")
        assert availability.ingredient_availability("flour").available == Decimal("0")

    def test_nothing_reservable(self):
        _, _, _, engine = _setup(flour="0")
        result = _reserve(engine, "o1", "bread", allow_partial=True)
        assert result.error == NOTHING_RESERVABLE


class TestManagerOverride:

    def test_override_reserves_beyond_stock(self):
        uow, _, availability, engine = _setup()
        _reserve(engine, "o1", "bread")
        result = _reserve(
            engine, "o2", "big-bread",
            manager_override=OverrideRequest("VIP table, delivery due", MANAGER),
        )
        assert result.success
        reservation = result.reservation
        assert reservation.reservation_type == ReservationType.OVERRIDE
        assert reservation.override.approved_by == "manager-1"
        assert reservation.lines[0].quantity_reserved == Decimal("800")
        assert availability.ingredient_availability("flour").available == Decimal("0")

        entry = uow.audit.list_all()[0]
        assert entry.authorized_by == "manager-1"
        assert [f.type for f in entry.flags] == [FlagType.MANAGER_OVERRIDE]

    def test_approver_defaults_to_actor(self):
        _, _, _, engine = _setup(flour="0")
        result = _reserve(
            engine, "o1", "bread", actor=MANAGER,
            manager_override=OverrideRequest("supplier on the way"),
        )
        assert result.success
        assert result.reservation.created_by == "manager-1"

    def test_cashier_cannot_override(self):
        uow, _, _, engine = _setup(flour="0")
        result = _reserve(
            engine, "o1", "bread", manager_override=OverrideRequest("supplier on the way")
        )
        assert result.error == INSUFFICIENT_PERMISSIONS
        assert uow.reservations.list_all() == []

    def test_reason_too_short(self):
        _, _, _, engine = _setup(flour="0")
        result = _reserve(
            engine, "o1", "bread", manager_override=OverrideRequest("rush", MANAGER)
        )
        assert result.error == INVALID_OVERRIDE_REASON

    def test_consuming_overcommitted_stock_clamps_at_zero(self):
        uow, _, _, engine = _setup()
        first = _reserve(engine, "o1", "bread").reservation
        second = _reserve(
            engine, "o2", "big-bread",
            manager_override=OverrideRequest("VIP table, delivery due", MANAGER),
        ).reservation

        engine.consume_reservation(first.id, CASHIER)
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("700")

        result = engine.consume_reservation(second.id, CASHIER)
        assert result.reservation.status == ReservationStatus.CONSUMED
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("0")
        entry = uow.audit.get_by_id(result.audit_entry_id)
        assert entry.lines[0].delta == Decimal("-700")
        assert entry.lines[0].quantity_after == Decimal("0")
        assert entry.lines[0].value_impact == Decimal("-2.80")


# ── Consume / release / extend ───────────────────────────────────────────────


class TestConsume:

    def test_consumption_is_audited(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        result = engine.consume_reservation(reservation.id, CASHIER)
        assert result.total_value == Money.of("1.20")
        entry = uow.audit.get_by_id(result.audit_entry_id)
        assert entry.reference_type == ReferenceType.ORDER_CONSUMPTION
        line = entry.lines[0]
        assert line.quantity_before == Decimal("1000")
        assert line.delta == Decimal("-300")
        assert line.value_impact == Decimal("-1.20")

    def test_consume_converts_to_stock_unit(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "focaccia").reservation
        engine.consume_reservation(reservation.id, CASHIER)
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("500")

    def test_consume_expired_rejected(self):
        uow, clock, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        clock.advance(minutes=16)
        with pytest.raises(ReservationExpiredError):
            engine.consume_reservation(reservation.id, CASHIER)
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("1000")

    def test_unknown_reservation(self):
        _, _, _, engine = _setup()
        with pytest.raises(EntityNotFoundError):
            engine.consume_reservation("missing", CASHIER)

    def test_stock_lost_after_reserving_fails_consumption(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        with uow:
            flour = uow.ingredients.get_by_id("flour")
            flour.adjust(Decimal("-900"))
            uow.ingredients.save(flour)
            uow.commit()
        audit_count = len(uow.audit.list_all())

        with pytest.raises(ValidationError, match="only 100 on hand"):
            engine.consume_reservation(reservation.id, CASHIER)

        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("100")
        assert engine.reservation_status(reservation.id).effective_status == ReservationStatus.ACTIVE
        assert len(uow.audit.list_all()) == audit_count

    def test_full_consumption_is_priced_at_reserved_cost(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(
            engine, "o1", "big-bread",
            manager_override=OverrideRequest("VIP table, delivery due", MANAGER),
        ).reservation
        result = engine.consume_reservation(reservation.id, CASHIER)
        entry = uow.audit.get_by_id(result.audit_entry_id)
        assert entry.lines[0].delta == Decimal("-800")
        assert entry.lines[0].value_impact == Decimal("-3.20")


class TestRelease:

    def test_release_is_audited(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "pizza").reservation
        result = engine.release_reservation(reservation.id, CASHIER, "customer left")
        assert len(result.released_lines) == 2
        assert _audit_types(uow) == [
            ReferenceType.ORDER_RESERVATION, ReferenceType.ORDER_RELEASE,
        ]
        entry = uow.audit.list_all()[0]
        assert {line.reason for line in entry.lines} == {"customer left"}

    def test_release_twice_is_a_no_op(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.release_reservation(reservation.id, CASHIER)
        again = engine.release_reservation(reservation.id, CASHIER)
        assert again.already_released
        assert again.released_lines == ()
        assert len(uow.audit.list_all()) == 2

    def test_release_expired_reservation(self):
        _, clock, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        clock.advance(minutes=30)
        result = engine.release_reservation(reservation.id, CASHIER, "expired")
        assert result.was_expired
        assert result.reservation.status == ReservationStatus.RELEASED


class TestTerminalStates:

    def test_consumed_reservation_is_final(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.consume_reservation(reservation.id, CASHIER)
        with pytest.raises(StateConflictError):
            engine.consume_reservation(reservation.id, CASHIER)
        with pytest.raises(StateConflictError):
            engine.release_reservation(reservation.id, CASHIER)
        with pytest.raises(StateConflictError):
            engine.extend_reservation(reservation.id, 5, CASHIER)
        assert uow.reservations.get_by_id(reservation.id).status == ReservationStatus.CONSUMED
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("700")

    def test_released_reservation_is_final(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.release_reservation(reservation.id, CASHIER)
        with pytest.raises(StateConflictError):
            engine.consume_reservation(reservation.id, CASHIER)
        with pytest.raises(StateConflictError):
            engine.extend_reservation(reservation.id, 5, CASHIER)
        stored = uow.reservations.get_by_id(reservation.id)
        assert stored.status == ReservationStatus.RELEASED
        assert all(line.status == LineStatus.RELEASED for line in stored.lines)

    def test_released_order_id_still_returns_existing(self):
        _, _, _, engine = _setup()
        first = _reserve(engine, "o1", "bread").reservation
        engine.release_reservation(first.id, CASHIER)
        again = _reserve(engine, "o1", "bread")
        assert again.is_idempotent
        assert again.reservation.status == ReservationStatus.RELEASED


class TestExtend:

    def test_extend_persists(self):
        uow, clock, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        extended = engine.extend_reservation(reservation.id, 10, MANAGER, "large party")
        stored = uow.reservations.get_by_id(reservation.id)
        assert stored.expires_at == extended.expires_at
        assert stored.original_expires_at == reservation.expires_at
        assert stored.extended_by == "manager-1"
        assert stored.version == 1

    def test_extended_reservation_keeps_holding(self):
        _, clock, availability, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        engine.extend_reservation(reservation.id, 10, CASHIER)
        clock.advance(minutes=20)
        assert availability.ingredient_availability("flour").reserved == Decimal("300")


# ── Queries ──────────────────────────────────────────────────────────────────


class TestQueries:

    def test_status_reports_expiry(self):
        _, clock, _, engine = _setup()
        reservation = _reserve(engine, "o1", "pizza").reservation
        view = engine.reservation_status(reservation.id)
        assert view.remaining_minutes == 15
        assert view.active_items == 2
        clock.advance(minutes=15)
        view = engine.reservation_status(reservation.id)
        assert view.is_expired
        assert view.effective_status == ReservationStatus.EXPIRED
        assert view.items_reserved == 2
        assert view.active_items == 0

    def test_reservation_for_order(self):
        _, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        assert engine.reservation_for_order("o1").id == reservation.id
        assert engine.reservation_for_order("o2") is None

    def test_find_expired_and_expiring(self):
        _, clock, _, engine = _setup()
        short = _reserve(engine, "o1", "bread", ttl_minutes=1).reservation
        soon = _reserve(engine, "o2", "bread", ttl_minutes=4).reservation
        _reserve(engine, "o3", "bread", ttl_minutes=30)
        clock.advance(minutes=2)
        assert [r.id for r in engine.find_expired()] == [short.id]
        assert [r.id for r in engine.find_expiring()] == [soon.id]
        assert len(engine.find_expiring(within_minutes=60)) == 2


# ── Atomicity and concurrency ────────────────────────────────────────────────


class TestAtomicity:

    def test_failed_commit_on_create_leaves_nothing(self):
        uow, _, availability, engine = _setup()
        uow.fail_next_commit = StoreUnavailableError("store offline")
        with pytest.raises(StoreUnavailableError):
            _reserve(engine, "o1", "bread")
        assert uow.reservations.list_all() == []
        assert uow.audit.list_all() == []
        assert availability.ingredient_availability("flour").available == Decimal("1000")

    def test_failed_commit_on_consume_leaves_stock(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        uow.fail_next_commit = StoreUnavailableError("store offline")
        with pytest.raises(StoreUnavailableError):
            engine.consume_reservation(reservation.id, CASHIER)
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("1000")
        assert uow.reservations.get_by_id(reservation.id).status == ReservationStatus.ACTIVE
        assert _audit_types(uow) == [ReferenceType.ORDER_RESERVATION]

        engine.consume_reservation(reservation.id, CASHIER)
        assert uow.ingredients.get_by_id("flour").on_hand == Decimal("700")

    def test_stale_copy_cannot_overwrite(self):
        uow, _, _, engine = _setup()
        reservation = _reserve(engine, "o1", "bread").reservation
        stale = uow.reservations.get_by_id(reservation.id)
        engine.release_reservation(reservation.id, CASHIER)
        stale.consume(CASHIER, stale.created_at)
        with pytest.raises(ConcurrencyConflictError):
            uow.reservations.update(stale)
        assert uow.reservations.get_by_id(reservation.id).status == ReservationStatus.RELEASED

    def test_concurrent_terminals_never_overcommit(self):
        _, _, availability, engine = _setup()
        results = []
        lock = threading.Lock()

        def place(order_id):
            result = _reserve(engine, order_id, "bread")
            with lock:
                results.append(result)

        threads = [threading.Thread(target=place, args=(f"o{i}",)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        succeeded = [r for r in results if r.success]
        assert len(succeeded) == 3
        assert all(r.error == INSUFFICIENT_INVENTORY for r in results if not r.success)
        reserved = availability.ingredient_availability("flour").reserved
        assert reserved == Decimal("900")
