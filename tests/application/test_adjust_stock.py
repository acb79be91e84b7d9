"""Integration tests for stock adjustments and ingredient registration."""

from decimal import Decimal

import pytest

from pos_inventory.application.adjust_stock import AdjustStockHandler
from pos_inventory.application.register_ingredient import RegisterIngredientHandler
from pos_inventory.domain.exceptions import EntityNotFoundError, ValidationError
from pos_inventory.domain.model.actor import Actor, Position
from pos_inventory.domain.model.audit import ReferenceType
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.domain.service.audit_service import AuditLedger
from tests.fakes import FakeClock, FakeUnitOfWork

CLERK = Actor("clerk-1", Position.INVENTORY)
MANAGER = Actor("manager-1", Position.GENERAL_MANAGER)


def _setup():
    uow = FakeUnitOfWork(
        [Ingredient("milk", "Milk", Unit.LITERS, Decimal("10"), unit_cost=Money.of("1.20"))]
    )
    ledger = AuditLedger(uow, clock=FakeClock())
    return uow, ledger


class TestAdjustStock:

    def test_receiving_adds_stock(self):
        uow, ledger = _setup()
        dto = AdjustStockHandler(uow, ledger).handle(
            "milk", "5", CLERK, ReferenceType.RECEIVING, reason="Dairy delivery"
        )
        assert uow.ingredients.get_by_id("milk").on_hand == Decimal("15")
        assert dto.quantity_before == "10"
        assert dto.quantity_after == "15"
        assert dto.value_impact == "6.00"
        entry = uow.audit.get_by_id(dto.audit_entry_id)
        assert entry.reference_type == ReferenceType.RECEIVING
        assert entry.reference_id == "receiving-milk"
        assert entry.notes == "Dairy delivery"

    def test_delta_in_other_unit(self):
        uow, ledger = _setup()
        AdjustStockHandler(uow, ledger).handle(
            "milk", "-500", CLERK, ReferenceType.WASTE, unit="ml"
        )
        assert uow.ingredients.get_by_id("milk").on_hand == Decimal("9.5")

    def test_waste_is_flagged(self):
        uow, ledger = _setup()
        dto = AdjustStockHandler(uow, ledger).handle("milk", "-1", CLERK, ReferenceType.WASTE)
        assert dto.flags == ["food_safety"]

    def test_authorized_manual_adjustment(self):
        uow, ledger = _setup()
        dto = AdjustStockHandler(uow, ledger).handle(
            "milk", "-2", CLERK, authorized_by=MANAGER, reference_id="count-2024-06"
        )
        entry = uow.audit.get_by_id(dto.audit_entry_id)
        assert entry.authorized_by == "manager-1"
        assert entry.reference_id == "count-2024-06"
        assert dto.flags == []

    def test_unauthorized_manual_adjustment_is_flagged(self):
        uow, ledger = _setup()
        dto = AdjustStockHandler(uow, ledger).handle("milk", "3", CLERK)
        assert dto.flags == ["audit_required"]

    @pytest.mark.parametrize(
        "delta, kind",
        [
            ("0", ReferenceType.MANUAL_ADJUSTMENT),
            ("-1", ReferenceType.RECEIVING),
            ("1", ReferenceType.WASTE),
            ("-1", ReferenceType.ORDER_CONSUMPTION),
        ],
    )
    def test_rejected_directions(self, delta, kind):
        uow, ledger = _setup()
        with pytest.raises(ValidationError):
            AdjustStockHandler(uow, ledger).handle("milk", delta, CLERK, kind)
        assert uow.audit.list_all() == []

    def test_authorizer_must_be_manager(self):
        uow, ledger = _setup()
        with pytest.raises(ValidationError, match="cannot authorize"):
            AdjustStockHandler(uow, ledger).handle("milk", "1", CLERK, authorized_by=CLERK)

    def test_cannot_go_negative(self):
        uow, ledger = _setup()
        with pytest.raises(ValidationError):
            AdjustStockHandler(uow, ledger).handle("milk", "-11", CLERK, ReferenceType.WASTE)
        assert uow.ingredients.get_by_id("milk").on_hand == Decimal("10")
        assert uow.audit.list_all() == []

    def test_unknown_ingredient(self):
        uow, ledger = _setup()
        with pytest.raises(EntityNotFoundError):
            AdjustStockHandler(uow, ledger).handle("cream", "1", CLERK)


class TestRegisterIngredient:

    def test_opening_stock_is_received(self):
        uow, ledger = _setup()
        dto = RegisterIngredientHandler(uow, ledger).handle(
            "eggs", "Eggs", "pcs", "60", CLERK, minimum_stock="12", unit_cost="0.25"
        )
        assert dto.unit == "pieces"
        assert dto.on_hand == "60"
        assert dto.unit_cost == "$0.25"
        assert not dto.low_stock
        [entry] = uow.audit.list_all()
        assert entry.reference_id == "opening-eggs"
        assert entry.lines[0].quantity_before == Decimal("0")
        assert entry.lines[0].quantity_after == Decimal("60")

    def test_zero_opening_stock_writes_no_entry(self):
        uow, ledger = _setup()
        dto = RegisterIngredientHandler(uow, ledger).handle("salt", "Salt", "g", "0", CLERK)
        assert dto.low_stock
        assert uow.ingredients.get_by_id("salt") is not None
        assert uow.audit.list_all() == []

    def test_duplicate_rejected(self):
        uow, ledger = _setup()
        with pytest.raises(ValidationError, match="already exists"):
            RegisterIngredientHandler(uow, ledger).handle("milk", "Milk", "l", "1", CLERK)

    def test_unknown_unit_rejected(self):
        uow, ledger = _setup()
        with pytest.raises(ValidationError, match="Unknown unit"):
            RegisterIngredientHandler(uow, ledger).handle("x", "X", "pinch", "1", CLERK)
