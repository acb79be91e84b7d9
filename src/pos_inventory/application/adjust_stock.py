"""Application service: Adjust Stock use case.

Covers every change to on-hand stock that is not an order consumption:
deliveries, waste, theft, transfers, count corrections.  The stock change
and its audit entry commit together.

Inbound kinds need a positive delta and outbound kinds a negative one;
manual adjustments and system corrections may go either way.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import structlog

from pos_inventory.application.dto import fmt_quantity
from pos_inventory.domain.exceptions import EntityNotFoundError, ValidationError
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.audit import ReferenceType, StockChange
from pos_inventory.domain.model.units import Unit, convert
from pos_inventory.domain.model.value_objects import to_decimal
from pos_inventory.domain.repository.unit_of_work import UnitOfWork
from pos_inventory.domain.service.audit_service import AuditLedger

logger = structlog.get_logger(__name__)

INBOUND = (ReferenceType.RECEIVING, ReferenceType.TRANSFER_IN)
OUTBOUND = (
    ReferenceType.WASTE,
    ReferenceType.THEFT_LOSS,
    ReferenceType.TRANSFER_OUT,
    ReferenceType.RECIPE_TEST,
    ReferenceType.PROMOTION_SAMPLE,
)
EITHER_WAY = (ReferenceType.MANUAL_ADJUSTMENT, ReferenceType.SYSTEM_CORRECTION)


@dataclass(frozen=True)
class AdjustmentDTO:
    audit_entry_id: str
    ingredient_id: str
    quantity_before: str
    quantity_after: str
    unit: str
    value_impact: str
    flags: list[str]


class AdjustStockHandler:

    def __init__(self, uow: UnitOfWork, ledger: AuditLedger) -> None:
        self._uow = uow
        self._ledger = ledger

    def handle(
        self,
        ingredient_id: str,
        delta: str | Decimal,
        actor: Actor,
        kind: ReferenceType = ReferenceType.MANUAL_ADJUSTMENT,
        reason: str = "",
        unit: str | None = None,
        authorized_by: Actor | None = None,
        reference_id: str | None = None,
    ) -> AdjustmentDTO:
        amount = to_decimal(delta)
        self._check_direction(kind, amount)
        if authorized_by is not None and not authorized_by.can_authorize_adjustments:
            raise ValidationError(
                f"{authorized_by.position.value} cannot authorize stock adjustments"
            )

        with self._uow:
            ingredient = self._uow.ingredients.get_by_id(ingredient_id)
            if ingredient is None:
                raise EntityNotFoundError(f"Ingredient '{ingredient_id}' not found")

            given_unit = Unit.parse(unit) if unit else ingredient.unit
            stock_delta = convert(amount, given_unit, ingredient.unit)
            before = ingredient.on_hand
            ingredient.adjust(stock_delta)
            self._uow.ingredients.save(ingredient)

            entry = self._ledger.record(
                reference_id=reference_id or f"{kind.value}-{ingredient.id}",
                reference_type=kind,
                changes=[
                    StockChange(
                        ingredient_id=ingredient.id,
                        delta=stock_delta,
                        quantity_before=before,
                        reason=reason or kind.value.replace("_", " "),
                    )
                ],
                actor=actor,
                authorized_by=authorized_by.id if authorized_by else None,
                notes=reason,
            )
            self._uow.commit()

        logger.info(
            "stock_adjusted",
            ingredient_id=ingredient.id,
            kind=kind.value,
            delta=str(stock_delta),
            on_hand=str(ingredient.on_hand),
            actor=actor.id,
        )
        line = entry.lines[0]
        return AdjustmentDTO(
            audit_entry_id=entry.id,
            ingredient_id=ingredient.id,
            quantity_before=fmt_quantity(line.quantity_before),
            quantity_after=fmt_quantity(line.quantity_after),
            unit=line.unit.value,
            value_impact=f"{line.value_impact:.2f}",
            flags=[flag.type.value for flag in entry.flags],
        )

    @staticmethod
    def _check_direction(kind: ReferenceType, amount: Decimal) -> None:
        if amount == 0:
            raise ValidationError("Adjustment quantity cannot be zero")
        if kind in INBOUND and amount < 0:
            raise ValidationError(f"{kind.value} must increase stock")
        if kind in OUTBOUND and amount > 0:
            raise ValidationError(f"{kind.value} must decrease stock")
        if kind not in INBOUND + OUTBOUND + EITHER_WAY:
            raise ValidationError(
                f"{kind.value} entries are written by the reservation engine only"
            )
