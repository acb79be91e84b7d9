"""Domain service: Reservation Engine.

The transactional core.  It holds ingredients for an order, turns the
hold into a real stock decrement when the order completes, and drops the
hold when the order is cancelled or times out.

Every operation runs inside one ``with uow:`` block.  The unit of work
lock keeps "read what is reserved, compute availability, write the new
reservation" from interleaving with another terminal, and nothing is
durable until the single ``commit()`` at the end.  The audit entry for an
operation is staged in the same transaction as the change it describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

import structlog

from pos_inventory.domain.exceptions import (
    DuplicateReservationError,
    EntityNotFoundError,
    ValidationError,
)
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.audit import ReferenceType, StockChange
from pos_inventory.domain.model.availability import AvailabilityReport, IngredientCheck
from pos_inventory.domain.model.clock import Clock, utc_now
from pos_inventory.domain.model.recipe import OrderLine
from pos_inventory.domain.model.reservation import (
    BatchAllocation,
    ManagerOverride,
    Reservation,
    ReservationLine,
    ReservationStatus,
)
from pos_inventory.domain.model.reservation_result import (
    INSUFFICIENT_INVENTORY,
    NOTHING_RESERVABLE,
    VALIDATION_FAILED,
    ConsumptionResult,
    ReleaseResult,
    ReservationOptions,
    ReservationResult,
    ReservationStatusView,
)
from pos_inventory.domain.model.units import Unit, convert
from pos_inventory.domain.repository.unit_of_work import UnitOfWork
from pos_inventory.domain.service.audit_service import AuditLedger
from pos_inventory.domain.service.availability_service import AvailabilityService
from pos_inventory.domain.service.override_policy import validate_manager_override

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReservationPolicy:
    default_ttl_minutes: int = 15
    min_override_reason_length: int = 10
    expiring_soon_minutes: int = 5


class ReservationEngine:

    def __init__(
        self,
        uow: UnitOfWork,
        availability: AvailabilityService,
        ledger: AuditLedger,
        policy: ReservationPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._availability = availability
        self._ledger = ledger
        self._policy = policy or ReservationPolicy()
        self._clock = clock

    # --- Create ---------------------------------------------------------------

    def create_reservation(
        self,
        order_id: str,
        lines: list[OrderLine],
        actor: Actor,
        options: ReservationOptions | None = None,
    ) -> ReservationResult:
        """Hold the ingredients an order needs.

        Calling this again for the same order returns the reservation that
        already exists, whatever its state, and writes nothing.
        """
        options = options or ReservationOptions()
        log = logger.bind(order_id=order_id, actor=actor.id)

        try:
            self._validate_request(order_id, lines, options)
        except ValidationError as exc:
            log.info("reservation_rejected", error=VALIDATION_FAILED, reason=str(exc))
            return ReservationResult.failed(VALIDATION_FAILED, str(exc))

        override = None
        if options.manager_override is not None:
            request = options.manager_override
            decision = validate_manager_override(
                approver=request.approver or actor,
                reason=request.reason,
                now=self._clock(),
                min_reason_length=self._policy.min_override_reason_length,
            )
            if not decision.approved:
                log.warning("override_rejected", error=decision.error)
                return ReservationResult.failed(decision.error, decision.message)
            override = decision.override

        try:
            with self._uow:
                existing = self._uow.reservations.get_by_order_id(order_id)
                if existing is not None:
                    log.info("reservation_exists", reservation_id=existing.id)
                    return ReservationResult.existing(existing)
                result = self._reserve(order_id, lines, actor, options, override)
        except DuplicateReservationError:
            with self._uow:
                existing = self._uow.reservations.get_by_order_id(order_id)
            if existing is None:
                raise
            log.info("reservation_exists", reservation_id=existing.id)
            return ReservationResult.existing(existing)
        except (ValidationError, EntityNotFoundError) as exc:
            log.info("reservation_rejected", error=VALIDATION_FAILED, reason=str(exc))
            return ReservationResult.failed(VALIDATION_FAILED, str(exc))

        if result.reservation is not None:
            log.info(
                "reservation_created",
                reservation_id=result.reservation.id,
                status=result.reservation.status.value,
                value=str(result.reservation.total_reserved_value),
                expires_at=result.reservation.expires_at.isoformat(),
                override=override is not None,
            )
        elif not result.success:
            log.info("reservation_rejected", error=result.error, reason=result.message)
        return result

    def _reserve(
        self,
        order_id: str,
        lines: list[OrderLine],
        actor: Actor,
        options: ReservationOptions,
        override: ManagerOverride | None,
    ) -> ReservationResult:
        requirements = self._availability.requirements_for_order(lines)
        if not requirements:
            return ReservationResult.untracked()

        report = self._availability.evaluate(requirements)
        if not report.is_feasible and not options.allow_partial and override is None:
            return ReservationResult.failed(
                INSUFFICIENT_INVENTORY, self._shortage_message(report.blocking), report
            )

        planned = self._plan_lines(report, options.allow_partial, override is not None)
        if planned is None:
            # A substitute counted on by two requirements cannot cover both.
            return ReservationResult.failed(
                INSUFFICIENT_INVENTORY, self._shortage_message(report.insufficient), report
            )
        if not any(line.quantity_reserved > 0 for line in planned):
            return ReservationResult.failed(
                NOTHING_RESERVABLE, "No stock is available for any ingredient", report
            )

        reservation = Reservation.create(
            order_id=order_id,
            lines=planned,
            actor=actor,
            now=self._clock(),
            ttl_minutes=options.ttl_minutes or self._policy.default_ttl_minutes,
            override=override,
            notes=options.notes,
        )
        self._uow.reservations.add(reservation)
        self._ledger.record(
            reference_id=order_id,
            reference_type=ReferenceType.ORDER_RESERVATION,
            changes=[
                StockChange(
                    ingredient_id=line.ingredient_id,
                    delta=Decimal("0"),
                    unit=line.unit,
                    value_impact=Decimal("0"),
                    reason=f"Reserved {_fmt(line.quantity_reserved)} {line.unit.value}",
                )
                for line in reservation.lines
            ],
            actor=actor,
            authorized_by=override.approved_by if override else None,
            notes=f"Reservation {reservation.id}",
            system_generated=True,
            override_reason=override.reason if override else None,
        )
        self._uow.commit()
        return ReservationResult.created(reservation, report)

    # --- Consume --------------------------------------------------------------

    def consume_reservation(self, reservation_id: str, actor: Actor) -> ConsumptionResult:
        """Deduct every held line from stock; all lines or none.

        Stock that has gone missing since the hold was placed fails the whole
        consumption, unless the reservation was a manager override, which may
        have promised more than existed and is clamped at zero instead.
        """
        with self._uow:
            reservation = self._get(reservation_id)
            held = reservation.consume(actor, self._clock())

            changes = []
            for line in held:
                ingredient = self._uow.ingredients.get_by_id(line.ingredient_id)
                if ingredient is None:
                    raise EntityNotFoundError(
                        f"Ingredient '{line.ingredient_id}' not found while consuming "
                        f"reservation {reservation.id}"
                    )
                quantity = convert(line.quantity_reserved, line.unit, ingredient.unit)
                before = ingredient.on_hand
                deducted = ingredient.consume(
                    quantity, allow_shortfall=reservation.override is not None
                )
                if deducted < quantity:
                    logger.warning(
                        "consumption_shortfall",
                        reservation_id=reservation.id,
                        ingredient_id=ingredient.id,
                        requested=str(quantity),
                        deducted=str(deducted),
                    )
                self._uow.ingredients.save(ingredient)
                changes.append(
                    StockChange(
                        ingredient_id=ingredient.id,
                        delta=-deducted,
                        unit=ingredient.unit,
                        value_impact=-self._consumed_value(line, quantity, deducted),
                        quantity_before=before,
                        reason=f"Consumed for order {reservation.order_id}",
                    )
                )

            self._uow.reservations.update(reservation)
            entry = None
            if changes:
                entry = self._ledger.record(
                    reference_id=reservation.order_id,
                    reference_type=ReferenceType.ORDER_CONSUMPTION,
                    changes=changes,
                    actor=actor,
                    notes=f"Reservation {reservation.id}",
                    system_generated=True,
                )
            self._uow.commit()

        logger.info(
            "reservation_consumed",
            reservation_id=reservation.id,
            order_id=reservation.order_id,
            lines=len(held),
            actor=actor.id,
        )
        return ConsumptionResult(
            reservation=reservation,
            consumed_lines=tuple(held),
            audit_entry_id=entry.id if entry else None,
        )

    # --- Release --------------------------------------------------------------

    def release_reservation(
        self,
        reservation_id: str,
        actor: Actor,
        reason: str = "Manual release",
    ) -> ReleaseResult:
        """Drop the hold; stock is never touched.

        Releasing twice is a no-op.  Releasing a consumed reservation raises
        ``StateConflictError``.
        """
        with self._uow:
            reservation = self._get(reservation_id)
            if reservation.status is ReservationStatus.RELEASED:
                logger.debug("reservation_already_released", reservation_id=reservation.id)
                return ReleaseResult(reservation, (), already_released=True)

            now = self._clock()
            was_expired = reservation.is_open and reservation.is_expired(now)
            released = reservation.release(actor, reason, now)
            self._uow.reservations.update(reservation)
            if released:
                self._ledger.record(
                    reference_id=reservation.order_id,
                    reference_type=ReferenceType.ORDER_RELEASE,
                    changes=[
                        StockChange(
                            ingredient_id=line.ingredient_id,
                            delta=Decimal("0"),
                            unit=line.unit,
                            value_impact=Decimal("0"),
                            reason=reason,
                        )
                        for line in released
                    ],
                    actor=actor,
                    notes=f"Reservation {reservation.id}",
                    system_generated=True,
                )
            self._uow.commit()

        logger.info(
            "reservation_released",
            reservation_id=reservation.id,
            order_id=reservation.order_id,
            reason=reason,
            was_expired=was_expired,
            actor=actor.id,
        )
        return ReleaseResult(reservation, tuple(released), was_expired=was_expired)

    # --- Extend ---------------------------------------------------------------

    def extend_reservation(
        self,
        reservation_id: str,
        extra_minutes: int,
        actor: Actor,
        reason: str = "",
    ) -> Reservation:
        with self._uow:
            reservation = self._get(reservation_id)
            reservation.extend(extra_minutes, actor, reason, self._clock())
            self._uow.reservations.update(reservation)
            self._uow.commit()

        logger.info(
            "reservation_extended",
            reservation_id=reservation.id,
            minutes=extra_minutes,
            expires_at=reservation.expires_at.isoformat(),
            actor=actor.id,
        )
        return reservation

    # --- Queries --------------------------------------------------------------

    def reservation_status(self, reservation_id: str) -> ReservationStatusView:
        with self._uow:
            reservation = self._get(reservation_id)
        now = self._clock()
        return ReservationStatusView(
            reservation=reservation,
            effective_status=reservation.effective_status(now),
            remaining_minutes=reservation.remaining_minutes(now),
        )

    def reservation_for_order(self, order_id: str) -> Reservation | None:
        with self._uow:
            return self._uow.reservations.get_by_order_id(order_id)

    def find_expired(self) -> list[Reservation]:
        with self._uow:
            return self._uow.reservations.list_expired(self._clock())

    def find_expiring(self, within_minutes: int | None = None) -> list[Reservation]:
        """Reservations still holding stock that expire within the window."""
        window = timedelta(
            minutes=within_minutes if within_minutes is not None
            else self._policy.expiring_soon_minutes
        )
        now = self._clock()
        with self._uow:
            candidates = self._uow.reservations.list_all()
        expiring = [
            r for r in candidates
            if r.holds_stock(now) and r.expires_at <= now + window
        ]
        expiring.sort(key=lambda r: r.expires_at)
        return expiring

    # --- Internal helpers -----------------------------------------------------

    def _get(self, reservation_id: str) -> Reservation:
        reservation = self._uow.reservations.get_by_id(reservation_id)
        if reservation is None:
            raise EntityNotFoundError(f"Reservation '{reservation_id}' not found")
        return reservation

    @staticmethod
    def _consumed_value(line: ReservationLine, requested: Decimal, deducted: Decimal) -> Decimal:
        """Cost of what actually left the shelf for one held line."""
        if deducted == requested:
            return line.line_cost.amount
        if requested == 0:
            return Decimal("0")
        return (line.line_cost * (deducted / requested)).amount

    @staticmethod
    def _validate_request(
        order_id: str,
        lines: list[OrderLine],
        options: ReservationOptions,
    ) -> None:
        if not order_id or not str(order_id).strip():
            raise ValidationError("Order id is required")
        if not lines:
            raise ValidationError("An order must contain at least one line")
        for line in lines:
            if not isinstance(line, OrderLine):
                raise ValidationError(f"Invalid order line: {line!r}")
        if options.ttl_minutes is not None and options.ttl_minutes <= 0:
            raise ValidationError("Reservation TTL must be positive")

    def _plan_lines(
        self,
        report: AvailabilityReport,
        allow_partial: bool,
        overridden: bool,
    ) -> list[ReservationLine] | None:
        """Decide how much to hold from which ingredient.

        Covered requirements are planned first so substitutes only ever
        draw on stock nobody else in this order needs.  Returns None when a
        required shortfall turns out to be uncoverable.
        """
        planned: dict[str, Decimal] = {}
        lines: list[ReservationLine] = []

        for check in sorted(report.checks, key=lambda c: not c.sufficient):
            if check.sufficient:
                lines.append(self._hold(check.ingredient_id, check.required, check.unit, planned))
                continue

            if check.is_required:
                substitute_id = self._pick_substitute(report, check, planned)
                if substitute_id is not None:
                    lines.append(
                        self._hold(
                            substitute_id,
                            check.required,
                            check.unit,
                            planned,
                            substituted_for=check.ingredient_id,
                        )
                    )
                    continue
                if overridden:
                    lines.append(
                        self._hold(check.ingredient_id, check.required, check.unit, planned)
                    )
                    continue
                if not allow_partial:
                    return None

            already = convert(
                planned.get(check.ingredient_id, Decimal("0")), check.stock_unit, check.unit
            )
            held = min(check.required, max(Decimal("0"), check.available - already))
            if held == 0 and not check.is_required:
                continue
            shortfall = check.required - held if check.is_required else Decimal("0")
            lines.append(
                self._hold(check.ingredient_id, held, check.unit, planned, shortfall=shortfall)
            )
        return lines

    def _pick_substitute(
        self,
        report: AvailabilityReport,
        check: IngredientCheck,
        planned: dict[str, Decimal],
    ) -> str | None:
        option = report.option_for(check.ingredient_id)
        if option is None:
            return None
        for candidate in option.candidates:
            ingredient = self._uow.ingredients.get_by_id(candidate.ingredient_id)
            if ingredient is None:
                continue
            already = convert(
                planned.get(ingredient.id, Decimal("0")), ingredient.unit, check.unit
            )
            if candidate.available - already >= check.required:
                return ingredient.id
        return None

    def _hold(
        self,
        ingredient_id: str,
        quantity: Decimal,
        unit: Unit,
        planned: dict[str, Decimal],
        substituted_for: str | None = None,
        shortfall: Decimal = Decimal("0"),
    ) -> ReservationLine:
        ingredient = self._uow.ingredients.get_by_id(ingredient_id)
        if ingredient is None:
            raise EntityNotFoundError(f"Ingredient '{ingredient_id}' not found")
        in_stock_unit = convert(quantity, unit, ingredient.unit)
        planned[ingredient.id] = planned.get(ingredient.id, Decimal("0")) + in_stock_unit
        allocations = []
        if quantity > 0:
            allocations.append(
                BatchAllocation(batch_id=f"{ingredient.id}-aggregate", quantity=in_stock_unit)
            )
        return ReservationLine(
            ingredient_id=ingredient.id,
            quantity_reserved=quantity,
            unit=unit,
            unit_cost=ingredient.unit_cost,
            line_cost=ingredient.value_of(in_stock_unit),
            batch_allocations=allocations,
            substituted_for=substituted_for,
            shortfall=shortfall,
        )

    @staticmethod
    def _shortage_message(checks) -> str:
        parts = [
            f"{c.ingredient_name} short by {_fmt(c.shortage)} {c.unit.value}"
            for c in checks
        ]
        return "Insufficient inventory: " + ", ".join(parts)


def _fmt(value: Decimal) -> str:
    normalized = value.normalize()
    return f"{normalized:f}"
