"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.  Settings are turned
into plain policy objects here so the domain never imports configuration.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pos_inventory.application.expiry_sweeper import ExpirySweeper
from pos_inventory.domain.service.audit_service import AuditLedger, LedgerPolicy
from pos_inventory.domain.service.availability_service import AvailabilityService
from pos_inventory.domain.service.reservation_service import (
    ReservationEngine,
    ReservationPolicy,
)
from pos_inventory.infrastructure.config import Settings, get_settings
from pos_inventory.infrastructure.persistence.json_menu_catalog import JsonMenuCatalog
from pos_inventory.infrastructure.persistence.json_unit_of_work import JsonUnitOfWork


@lru_cache()
def _unit_of_work_for(path: Path) -> JsonUnitOfWork:
    # One instance per store so every handler in the process shares its lock.
    return JsonUnitOfWork(path)


def unit_of_work(settings: Settings | None = None) -> JsonUnitOfWork:
    settings = settings or get_settings()
    return _unit_of_work_for(settings.store_path.resolve())


def menu_catalog(settings: Settings | None = None) -> JsonMenuCatalog:
    settings = settings or get_settings()
    return JsonMenuCatalog(settings.menu_path)


def ledger_policy(settings: Settings) -> LedgerPolicy:
    return LedgerPolicy(
        high_value_threshold=Decimal(str(settings.high_value_threshold)),
        large_quantity_threshold=Decimal(str(settings.large_quantity_threshold)),
        review_value_threshold=Decimal(str(settings.review_value_threshold)),
        review_quantity_threshold=Decimal(str(settings.review_quantity_threshold)),
    )


def reservation_policy(settings: Settings) -> ReservationPolicy:
    return ReservationPolicy(
        default_ttl_minutes=settings.reservation_ttl_minutes,
        min_override_reason_length=settings.min_override_reason_length,
        expiring_soon_minutes=settings.expiring_soon_minutes,
    )


def availability_service(settings: Settings | None = None) -> AvailabilityService:
    return AvailabilityService(unit_of_work(settings))


def audit_ledger(settings: Settings | None = None) -> AuditLedger:
    settings = settings or get_settings()
    return AuditLedger(unit_of_work(settings), ledger_policy(settings))


def reservation_engine(settings: Settings | None = None) -> ReservationEngine:
    settings = settings or get_settings()
    uow = unit_of_work(settings)
    return ReservationEngine(
        uow=uow,
        availability=AvailabilityService(uow),
        ledger=AuditLedger(uow, ledger_policy(settings)),
        policy=reservation_policy(settings),
    )


def expiry_sweeper(settings: Settings | None = None) -> ExpirySweeper:
    settings = settings or get_settings()
    return ExpirySweeper(
        reservation_engine(settings),
        interval_seconds=settings.sweep_interval_seconds,
    )
