"""Application service: Resolve Compliance Flag use case."""

from __future__ import annotations

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.service.audit_service import AuditLedger


class ResolveComplianceFlagHandler:

    def __init__(self, ledger: AuditLedger) -> None:
        self._ledger = ledger

    def handle(self, entry_id: str, flag_index: int, resolver: Actor) -> str:
        """Mark one flag resolved; returns the flag type that was closed."""
        if not resolver.can_authorize_adjustments:
            raise ValidationError(
                f"{resolver.position.value} cannot resolve compliance flags"
            )
        entry = self._ledger.resolve_flag(entry_id, flag_index, resolver)
        return entry.flags[flag_index].type.value
