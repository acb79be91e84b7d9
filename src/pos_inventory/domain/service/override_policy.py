"""Manager override rules.

An override lets an order reserve more than is available.  It needs an
approver at shift-manager level or above and a reason long enough to mean
something to whoever reviews the audit trail later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.reservation import ManagerOverride

INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
INVALID_OVERRIDE_REASON = "invalid_override_reason"


@dataclass(frozen=True)
class OverrideDecision:
    approved: bool
    override: ManagerOverride | None = None
    error: str | None = None
    message: str = ""


def validate_manager_override(
    approver: Actor,
    reason: str | None,
    now: datetime,
    min_reason_length: int = 10,
) -> OverrideDecision:
    if not approver.can_override_inventory:
        return OverrideDecision(
            approved=False,
            error=INSUFFICIENT_PERMISSIONS,
            message=(
                f"{approver.position.value} cannot override inventory warnings; "
                "shift manager or higher required"
            ),
        )

    cleaned = (reason or "").strip()
    if len(cleaned) < min_reason_length:
        return OverrideDecision(
            approved=False,
            error=INVALID_OVERRIDE_REASON,
            message=(
                f"Override reason must be at least {min_reason_length} characters"
            ),
        )

    return OverrideDecision(
        approved=True,
        override=ManagerOverride(reason=cleaned, approved_by=approver.id, approved_at=now),
    )
