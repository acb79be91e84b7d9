"""Who is acting, as supplied by the identity collaborator.

Authentication happens upstream; the engine only needs an id for the audit
trail and a position to decide who may override inventory warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pos_inventory.domain.exceptions import ValidationError


class Position(Enum):
    CASHIER = "cashier"
    INVENTORY = "inventory"
    SHIFT_MANAGER = "shift_manager"
    GENERAL_MANAGER = "general_manager"
    ADMIN = "admin"
    SYSTEM = "system"

    @property
    def level(self) -> int:
        return _LEVELS[self]


_LEVELS = {
    Position.CASHIER: 1,
    Position.INVENTORY: 2,
    Position.SHIFT_MANAGER: 3,
    Position.GENERAL_MANAGER: 4,
    Position.ADMIN: 5,
    # The sweeper acts on its own behalf and never overrides anything.
    Position.SYSTEM: 0,
}


@dataclass(frozen=True)
class Actor:
    id: str
    position: Position = Position.CASHIER

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Actor id is required")

    @property
    def can_override_inventory(self) -> bool:
        return self.position.level >= Position.SHIFT_MANAGER.level

    @property
    def can_authorize_adjustments(self) -> bool:
        return self.position.level >= Position.SHIFT_MANAGER.level


SYSTEM_ACTOR = Actor(id="system", position=Position.SYSTEM)
