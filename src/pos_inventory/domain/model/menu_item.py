"""Menu item as seen from the catalog collaborator.

The engine only reads it for cost and margin reporting; availability never
depends on price.
"""

from __future__ import annotations

from dataclasses import dataclass

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.value_objects import Money


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    price: Money

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Menu item name is required")
