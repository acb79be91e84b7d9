"""Abstract read-only view of the menu catalog collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_inventory.domain.model.menu_item import MenuItem


class MenuCatalog(ABC):

    @abstractmethod
    def get_by_id(self, menu_item_id: str) -> MenuItem | None:
        """Return display name and price for a menu item, or None."""
