"""Abstract repository for the Ingredient aggregate (the Stock Ledger)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_inventory.domain.model.ingredient import Ingredient


class IngredientRepository(ABC):

    @abstractmethod
    def get_by_id(self, ingredient_id: str) -> Ingredient | None:
        """Return the stock record for an ingredient, or None."""

    @abstractmethod
    def list_all(self) -> list[Ingredient]:
        """Return every stock record."""

    @abstractmethod
    def save(self, ingredient: Ingredient) -> None:
        """Persist a new or updated stock record."""
