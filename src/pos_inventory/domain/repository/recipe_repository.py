"""Abstract repository for recipe mappings (menu item -> ingredients)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_inventory.domain.model.recipe import RecipeRequirement


class RecipeRepository(ABC):

    @abstractmethod
    def list_for_menu_item(self, menu_item_id: str) -> list[RecipeRequirement]:
        """Return the requirements for one unit of a menu item."""

    @abstractmethod
    def list_for_ingredient(self, ingredient_id: str) -> list[RecipeRequirement]:
        """Return requirements that use the ingredient directly or as a substitute."""

    @abstractmethod
    def list_all(self) -> list[RecipeRequirement]:
        """Return every requirement."""

    @abstractmethod
    def save(self, requirement: RecipeRequirement) -> None:
        """Insert, or replace the existing (menu item, ingredient) pair."""
