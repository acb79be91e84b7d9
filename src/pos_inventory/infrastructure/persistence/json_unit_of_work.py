"""JSON-file-backed Unit of Work.

The outermost ``with uow:`` loads the document from disk; ``commit()``
writes it back in one atomic replace; rollback reverts the in-memory copy
to what was last loaded or committed.

The in-process lock serialises threads sharing this instance.  Separate
instances, including separate CLI processes, are kept apart by the
document revision check in ``JsonDocument.save``: the second writer to
commit against the same revision fails with ``ConcurrencyConflictError``.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from pos_inventory.domain.repository.unit_of_work import UnitOfWork
from pos_inventory.infrastructure.persistence.json_audit_repository import JsonAuditRepository
from pos_inventory.infrastructure.persistence.json_document import JsonDocument
from pos_inventory.infrastructure.persistence.json_ingredient_repository import (
    JsonIngredientRepository,
)
from pos_inventory.infrastructure.persistence.json_recipe_repository import JsonRecipeRepository
from pos_inventory.infrastructure.persistence.json_reservation_repository import (
    JsonReservationRepository,
)

logger = structlog.get_logger(__name__)


class JsonUnitOfWork(UnitOfWork):

    def __init__(self, file_path: Path) -> None:
        super().__init__()
        self._document = JsonDocument(file_path)
        self.ingredients = JsonIngredientRepository(self._document)
        self.recipes = JsonRecipeRepository(self._document)
        self.reservations = JsonReservationRepository(self._document)
        self.audit = JsonAuditRepository(self._document)

    def commit(self) -> None:
        self._document.save()
        logger.debug("store_committed")

    def rollback(self) -> None:
        self._document.restore()

    def _begin(self) -> None:
        self._document.load()
