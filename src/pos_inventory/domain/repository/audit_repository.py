"""Abstract repository for the append-only Audit Ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_inventory.domain.model.audit import AuditEntry


class AuditRepository(ABC):

    @abstractmethod
    def get_by_id(self, entry_id: str) -> AuditEntry | None:
        """Return an entry by its id, or None."""

    @abstractmethod
    def list_all(self) -> list[AuditEntry]:
        """Return every entry, newest first."""

    @abstractmethod
    def add(self, entry: AuditEntry) -> None:
        """Append a new entry."""

    @abstractmethod
    def save_flags(self, entry: AuditEntry) -> None:
        """Persist the compliance flags of an existing entry.

        Nothing else about a stored entry may change.
        """
