"""One JSON file holding every collection the engine writes.

Keeping ingredients, recipes, reservations and audit entries in a single
document lets a commit replace all of them at once: the new content is
written to a temporary file and moved over the old one with
``os.replace``, so readers see either the previous state or the new one.

Each CLI call is its own process with its own copy of the document, so the
file carries a ``revision`` counter.  ``save`` takes an exclusive lock on a
sidecar ``.lock`` file, checks that the revision on disk is still the one
this copy was loaded from, and only then writes ``revision + 1``.  A writer
that lost the race gets ``ConcurrencyConflictError`` and the file is left
as the winner wrote it.
"""

from __future__ import annotations

import contextlib
import copy
import fcntl
import json
import os
from pathlib import Path

from pos_inventory.domain.exceptions import ConcurrencyConflictError, StoreUnavailableError

SECTIONS = ("ingredients", "recipes", "reservations", "audit_entries")


class JsonDocument:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock_path = file_path.with_name(file_path.name + ".lock")
        self.data: dict[str, list[dict]] = self._empty()
        self._committed: dict[str, list[dict]] = self._empty()
        self.revision = 0

    def section(self, name: str) -> list[dict]:
        return self.data[name]

    def load(self) -> None:
        """Replace the working copy with what is on disk."""
        revision, raw = self._read()
        self.data = raw
        self._committed = copy.deepcopy(raw)
        self.revision = revision

    def save(self) -> None:
        with self._exclusive():
            on_disk, _ = self._read()
            if on_disk != self.revision:
                raise ConcurrencyConflictError(
                    f"Inventory store {self._file_path} was changed by another writer "
                    f"(loaded revision {self.revision}, found {on_disk})"
                )
            payload = {"revision": self.revision + 1, **self.data}
            tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
            try:
                tmp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
                os.replace(tmp_path, self._file_path)
            except OSError as exc:
                raise StoreUnavailableError(
                    f"Cannot write inventory store {self._file_path}: {exc}"
                ) from exc
        self.revision += 1
        self._committed = copy.deepcopy(self.data)

    def restore(self) -> None:
        """Drop uncommitted changes."""
        self.data = copy.deepcopy(self._committed)

    # --- File helpers ---------------------------------------------------------

    def _read(self) -> tuple[int, dict[str, list[dict]]]:
        try:
            if self._file_path.exists():
                raw = json.loads(self._file_path.read_text(encoding="utf-8"))
            else:
                raw = {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailableError(
                f"Cannot read inventory store {self._file_path}: {exc}"
            ) from exc
        if not isinstance(raw, dict):
            raise StoreUnavailableError(
                f"Inventory store {self._file_path} is not a JSON object"
            )
        revision = raw.pop("revision", 0)
        if not isinstance(revision, int):
            raise StoreUnavailableError(
                f"Inventory store {self._file_path} has an invalid revision: {revision!r}"
            )
        for name in SECTIONS:
            raw.setdefault(name, [])
        return revision, raw

    @contextlib.contextmanager
    def _exclusive(self):
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            lock_file = open(self._lock_path, "a", encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot lock inventory store {self._file_path}: {exc}"
            ) from exc
        with lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    @staticmethod
    def _empty() -> dict[str, list[dict]]:
        return {name: [] for name in SECTIONS}
