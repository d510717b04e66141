"""Persistence abstractions for player documents.

These interfaces allow the game logic layer to store the authoritative state
of each player without depending on a particular database. The in-memory
adapter below serves tests and simulations; :mod:`harvest_backend.database`
provides the SQLAlchemy-backed one.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol

from harvest_backend.shared.errors import StaleAggregateError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from contextlib import AbstractContextManager

    from harvest_backend.game_logic.state import PlayerAggregate


class PlayerTransaction:
    """Unit of work over a single player document.

    ``current`` is the document as read when the transaction began. Callers
    stage the replacement with :meth:`stage`; the store persists it with the
    version bumped when the transaction exits cleanly.
    """

    def __init__(self, player_id: str, current: PlayerAggregate | None) -> None:
        self.player_id = player_id
        self.current = current
        self._staged: PlayerAggregate | None = None

    @property
    def expected_version(self) -> int:
        return self.current.version if self.current is not None else 0

    @property
    def staged(self) -> PlayerAggregate | None:
        return self._staged

    def stage(self, aggregate: PlayerAggregate) -> None:
        """Mark *aggregate* as the document to write on commit."""
        if aggregate.player_id != self.player_id:
            msg = (
                f"Transaction for {self.player_id} cannot stage a document "
                f"of {aggregate.player_id}."
            )
            raise ValueError(msg)
        self._staged = aggregate

    def committed(self) -> PlayerAggregate | None:
        """Return the staged document with its next version, or ``None``."""
        if self._staged is None:
            return None
        if self._staged.version != self.expected_version:
            msg = (
                f"Player {self.player_id} was staged from version "
                f"{self._staged.version} but the transaction read "
                f"{self.expected_version}."
            )
            raise StaleAggregateError(msg)
        return self._staged.model_copy(update={"version": self.expected_version + 1})


class PlayerStore(Protocol):
    """Protocol describing how player documents are persisted."""

    def load(self, player_id: str) -> PlayerAggregate | None:
        """Return the latest stored document for *player_id* or ``None``."""

    def transaction(self, player_id: str) -> AbstractContextManager[PlayerTransaction]:
        """Serialize writers of *player_id* and persist the staged document."""


class InMemoryPlayerStore:
    """In-memory implementation of :class:`PlayerStore`.

    Writers of the same player are serialized with a per-player lock; readers
    see the last committed document.
    """

    def __init__(self) -> None:
        self._documents: dict[str, PlayerAggregate] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def load(self, player_id: str) -> PlayerAggregate | None:
        """Return the stored document for *player_id* if available."""
        return self._documents.get(player_id)

    def player_ids(self) -> tuple[str, ...]:
        return tuple(self._documents)

    @contextmanager
    def transaction(self, player_id: str) -> Iterator[PlayerTransaction]:
        """Yield a transaction holding the lock of *player_id*."""
        with self._lock_for(player_id):
            transaction = PlayerTransaction(player_id, self._documents.get(player_id))
            yield transaction
            document = transaction.committed()
            if document is not None:
                self._save(transaction, document)

    def _save(self, transaction: PlayerTransaction, document: PlayerAggregate) -> None:
        stored = self._documents.get(transaction.player_id)
        stored_version = stored.version if stored is not None else 0
        if stored_version != transaction.expected_version:
            msg = (
                f"Player {transaction.player_id} changed underneath the "
                f"transaction (version {stored_version})."
            )
            raise StaleAggregateError(msg)
        self._documents[transaction.player_id] = document

    def _lock_for(self, player_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(player_id, threading.Lock())


__all__ = ["InMemoryPlayerStore", "PlayerStore", "PlayerTransaction"]
