"""SQLAlchemy-backed implementation of the player store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from harvest_backend.database.dependencies import get_database
from harvest_backend.database.repositories import PlayerRepository
from harvest_backend.database.schemas import PlayerSchema
from harvest_backend.game_logic.persistence import PlayerTransaction
from harvest_backend.game_logic.state import PlayerAggregate
from harvest_backend.shared.errors import StaleAggregateError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from harvest_backend.database.service import DatabaseService
    from harvest_backend.settings import BackendSettings

logger = logging.getLogger(__name__)


class SqlPlayerStore:
    """Persist player documents as JSON rows guarded by a version column.

    Writers lock the row with ``SELECT ... FOR UPDATE`` where the dialect
    supports it; the version predicate on the update rejects anything that
    slipped past the lock.
    """

    def __init__(self, database: DatabaseService) -> None:
        self._database = database

    @classmethod
    def from_settings(cls, settings: BackendSettings | None = None) -> SqlPlayerStore:
        """Build a store on the cached database for *settings*."""
        return cls(get_database(settings))

    def load(self, player_id: str) -> PlayerAggregate | None:
        """Return the stored document for *player_id* if available."""
        with self._database.session() as session:
            row = PlayerRepository(session).get_by_id(player_id)
            return self._to_aggregate(row) if row is not None else None

    @contextmanager
    def transaction(self, player_id: str) -> Iterator[PlayerTransaction]:
        """Yield a transaction over the locked row of *player_id*."""
        with self._database.session() as session:
            repository = PlayerRepository(session)
            row = repository.get_for_update(player_id)
            transaction = PlayerTransaction(
                player_id, self._to_aggregate(row) if row is not None else None
            )
            yield transaction
            document = transaction.committed()
            if document is None:
                return
            payload = document.model_dump(mode="json")
            if row is None:
                try:
                    repository.add(
                        PlayerSchema(
                            player_id=player_id,
                            version=document.version,
                            document=payload,
                        )
                    )
                except IntegrityError as exc:
                    msg = f"Player {player_id} was created concurrently."
                    raise StaleAggregateError(msg) from exc
                logger.debug("Created player document %s", player_id)
                return
            written = repository.update_versioned(
                player_id,
                expected_version=transaction.expected_version,
                version=document.version,
                document=payload,
            )
            if not written:
                msg = (
                    f"Player {player_id} changed since version "
                    f"{transaction.expected_version} was read."
                )
                raise StaleAggregateError(msg)

    @staticmethod
    def _to_aggregate(row: PlayerSchema) -> PlayerAggregate:
        return PlayerAggregate.model_validate({**row.document, "version": row.version})


__all__ = ["SqlPlayerStore"]
