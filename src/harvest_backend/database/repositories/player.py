"""Repository helpers for working with player documents."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from harvest_backend.database.schemas import PlayerSchema


class PlayerRepository:
    """Encapsulates persistence operations for :class:`PlayerSchema`."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, player_id: str) -> PlayerSchema | None:
        """Return player row by player's ID."""
        return self._session.get(PlayerSchema, player_id)

    def get_for_update(self, player_id: str) -> PlayerSchema | None:
        """Return player row by ID, locking it until the transaction ends."""
        stmt = (
            select(PlayerSchema)
            .where(PlayerSchema.player_id == player_id)
            .with_for_update()
        )
        return self._session.scalar(stmt)

    def add(self, player: PlayerSchema) -> PlayerSchema:
        """Add new player to database."""
        self._session.add(player)
        self._session.flush()
        self._session.refresh(player)
        return player

    def update_versioned(
        self,
        player_id: str,
        *,
        expected_version: int,
        version: int,
        document: dict[str, Any],
    ) -> bool:
        """Write *document* only if the stored version is *expected_version*."""
        stmt = (
            update(PlayerSchema)
            .where(
                PlayerSchema.player_id == player_id,
                PlayerSchema.version == expected_version,
            )
            .values(version=version, document=document)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return result.rowcount == 1
