"""Repositories wrapping SQLAlchemy sessions."""

from harvest_backend.database.repositories.player import PlayerRepository

__all__ = ["PlayerRepository"]
