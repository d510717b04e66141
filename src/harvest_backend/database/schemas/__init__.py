"""SQLAlchemy schemas."""

from harvest_backend.database.schemas.player import PlayerSchema

__all__ = ["PlayerSchema"]
