"""Harvest economy backend package wiring."""

from harvest_backend.game_logic import HarvestGameService
from harvest_backend.settings import BackendSettings, get_settings

__all__ = ["BackendSettings", "HarvestGameService", "get_settings"]
