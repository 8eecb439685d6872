"""FastAPI dependency injection: location directory and preference store."""

from __future__ import annotations

from functools import lru_cache

from weather_buddy.memory.locations import LocationDirectory
from weather_buddy.memory.user_preferences import JsonPreferenceStore, PreferenceRepository


@lru_cache(maxsize=1)
def get_directory() -> LocationDirectory:
    return LocationDirectory()


@lru_cache(maxsize=1)
def get_store() -> PreferenceRepository:
    """Return the process-wide preference store (JSON file backed)."""
    return JsonPreferenceStore(directory=get_directory())
