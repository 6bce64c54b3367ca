"""HOPPER Repositories Package"""

from functools import lru_cache

from hopper.config import settings
from hopper.repositories.base import HopperRepository
from hopper.repositories.memory import InMemoryRepository
from hopper.repositories.mongo import MongoRepository


@lru_cache()
def get_repository() -> HopperRepository:
    """Repository for the configured storage backend (one per process)."""
    if settings.storage_backend == "memory":
        return InMemoryRepository()
    return MongoRepository()


__all__ = [
    "HopperRepository",
    "InMemoryRepository",
    "MongoRepository",
    "get_repository",
]
