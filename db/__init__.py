"""Scheduling stores: repository contract, in-memory and Supabase implementations."""

from typing import Optional

from config import settings

from .memory_store import InMemorySchedulingStore
from .repository import SchedulingRepository
from .supabase_client import SupabaseSchedulingStore

__all__ = [
    "InMemorySchedulingStore",
    "SchedulingRepository",
    "SupabaseSchedulingStore",
    "get_repository",
    "reset_repository",
]

# Global store instance
_repository: Optional[SchedulingRepository] = None


def get_repository() -> SchedulingRepository:
    """Get or create the store selected by settings.storage_backend."""
    global _repository
    if _repository is None:
        if settings.storage_backend == "supabase":
            _repository = SupabaseSchedulingStore()
        else:
            _repository = InMemorySchedulingStore()
    return _repository


def reset_repository() -> None:
    """Drop the cached store so the next get_repository() rebuilds it."""
    global _repository
    _repository = None
