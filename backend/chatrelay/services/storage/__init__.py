"""Storage backend factory."""

from chatrelay.core.config import Settings
from chatrelay.services.storage.base import ChatNotFoundError, Storage, StorageError, UsernameTakenError

__all__ = ["ChatNotFoundError", "Storage", "StorageError", "UsernameTakenError", "create_storage"]


def create_storage(settings: Settings) -> Storage:
    """Factory function that returns the configured storage backend."""
    if settings.storage_backend == "memory":
        from chatrelay.services.storage.memory import MemoryStorage
        return MemoryStorage(settings.session_secret, settings.log_capacity)
    elif settings.storage_backend == "database":
        from chatrelay.core.database import create_db_engine, init_db
        from chatrelay.services.storage.database import DatabaseStorage
        engine = create_db_engine(settings.database_url, echo=settings.debug)
        init_db(engine)
        return DatabaseStorage(engine, settings.session_secret, settings.log_capacity)
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
