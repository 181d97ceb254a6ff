# remindd/store/factory.py
import logging

from remindd.store.base import RecordStore
from remindd.store.file import FileRecordStore
from remindd.store.memory import MemoryRecordStore

log = logging.getLogger(__name__)


def build_record_store(settings) -> RecordStore:
    """
    Picks the record store backend once, at startup.
    Everything else receives the built store and never looks at DATABASE_BACKEND.
    """
    backend = settings.DATABASE_BACKEND

    if backend == "memory":
        log.warning("Using in-memory record store; cooldowns will not survive a restart.")
        return MemoryRecordStore()

    if backend == "file":
        log.info("Using file record store at %s.", settings.STORE_FILE_PATH)
        return FileRecordStore(settings.STORE_FILE_PATH)

    if backend == "sql":
        # Imported lazily so memory/file deployments never load the SQL driver stack
        from remindd.core.db import build_db_url, create_engine
        from remindd.store.sql import SqlRecordStore

        log.info("Using SQL record store.")
        return SqlRecordStore(create_engine(build_db_url(settings)))

    raise ValueError(f"Unknown DATABASE_BACKEND: {backend!r}")
