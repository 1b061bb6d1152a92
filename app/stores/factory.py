"""
Formloop — Record store construction.

``build_store`` is called once from the application lifespan (or a script)
and the returned handle is passed explicitly to everything that needs it.
"""

from __future__ import annotations

import structlog

from app.config import Settings
from app.database import build_engine, create_all
from app.stores.base import RecordStore
from app.stores.memory import MemoryRecordStore
from app.stores.seed import seed_demo_data
from app.stores.sql import SqlRecordStore

logger = structlog.get_logger("formloop.stores")


async def build_store(settings: Settings) -> RecordStore:
    """Create the record store selected by ``STORE_BACKEND``.

    SQLite databases get their tables created on the spot; PostgreSQL is
    expected to be migrated with Alembic beforehand.
    """
    if settings.STORE_BACKEND == "memory":
        store: RecordStore = MemoryRecordStore()
    else:
        engine = build_engine(settings)
        if engine.dialect.name == "sqlite":
            await create_all(engine)
        store = SqlRecordStore(engine)

    if settings.SEED_DEMO_DATA:
        await seed_demo_data(store)

    logger.info("record_store_ready", backend=store.backend_name)
    return store
