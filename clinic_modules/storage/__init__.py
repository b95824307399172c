import logging

from clinic_modules.config import ModuleControlConfig
from clinic_modules.storage.base import TenantModuleStore
from clinic_modules.storage.memory import InMemoryTenantModuleStore
from clinic_modules.storage.postgres import PostgresTenantModuleStore
from clinic_modules.storage.sqlite import SQLiteTenantModuleStore

logger = logging.getLogger(__name__)

__all__ = [
    "InMemoryTenantModuleStore",
    "PostgresTenantModuleStore",
    "SQLiteTenantModuleStore",
    "TenantModuleStore",
    "create_store",
]


async def create_store(config: ModuleControlConfig) -> TenantModuleStore:
    """Build and initialize the store selected by `config.store_backend`."""
    if config.store_backend == "memory":
        store = InMemoryTenantModuleStore()
    elif config.store_backend == "postgres":
        import asyncpg
        pool = await asyncpg.create_pool(
            config.database.url,
            min_size=config.database.min_pool_size,
            max_size=config.database.max_pool_size,
        )
        store = PostgresTenantModuleStore(pool, owns_pool=True)
    else:
        store = SQLiteTenantModuleStore(config.store_path)

    await store.init()
    logger.info(f"Tenant module store ready ({config.store_backend})")
    return store
