import logging
from typing import Iterable, Optional

from clinic_modules.errors import ConcurrencyConflict, TenantAlreadyExists, TenantNotFound
from clinic_modules.schema import TenantModuleState
from clinic_modules.storage.base import TenantModuleStore

logger = logging.getLogger(__name__)

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tenant_modules (
    tenant_id TEXT PRIMARY KEY,
    active_modules TEXT[] NOT NULL DEFAULT '{}',
    version INTEGER NOT NULL DEFAULT 1,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""


class PostgresTenantModuleStore(TenantModuleStore):
    def __init__(self, pool, owns_pool: bool = False):
        """Takes an existing asyncpg.Pool instance."""
        self._pool = pool
        self._owns_pool = owns_pool
        self._initialized = False

    async def init(self) -> None:
        await self._pool.execute(CREATE_TABLE)
        self._initialized = True

    async def get_state(self, tenant_id: str) -> Optional[TenantModuleState]:
        if not self._initialized:
            await self.init()
        row = await self._pool.fetchrow(
            "SELECT active_modules, version FROM tenant_modules WHERE tenant_id = $1",
            tenant_id,
        )
        if row is None:
            return None
        return TenantModuleState(tenant_id, frozenset(row["active_modules"]), row["version"])

    async def create_state(self, tenant_id: str, modules: Iterable[str]) -> TenantModuleState:
        if not self._initialized:
            await self.init()
        active = sorted(set(modules))
        version = await self._pool.fetchval(
            """INSERT INTO tenant_modules (tenant_id, active_modules, version)
               VALUES ($1, $2, 1)
               ON CONFLICT (tenant_id) DO NOTHING
               RETURNING version""",
            tenant_id, active,
        )
        if version is None:
            raise TenantAlreadyExists(tenant_id)
        return TenantModuleState(tenant_id, frozenset(active), version)

    async def set_active_modules(
        self, tenant_id: str, modules: Iterable[str], expected_version: int
    ) -> TenantModuleState:
        if not self._initialized:
            await self.init()
        active = sorted(set(modules))
        version = await self._pool.fetchval(
            """UPDATE tenant_modules
               SET active_modules = $2, version = version + 1, updated_at = now()
               WHERE tenant_id = $1 AND version = $3
               RETURNING version""",
            tenant_id, active, expected_version,
        )
        if version is None:
            current = await self._pool.fetchval(
                "SELECT version FROM tenant_modules WHERE tenant_id = $1", tenant_id
            )
            if current is None:
                raise TenantNotFound(tenant_id)
            raise ConcurrencyConflict(tenant_id, expected_version, current)
        logger.debug(f"Stored modules for {tenant_id} at version {version}")
        return TenantModuleState(tenant_id, frozenset(active), version)

    async def close(self) -> None:
        if self._owns_pool:
            await self._pool.close()
        # Otherwise the pool lifecycle is managed externally
