import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from clinic_modules.errors import ConcurrencyConflict, TenantAlreadyExists, TenantNotFound
from clinic_modules.schema import TenantModuleState
from clinic_modules.storage.base import TenantModuleStore

logger = logging.getLogger(__name__)

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tenant_modules (
    tenant_id TEXT PRIMARY KEY,
    active_modules TEXT NOT NULL DEFAULT '[]',
    version INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL
);
"""

INSERT_SQL = """
INSERT OR IGNORE INTO tenant_modules (tenant_id, active_modules, version, updated_at)
VALUES (?, ?, 1, ?)
"""

UPDATE_SQL = """
UPDATE tenant_modules
SET active_modules = ?, version = version + 1, updated_at = ?
WHERE tenant_id = ? AND version = ?
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteTenantModuleStore(TenantModuleStore):
    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._db = None

    async def init(self) -> None:
        import aiosqlite
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.executescript(CREATE_TABLE)
        await self._db.commit()

    async def get_state(self, tenant_id: str) -> Optional[TenantModuleState]:
        if not self._db:
            await self.init()
        async with self._db.execute(
            "SELECT active_modules, version FROM tenant_modules WHERE tenant_id = ?", (tenant_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return TenantModuleState(tenant_id, frozenset(json.loads(row[0])), row[1])

    async def create_state(self, tenant_id: str, modules: Iterable[str]) -> TenantModuleState:
        if not self._db:
            await self.init()
        active = sorted(set(modules))
        cursor = await self._db.execute(INSERT_SQL, (tenant_id, json.dumps(active), _now()))
        await self._db.commit()
        if cursor.rowcount == 0:
            raise TenantAlreadyExists(tenant_id)
        return TenantModuleState(tenant_id, frozenset(active), 1)

    async def set_active_modules(
        self, tenant_id: str, modules: Iterable[str], expected_version: int
    ) -> TenantModuleState:
        if not self._db:
            await self.init()
        active = sorted(set(modules))
        cursor = await self._db.execute(
            UPDATE_SQL, (json.dumps(active), _now(), tenant_id, expected_version)
        )
        await self._db.commit()
        if cursor.rowcount == 0:
            current = await self.get_state(tenant_id)
            if current is None:
                raise TenantNotFound(tenant_id)
            raise ConcurrencyConflict(tenant_id, expected_version, current.version)
        logger.debug(f"Stored modules for {tenant_id} at version {expected_version + 1}")
        return TenantModuleState(tenant_id, frozenset(active), expected_version + 1)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
