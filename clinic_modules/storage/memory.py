import asyncio
import logging
from typing import Dict, Iterable, Mapping, Optional

from clinic_modules.errors import ConcurrencyConflict, TenantAlreadyExists, TenantNotFound
from clinic_modules.schema import TenantModuleState
from clinic_modules.storage.base import TenantModuleStore

logger = logging.getLogger(__name__)


class InMemoryTenantModuleStore(TenantModuleStore):
    """Process-local store for tests and single-process tools."""

    def __init__(self, initial: Optional[Mapping[str, Iterable[str]]] = None):
        self._states: Dict[str, TenantModuleState] = {}
        self._lock = asyncio.Lock()
        for tenant_id, modules in (initial or {}).items():
            self._states[tenant_id] = TenantModuleState(tenant_id, frozenset(modules), 1)

    async def init(self) -> None:
        pass

    async def get_state(self, tenant_id: str) -> Optional[TenantModuleState]:
        return self._states.get(tenant_id)

    async def create_state(self, tenant_id: str, modules: Iterable[str]) -> TenantModuleState:
        async with self._lock:
            if tenant_id in self._states:
                raise TenantAlreadyExists(tenant_id)
            state = TenantModuleState(tenant_id, frozenset(modules), 1)
            self._states[tenant_id] = state
            return state

    async def set_active_modules(
        self, tenant_id: str, modules: Iterable[str], expected_version: int
    ) -> TenantModuleState:
        async with self._lock:
            current = self._states.get(tenant_id)
            if current is None:
                raise TenantNotFound(tenant_id)
            if current.version != expected_version:
                raise ConcurrencyConflict(tenant_id, expected_version, current.version)
            state = TenantModuleState(tenant_id, frozenset(modules), current.version + 1)
            self._states[tenant_id] = state
            logger.debug(f"Stored modules for {tenant_id} at version {state.version}")
            return state

    async def close(self) -> None:
        pass
