from abc import ABC, abstractmethod
from typing import Iterable, Optional

from clinic_modules.schema import TenantModuleState


class TenantModuleStore(ABC):
    """
    Per-tenant active module sets with optimistic concurrency.

    Every write bumps the stored version. A write made against a stale
    version raises ConcurrencyConflict instead of overwriting.
    """

    @abstractmethod
    async def init(self) -> None:
        """Initialize storage (create tables, etc.)."""
        ...

    @abstractmethod
    async def get_state(self, tenant_id: str) -> Optional[TenantModuleState]:
        """Current state for a tenant, or None if it was never provisioned."""
        ...

    @abstractmethod
    async def create_state(self, tenant_id: str, modules: Iterable[str]) -> TenantModuleState:
        """Create a tenant's state. Raises TenantAlreadyExists."""
        ...

    @abstractmethod
    async def set_active_modules(
        self, tenant_id: str, modules: Iterable[str], expected_version: int
    ) -> TenantModuleState:
        """
        Replace a tenant's active set if its version is still `expected_version`.

        Raises TenantNotFound or ConcurrencyConflict.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close storage connections."""
        ...
