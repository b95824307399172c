"""
Module Activation Engine
========================

The only component allowed to change which modules a tenant has active.

Every request runs the same way:
1. Load the tenant's active set (and its version) from the store
2. Validate the change against the catalog and dependency graph
3. Either write the new set with the version that was read, or raise a
   typed rejection carrying the conflicting module ids

Nothing is written when a request is rejected. Dependencies are never
enabled implicitly, and dependents are only disabled through an explicit
cascading request, so each accepted call is an auditable change.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from clinic_modules.errors import (
    ActiveDependents,
    ConcurrencyConflict,
    InvalidModuleSet,
    MissingDependencies,
    RequiredModuleCannotBeDisabled,
    RequiredModuleInCascade,
    TenantNotFound,
)
from clinic_modules.modules.graph import ModuleDependencyGraph
from clinic_modules.modules.registry import ModuleCatalog
from clinic_modules.schema import (
    ModuleStatus,
    ModuleViolation,
    TenantModuleState,
    ToggleResult,
    ViolationKind,
)
from clinic_modules.storage.base import TenantModuleStore

logger = logging.getLogger(__name__)


class ModuleActivationEngine:
    """
    Validates and applies module changes for tenants.

    Holds no per-tenant state between calls. The catalog and graph are
    read-only; concurrent writers for one tenant are arbitrated by the
    store's version check, and the loser gets ConcurrencyConflict.
    """

    def __init__(
        self,
        catalog: ModuleCatalog,
        store: TenantModuleStore,
        graph: Optional[ModuleDependencyGraph] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.graph = graph or catalog.graph

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_state(self, tenant_id: str) -> TenantModuleState:
        state = await self.store.get_state(tenant_id)
        if state is None:
            raise TenantNotFound(tenant_id)
        return state

    async def describe_modules(self, tenant_id: str) -> List[ModuleStatus]:
        """Every catalog module with the tenant's status and dependency hints."""
        state = await self.get_state(tenant_id)
        active = state.active_modules
        statuses = []
        for module in self.catalog.list_modules():
            dependents = list(self.catalog.dependents_of(module.id))
            statuses.append(ModuleStatus(
                id=module.id,
                name=module.name,
                description=module.description,
                enabled=state.is_active(module.id),
                required=module.required,
                dependencies=list(module.dependencies),
                dependents=dependents,
                missing_dependencies=[d for d in module.dependencies if d not in active],
                active_dependents=[d for d in dependents if d in active],
            ))
        return statuses

    def validate_module_set(self, module_ids: Iterable[str]) -> List[ModuleViolation]:
        """Check a proposed active set against every invariant. Pure."""
        proposed = set(module_ids)
        violations = []

        for module_id in sorted(m for m in proposed if m not in self.catalog):
            violations.append(ModuleViolation(module_id, ViolationKind.UNKNOWN_MODULE))

        for module_id in self.catalog.order(self.catalog.required_ids() - proposed):
            violations.append(ModuleViolation(module_id, ViolationKind.REQUIRED_MISSING))

        for module in self.catalog.list_modules():
            if module.id not in proposed:
                continue
            missing = [d for d in module.dependencies if d not in proposed]
            if missing:
                violations.append(ModuleViolation(module.id, ViolationKind.MISSING_DEPENDENCIES, missing))

        return violations

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def provision_tenant(self, tenant_id: str) -> TenantModuleState:
        """Create a tenant's state with exactly the required modules."""
        required = self.catalog.order(self.catalog.required_ids())
        state = await self.store.create_state(tenant_id, required)
        logger.info(
            f"Provisioned {tenant_id} with {', '.join(required) or 'no modules'}",
            extra={"tenant_id": tenant_id, "action": "provision"},
        )
        return state

    async def request_toggle(self, tenant_id: str, module_id: str, enabled: bool) -> ToggleResult:
        """
        Enable or disable a single module.

        Raises:
            TenantNotFound, UnknownModule
            MissingDependencies: enabling with inactive dependencies
            RequiredModuleCannotBeDisabled: disabling a required module
            ActiveDependents: disabling while active modules depend on it
            ConcurrencyConflict: the tenant's state changed meanwhile
        """
        state = await self.get_state(tenant_id)
        module = self.catalog.require_module(module_id)
        active = state.active_modules

        if enabled:
            if module_id in active:
                return self._unchanged(state)
            missing = [d for d in module.dependencies if d not in active]
            if missing:
                self._log_rejection(tenant_id, module_id, "enable", f"missing dependencies {missing}")
                raise MissingDependencies(module_id, missing)
            return await self._commit(state, active | {module_id}, "enable", module_id, enabled=[module_id])

        if module.required:
            self._log_rejection(tenant_id, module_id, "disable", "module is required")
            raise RequiredModuleCannotBeDisabled(module_id)
        if module_id not in active:
            return self._unchanged(state)
        active_dependents = [d for d in self.catalog.dependents_of(module_id) if d in active]
        if active_dependents:
            self._log_rejection(tenant_id, module_id, "disable", f"active dependents {active_dependents}")
            raise ActiveDependents(module_id, active_dependents)
        return await self._commit(state, active - {module_id}, "disable", module_id, disabled=[module_id])

    async def request_cascading_disable(self, tenant_id: str, module_id: str) -> ToggleResult:
        """
        Disable a module together with every active module that depends on it.

        All-or-nothing: one write, or a rejection and no write.

        Raises:
            TenantNotFound, UnknownModule
            RequiredModuleInCascade: the cascade would reach a required module
            ConcurrencyConflict: the tenant's state changed meanwhile
        """
        state = await self.get_state(tenant_id)
        self.catalog.require_module(module_id)
        active = state.active_modules

        cascade = (self.graph.transitive_dependents(module_id) & active) | {module_id}
        required = [m for m in self.catalog.order(cascade) if self._is_required(m)]
        if required:
            self._log_rejection(tenant_id, module_id, "cascade_disable", f"required modules {required}")
            raise RequiredModuleInCascade(module_id, required)

        to_remove = cascade & active
        if not to_remove:
            return self._unchanged(state)

        # Dependents go first
        disabled = list(reversed(self.graph.install_order(to_remove)))
        return await self._commit(state, active - to_remove, "cascade_disable", module_id, disabled=disabled)

    async def apply_module_set(self, tenant_id: str, module_ids: Iterable[str]) -> ToggleResult:
        """
        Replace a tenant's active set with a complete proposed set.

        Used to commit staged edits. The proposed set is validated as a
        whole and written once; InvalidModuleSet is raised with every
        violation found and nothing is written.
        """
        state = await self.get_state(tenant_id)
        desired = frozenset(module_ids)

        violations = self.validate_module_set(desired)
        if violations:
            self._log_rejection(tenant_id, None, "apply_set", "; ".join(str(v) for v in violations))
            raise InvalidModuleSet(violations)

        active = state.active_modules
        enabled = self.graph.install_order(desired - active)
        disabled = list(reversed(self.graph.install_order(active - desired)))
        if not enabled and not disabled:
            return self._unchanged(state)
        return await self._commit(state, desired, "apply_set", None, enabled=enabled, disabled=disabled)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_required(self, module_id: str) -> bool:
        module = self.catalog.get_module(module_id)
        return module is not None and module.required

    def _unchanged(self, state: TenantModuleState) -> ToggleResult:
        return ToggleResult(state.tenant_id, state.active_modules, version=state.version)

    async def _commit(
        self,
        state: TenantModuleState,
        new_active: Iterable[str],
        action: str,
        module_id: Optional[str],
        enabled: Sequence[str] = (),
        disabled: Sequence[str] = (),
    ) -> ToggleResult:
        try:
            stored = await self.store.set_active_modules(
                state.tenant_id, self.catalog.order(new_active), state.version
            )
        except ConcurrencyConflict:
            logger.warning(
                f"Concurrent module change for {state.tenant_id}, {action} not applied",
                extra={"tenant_id": state.tenant_id, "module_id": module_id, "action": action},
            )
            raise

        changes = [f"+{m}" for m in enabled] + [f"-{m}" for m in disabled]
        logger.info(
            f"Modules updated for {state.tenant_id}: {' '.join(changes)}",
            extra={"tenant_id": state.tenant_id, "module_id": module_id, "action": action},
        )
        return ToggleResult(
            tenant_id=state.tenant_id,
            active_modules=stored.active_modules,
            enabled=list(enabled),
            disabled=list(disabled),
            version=stored.version,
        )

    def _log_rejection(self, tenant_id: str, module_id: Optional[str], action: str, reason: str) -> None:
        logger.warning(
            f"Rejected {action} for {tenant_id}: {reason}",
            extra={"tenant_id": tenant_id, "module_id": module_id, "action": action},
        )
