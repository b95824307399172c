"""
Clinic Module Errors
====================

Typed rejections raised by the catalog, the activation engine and the
tenant module stores. Callers present the carried module lists to users.
"""

from typing import Any, Dict, List, Optional


class ModuleControlError(Exception):
    """Base exception for module control errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class CatalogError(ModuleControlError):
    """Malformed module catalog."""
    pass


class CycleDetected(CatalogError):
    """Dependency traversal revisited a module on the current path."""
    def __init__(self, path: List[str]):
        self.path = list(path)
        super().__init__(
            f"Dependency cycle detected: {' -> '.join(self.path)}",
            {"path": self.path},
        )


class TenantNotFound(ModuleControlError):
    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant has no module state: {tenant_id}", {"tenant_id": tenant_id})


class TenantAlreadyExists(ModuleControlError):
    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant already provisioned: {tenant_id}", {"tenant_id": tenant_id})


class UnknownModule(ModuleControlError):
    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Unknown module: {module_id}", {"module_id": module_id})


class MissingDependencies(ModuleControlError):
    """Activation blocked by inactive dependencies."""
    def __init__(self, module_id: str, missing: List[str]):
        self.module_id = module_id
        self.missing = list(missing)
        super().__init__(
            f"{module_id} requires: {', '.join(self.missing)}",
            {"module_id": module_id, "missing": self.missing},
        )


class ActiveDependents(ModuleControlError):
    """Deactivation blocked by active modules that depend on this one."""
    def __init__(self, module_id: str, dependents: List[str]):
        self.module_id = module_id
        self.dependents = list(dependents)
        super().__init__(
            f"{module_id} is required by active modules: {', '.join(self.dependents)}",
            {"module_id": module_id, "dependents": self.dependents},
        )


class RequiredModuleCannotBeDisabled(ModuleControlError):
    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Required module cannot be disabled: {module_id}", {"module_id": module_id})


class RequiredModuleInCascade(ModuleControlError):
    def __init__(self, module_id: str, required: List[str]):
        self.module_id = module_id
        self.required = list(required)
        super().__init__(
            f"Cascading disable of {module_id} would disable required modules: {', '.join(self.required)}",
            {"module_id": module_id, "required": self.required},
        )


class InvalidModuleSet(ModuleControlError):
    """A proposed active set breaks one or more invariants."""
    def __init__(self, violations: List[Any]):
        self.violations = list(violations)
        super().__init__(
            "; ".join(str(v) for v in self.violations) or "Invalid module set",
            {"violations": [v.to_dict() for v in self.violations]},
        )


class ConcurrencyConflict(ModuleControlError):
    """Stored state changed since it was read. Safe to retry."""
    def __init__(self, tenant_id: str, expected_version: int, actual_version: Optional[int] = None):
        self.tenant_id = tenant_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Module state for {tenant_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            {
                "tenant_id": tenant_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
