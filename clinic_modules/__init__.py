"""
Clinic Module Control
=====================

Decides which feature modules each clinic (tenant) may have active.

- modules: static catalog and dependency graph
- engine: validates and applies activation changes
- storage: per-tenant active sets with optimistic concurrency
"""

from clinic_modules.engine import ModuleActivationEngine
from clinic_modules.errors import (
    ActiveDependents,
    CatalogError,
    ConcurrencyConflict,
    CycleDetected,
    InvalidModuleSet,
    MissingDependencies,
    ModuleControlError,
    RequiredModuleCannotBeDisabled,
    RequiredModuleInCascade,
    TenantAlreadyExists,
    TenantNotFound,
    UnknownModule,
)
from clinic_modules.modules import Module, ModuleCatalog, ModuleDependencyGraph, default_catalog, load_catalog
from clinic_modules.schema import ModuleStatus, ModuleViolation, TenantModuleState, ToggleResult, ViolationKind

__all__ = [
    "ActiveDependents",
    "CatalogError",
    "ConcurrencyConflict",
    "CycleDetected",
    "InvalidModuleSet",
    "MissingDependencies",
    "Module",
    "ModuleActivationEngine",
    "ModuleCatalog",
    "ModuleControlError",
    "ModuleDependencyGraph",
    "ModuleStatus",
    "ModuleViolation",
    "RequiredModuleCannotBeDisabled",
    "RequiredModuleInCascade",
    "TenantAlreadyExists",
    "TenantModuleState",
    "TenantNotFound",
    "ToggleResult",
    "UnknownModule",
    "ViolationKind",
    "default_catalog",
    "load_catalog",
]
