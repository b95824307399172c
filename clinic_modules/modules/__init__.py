"""
Clinic Module Registry
======================

Static catalog of clinic feature modules and the dependency graph over it.

Module lifecycle per clinic:
1. Clinic is provisioned -> required modules enabled
2. Optional modules are enabled once their dependencies are active
3. Modules are disabled once nothing active depends on them
   (or together with their dependents, on explicit request)
"""

from .graph import ModuleDependencyGraph
from .registry import (
    CLINIC_MODULES,
    CatalogDefinition,
    Module,
    ModuleCatalog,
    ModuleDefinition,
    default_catalog,
    load_catalog,
)

__all__ = [
    "CLINIC_MODULES",
    "CatalogDefinition",
    "Module",
    "ModuleCatalog",
    "ModuleDefinition",
    "ModuleDependencyGraph",
    "default_catalog",
    "load_catalog",
]
