from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List


@dataclass(frozen=True)
class TenantModuleState:
    """A tenant's active module set, as last read from the store."""
    tenant_id: str
    active_modules: FrozenSet[str]
    version: int = 1

    def __post_init__(self):
        object.__setattr__(self, "active_modules", frozenset(self.active_modules))

    def is_active(self, module_id: str) -> bool:
        return module_id in self.active_modules


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of an accepted activation request."""
    tenant_id: str
    active_modules: FrozenSet[str]
    enabled: List[str] = field(default_factory=list)
    disabled: List[str] = field(default_factory=list)
    version: int = 1

    @property
    def changed(self) -> bool:
        return bool(self.enabled or self.disabled)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "active_modules": sorted(self.active_modules),
            "enabled": list(self.enabled),
            "disabled": list(self.disabled),
            "changed": self.changed,
            "version": self.version,
        }


@dataclass
class ModuleStatus:
    """One module as seen by a given tenant."""
    id: str
    name: str
    description: str
    enabled: bool
    required: bool
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)
    missing_dependencies: List[str] = field(default_factory=list)
    active_dependents: List[str] = field(default_factory=list)

    @property
    def can_enable(self) -> bool:
        return not self.enabled and not self.missing_dependencies

    @property
    def can_disable(self) -> bool:
        return self.enabled and not self.required and not self.active_dependents


class ViolationKind(str, Enum):
    UNKNOWN_MODULE = "unknown_module"
    REQUIRED_MISSING = "required_missing"
    MISSING_DEPENDENCIES = "missing_dependencies"


@dataclass(frozen=True)
class ModuleViolation:
    """An invariant breach found in a proposed active set."""
    module_id: str
    kind: ViolationKind
    modules: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.kind == ViolationKind.UNKNOWN_MODULE:
            return f"Unknown module: {self.module_id}"
        if self.kind == ViolationKind.REQUIRED_MISSING:
            return f"Required module cannot be disabled: {self.module_id}"
        return f"{self.module_id} requires: {', '.join(self.modules)}"

    def to_dict(self) -> Dict[str, Any]:
        return {"module_id": self.module_id, "kind": self.kind.value, "modules": list(self.modules)}
