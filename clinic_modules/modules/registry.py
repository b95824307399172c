"""
Clinic Module Registry
======================

Catalog of the feature modules a clinic can run.

Each module is a product area that can be switched on per tenant:
- Required modules are active for every clinic and can never be disabled
- Optional modules may need other modules to be active first
- The dependency table is static and validated when the catalog is built

Catalogs can also be loaded from a JSON document:

    {"modules": [{"id": "stock", "name": "Stock", "dependencies": ["financial"]}]}
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from clinic_modules.errors import CatalogError, UnknownModule
from clinic_modules.modules.graph import ModuleDependencyGraph


@dataclass(frozen=True)
class Module:
    """
    An installable clinic feature module.

    Attributes:
        id: Unique, stable module identifier
        name: Human-readable name
        description: What this module does
        required: Active for every tenant, cannot be disabled
        dependencies: Module IDs that must be active before this one
    """
    id: str
    name: str
    description: str = ""
    required: bool = False
    dependencies: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "required": self.required,
            "dependencies": list(self.dependencies),
        }


# ============================================
# CATALOG
# ============================================

class ModuleCatalog:
    """
    Static registry of modules, in declaration order.

    Construction rejects duplicate ids, dependencies on unknown modules,
    required modules with dependencies, and dependency cycles.
    """

    def __init__(self, modules: Iterable[Module]):
        self._modules: Dict[str, Module] = {}
        for module in modules:
            if module.id in self._modules:
                raise CatalogError(f"Duplicate module id: {module.id}", {"module_id": module.id})
            self._modules[module.id] = module

        for module in self._modules.values():
            unknown = [d for d in module.dependencies if d not in self._modules]
            if unknown:
                raise CatalogError(
                    f"{module.id} depends on unknown modules: {', '.join(unknown)}",
                    {"module_id": module.id, "unknown": unknown},
                )
            if module.required and module.dependencies:
                raise CatalogError(
                    f"Required module {module.id} cannot have dependencies",
                    {"module_id": module.id, "dependencies": list(module.dependencies)},
                )

        self._graph = ModuleDependencyGraph({m.id: m.dependencies for m in self._modules.values()})
        self._graph.check_acyclic()

        self._dependents: Dict[str, Tuple[str, ...]] = {
            module_id: tuple(self._graph.dependents_of(module_id)) for module_id in self._modules
        }
        self._required: Tuple[str, ...] = tuple(m.id for m in self._modules.values() if m.required)

    @property
    def graph(self) -> ModuleDependencyGraph:
        return self._graph

    def list_modules(self) -> List[Module]:
        """All modules, in declaration order."""
        return list(self._modules.values())

    def module_ids(self) -> List[str]:
        return list(self._modules)

    def get_module(self, module_id: str) -> Optional[Module]:
        """Get a module by ID."""
        return self._modules.get(module_id)

    def require_module(self, module_id: str) -> Module:
        """Get a module by ID or raise UnknownModule."""
        module = self._modules.get(module_id)
        if module is None:
            raise UnknownModule(module_id)
        return module

    def dependents_of(self, module_id: str) -> Tuple[str, ...]:
        """Modules that list `module_id` as a direct dependency."""
        return self._dependents.get(module_id, ())

    def required_ids(self) -> FrozenSet[str]:
        return frozenset(self._required)

    def order(self, module_ids: Iterable[str]) -> List[str]:
        """Sort module IDs by declaration order."""
        return self._graph.sort(module_ids)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)


# ============================================
# CATALOG FILES
# ============================================

class ModuleDefinition(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    required: bool = False
    dependencies: List[str] = Field(default_factory=list)


class CatalogDefinition(BaseModel):
    modules: List[ModuleDefinition]


def load_catalog(path: Union[str, Path]) -> ModuleCatalog:
    """Build a catalog from a JSON catalog file."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read catalog file {path}: {e}", {"path": str(path)}) from e
    try:
        definition = CatalogDefinition.model_validate_json(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog file {path}: {e}", {"path": str(path)}) from e
    return ModuleCatalog(Module(**m.model_dump()) for m in definition.modules)


# ============================================
# DEFAULT CLINIC CATALOG
# ============================================

CLINIC_MODULES: List[Module] = [
    # Core - active for every clinic
    Module(id="patients", name="Gestão de Pacientes", description="Cadastro e gerenciamento de pacientes", required=True),
    Module(id="appointments", name="Agendamentos", description="Sistema de agendamento de consultas", required=True),
    Module(id="clinical", name="Prontuário Clínico", description="Registros clínicos e prontuários eletrônicos", required=True),

    # Optional
    Module(id="financial", name="Gestão Financeira", description="Faturamento, pagamentos e controle financeiro"),
    Module(id="tiss", name="Integração TISS", description="Integração com padrão TISS para operadoras", dependencies=("financial", "clinical")),
    Module(id="stock", name="Gestão de Estoque", description="Controle de estoque e inventário", dependencies=("financial",)),
    Module(id="procedures", name="Gestão de Procedimentos", description="Cadastro e gerenciamento de procedimentos", dependencies=("financial", "stock")),
    Module(id="bi", name="Business Intelligence", description="Relatórios e análises avançadas", dependencies=("financial", "clinical", "appointments")),
    Module(id="telemed", name="Telemedicina", description="Consultas e atendimentos remotos", dependencies=("appointments", "clinical")),
    Module(id="mobile", name="Aplicativo Mobile", description="Acesso via aplicativo móvel", dependencies=("appointments", "clinical", "patients")),
]


def default_catalog() -> ModuleCatalog:
    """The built-in clinic module catalog."""
    return ModuleCatalog(CLINIC_MODULES)
