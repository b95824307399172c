"""
Tests for the Module Registry
=============================

Catalog ordering, lookups and construction-time validation.
"""

import json

import pytest

from clinic_modules.errors import CatalogError, CycleDetected, UnknownModule
from clinic_modules.modules.registry import CLINIC_MODULES, Module, ModuleCatalog, load_catalog


class TestDefaultCatalog:
    """Test the built-in clinic catalog."""

    def test_declaration_order(self, catalog):
        assert catalog.module_ids() == [m.id for m in CLINIC_MODULES]
        assert [m.id for m in catalog.list_modules()][:3] == ["patients", "appointments", "clinical"]

    def test_required_modules(self, catalog):
        assert catalog.required_ids() == {"patients", "appointments", "clinical"}

    def test_required_modules_have_no_dependencies(self, catalog):
        for module in catalog:
            if module.required:
                assert module.dependencies == ()

    def test_get_module(self, catalog):
        module = catalog.get_module("stock")
        assert module.name == "Gestão de Estoque"
        assert module.dependencies == ("financial",)
        assert catalog.get_module("nonexistent") is None

    def test_require_module_unknown(self, catalog):
        with pytest.raises(UnknownModule) as exc:
            catalog.require_module("nonexistent")
        assert exc.value.module_id == "nonexistent"

    def test_dependents_of(self, catalog):
        assert catalog.dependents_of("financial") == ("tiss", "stock", "procedures", "bi")
        assert catalog.dependents_of("stock") == ("procedures",)
        assert catalog.dependents_of("mobile") == ()

    def test_order(self, catalog):
        assert catalog.order({"bi", "patients", "stock"}) == ["patients", "stock", "bi"]

    def test_contains_and_len(self, catalog):
        assert "tiss" in catalog
        assert "nonexistent" not in catalog
        assert len(catalog) == len(CLINIC_MODULES)


class TestCatalogValidation:
    """Test that malformed catalogs are rejected."""

    def test_duplicate_id(self):
        with pytest.raises(CatalogError, match="Duplicate"):
            ModuleCatalog([Module(id="a", name="A"), Module(id="a", name="A again")])

    def test_unknown_dependency(self):
        with pytest.raises(CatalogError) as exc:
            ModuleCatalog([Module(id="a", name="A", dependencies=["ghost"])])
        assert exc.value.details["unknown"] == ["ghost"]

    def test_required_with_dependencies(self):
        with pytest.raises(CatalogError, match="cannot have dependencies"):
            ModuleCatalog([
                Module(id="a", name="A"),
                Module(id="b", name="B", required=True, dependencies=["a"]),
            ])

    def test_cycle(self):
        with pytest.raises(CycleDetected) as exc:
            ModuleCatalog([
                Module(id="a", name="A", dependencies=["c"]),
                Module(id="b", name="B", dependencies=["a"]),
                Module(id="c", name="C", dependencies=["b"]),
            ])
        assert exc.value.path[0] == exc.value.path[-1]

    def test_self_dependency(self):
        with pytest.raises(CycleDetected):
            ModuleCatalog([Module(id="a", name="A", dependencies=["a"])])

    def test_dependencies_coerced_to_tuple(self):
        module = Module(id="a", name="A", dependencies=["x", "y"])
        assert module.dependencies == ("x", "y")

    def test_module_to_dict(self, catalog):
        assert catalog.get_module("tiss").to_dict() == {
            "id": "tiss",
            "name": "Integração TISS",
            "description": "Integração com padrão TISS para operadoras",
            "required": False,
            "dependencies": ["financial", "clinical"],
        }


class TestLoadCatalog:
    """Test loading catalogs from JSON files."""

    def test_load(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"modules": [
            {"id": "core", "name": "Core", "required": True},
            {"id": "billing", "name": "Billing", "description": "Invoices"},
            {"id": "reports", "name": "Reports", "dependencies": ["billing"]},
        ]}))

        catalog = load_catalog(path)
        assert catalog.module_ids() == ["core", "billing", "reports"]
        assert catalog.get_module("billing").description == "Invoices"
        assert catalog.dependents_of("billing") == ("reports",)

    def test_load_invalid_document(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"modules": [{"id": "", "name": "Nameless"}]}))
        with pytest.raises(CatalogError, match="Invalid catalog file"):
            load_catalog(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read catalog file") as exc_info:
            load_catalog(tmp_path / "missing.json")
        assert exc_info.value.details == {"path": str(tmp_path / "missing.json")}

    def test_load_with_cycle(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"modules": [
            {"id": "a", "name": "A", "dependencies": ["b"]},
            {"id": "b", "name": "B", "dependencies": ["a"]},
        ]}))
        with pytest.raises(CycleDetected):
            load_catalog(path)
