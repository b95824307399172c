"""
Tests for the Module Dependency Graph
=====================================
"""

import pytest

from clinic_modules.errors import CycleDetected
from clinic_modules.modules.graph import ModuleDependencyGraph


class TestClosures:
    """Test transitive closures over the clinic catalog."""

    def test_transitive_dependencies(self, catalog):
        assert catalog.graph.transitive_dependencies("procedures") == {"financial", "stock"}
        assert catalog.graph.transitive_dependencies("bi") == {"financial", "clinical", "appointments"}
        assert catalog.graph.transitive_dependencies("patients") == set()

    def test_transitive_dependents(self, catalog):
        assert catalog.graph.transitive_dependents("financial") == {"tiss", "stock", "procedures", "bi"}
        assert catalog.graph.transitive_dependents("stock") == {"procedures"}
        assert catalog.graph.transitive_dependents("clinical") == {"tiss", "bi", "telemed", "mobile"}

    def test_diamond_visits_once(self):
        graph = ModuleDependencyGraph({
            "base": [],
            "left": ["base"],
            "right": ["base"],
            "top": ["left", "right"],
        })
        assert graph.transitive_dependencies("top") == {"left", "right", "base"}
        assert graph.transitive_dependents("base") == {"left", "right", "top"}

    def test_from_catalog(self, catalog):
        graph = ModuleDependencyGraph.from_catalog(catalog)
        assert graph.nodes == catalog.module_ids()
        assert graph.dependencies_of("tiss") == ["financial", "clinical"]


class TestCycleDetection:
    """Malformed mappings are caught at query time."""

    def test_cycle_in_dependencies(self):
        graph = ModuleDependencyGraph({"a": ["b"], "b": ["c"], "c": ["a"]})
        with pytest.raises(CycleDetected) as exc:
            graph.transitive_dependencies("a")
        assert exc.value.path == ["a", "b", "c", "a"]

    def test_cycle_in_dependents(self):
        graph = ModuleDependencyGraph({"a": ["b"], "b": ["a"]})
        with pytest.raises(CycleDetected):
            graph.transitive_dependents("a")

    def test_check_acyclic(self):
        ModuleDependencyGraph({"a": [], "b": ["a"]}).check_acyclic()
        with pytest.raises(CycleDetected):
            ModuleDependencyGraph({"a": [], "b": ["c"], "c": ["b"]}).check_acyclic()

    def test_cycle_unreachable_from_query(self):
        graph = ModuleDependencyGraph({"a": [], "b": ["c"], "c": ["b"]})
        assert graph.transitive_dependencies("a") == set()


class TestInstallOrder:
    """Test dependency-first ordering."""

    def test_dependencies_first(self, catalog):
        order = catalog.graph.install_order(["procedures", "stock", "financial"])
        assert order == ["financial", "stock", "procedures"]

    def test_ignores_dependencies_outside_selection(self, catalog):
        assert catalog.graph.install_order(["procedures", "bi"]) == ["procedures", "bi"]

    def test_unknown_ids_last(self, catalog):
        assert catalog.graph.install_order(["legacy", "stock"]) == ["stock", "legacy"]

    def test_cycle(self):
        graph = ModuleDependencyGraph({"a": ["b"], "b": ["a"]})
        with pytest.raises(CycleDetected):
            graph.install_order(["a", "b"])
