"""
Module Dependency Graph
=======================

Directed "requires" graph over module ids. Answers closure questions for
the activation engine in both directions:

- transitive dependencies: everything a module needs, directly or not
- transitive dependents: everything that would break if a module went away

Traversals track the current path and raise CycleDetected when they
revisit a node on it. Catalogs reject cycles when they are built, but a
graph can also be created from a raw mapping, so every query checks.
"""

from typing import Dict, Iterable, List, Mapping, Sequence, Set

from clinic_modules.errors import CycleDetected


class ModuleDependencyGraph:
    """Read-only dependency graph, safe to share between concurrent callers."""

    def __init__(self, dependencies: Mapping[str, Sequence[str]]):
        # Declaration order of the mapping is kept for deterministic output
        self._order: List[str] = list(dependencies)
        self._position: Dict[str, int] = {node: i for i, node in enumerate(self._order)}
        self._edges: Dict[str, List[str]] = {
            node: list(deps) for node, deps in dependencies.items()
        }
        self._reverse: Dict[str, List[str]] = {node: [] for node in self._order}
        for node in self._order:
            for dep in self._edges[node]:
                self._reverse.setdefault(dep, []).append(node)

    @classmethod
    def from_catalog(cls, catalog) -> "ModuleDependencyGraph":
        """Build a graph from a ModuleCatalog's modules."""
        return cls({m.id: m.dependencies for m in catalog.list_modules()})

    @property
    def nodes(self) -> List[str]:
        return list(self._order)

    def dependencies_of(self, module_id: str) -> List[str]:
        """Direct dependencies, in declaration order."""
        return list(self._edges.get(module_id, ()))

    def dependents_of(self, module_id: str) -> List[str]:
        """Direct dependents, in declaration order."""
        return list(self._reverse.get(module_id, ()))

    def transitive_dependencies(self, module_id: str) -> Set[str]:
        """Every module `module_id` requires, directly or indirectly."""
        return self._closure(module_id, self._edges)

    def transitive_dependents(self, module_id: str) -> Set[str]:
        """Every module that requires `module_id`, directly or indirectly."""
        return self._closure(module_id, self._reverse)

    def check_acyclic(self) -> None:
        """Raise CycleDetected if any node reaches itself."""
        for node in self._order:
            self.transitive_dependencies(node)

    def install_order(self, module_ids: Iterable[str]) -> List[str]:
        """
        Order module ids so every module comes after its dependencies.

        Dependencies outside `module_ids` are ignored. Ties follow
        declaration order; ids unknown to the graph keep their input order
        after the known ones.
        """
        wanted = list(dict.fromkeys(module_ids))
        selected = set(wanted)
        known = sorted((m for m in wanted if m in self._position), key=self._position.__getitem__)
        unknown = [m for m in wanted if m not in self._position]

        ordered: List[str] = []
        placed: Set[str] = set()
        path: List[str] = []

        def place(node: str) -> None:
            if node in path:
                raise CycleDetected(path[path.index(node):] + [node])
            if node in placed:
                return
            path.append(node)
            for dep in self._edges.get(node, ()):
                if dep in selected:
                    place(dep)
            path.pop()
            placed.add(node)
            ordered.append(node)

        for node in known:
            place(node)
        return ordered + unknown

    def sort(self, module_ids: Iterable[str]) -> List[str]:
        """Sort ids by declaration order (unknown ids last, alphabetically)."""
        end = len(self._order)
        return sorted(set(module_ids), key=lambda m: (self._position.get(m, end), m))

    def _closure(self, start: str, edges: Mapping[str, Sequence[str]]) -> Set[str]:
        visited: Set[str] = set()
        path: List[str] = []
        on_path: Set[str] = set()

        def visit(node: str) -> None:
            path.append(node)
            on_path.add(node)
            for nxt in edges.get(node, ()):
                if nxt in on_path:
                    raise CycleDetected(path[path.index(nxt):] + [nxt])
                if nxt in visited:
                    continue
                visited.add(nxt)
                visit(nxt)
            path.pop()
            on_path.discard(node)

        visit(start)
        return visited
