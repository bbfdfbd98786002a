"""Dependency graph over execution units."""

from __future__ import annotations

from dataclasses import dataclass, field

from core.errors import PlanningError


@dataclass
class DependencyGraph:
    """Directed graph where ``edges`` holds ``(dependency, dependent)`` pairs.

    ``nodes`` keeps insertion order, which is the tie-break for every
    ordering this class produces.
    """

    nodes: list[str] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_dependencies(cls, dependencies: dict[str, list[str]]) -> DependencyGraph:
        """Build from ``{unit: [units it depends on]}``; unknown ids raise ``PlanningError``."""
        graph = cls(nodes=list(dependencies))
        known = set(dependencies)
        for node, deps in dependencies.items():
            missing = [dep for dep in deps if dep not in known]
            if missing:
                raise PlanningError(f"{node} depends on unknown unit(s): {', '.join(missing)}")
            for dep in deps:
                if dep == node:
                    raise PlanningError(f"{node} depends on itself")
                graph.edges.append((dep, node))
        return graph

    def dependencies_of(self, node: str) -> list[str]:
        return [src for src, dst in self.edges if dst == node]

    def dependents_of(self, node: str) -> list[str]:
        return [dst for src, dst in self.edges if src == node]

    def topological_order(self) -> list[str]:
        """Depth-first order that visits dependencies before the unit itself.

        Cycles are tolerated here (a revisited unit is skipped); they are
        reported by ``parallel_groups`` when no unit can be placed.
        """
        visited: set[str] = set()
        order: list[str] = []

        def visit(node: str) -> None:
            if node in visited:
                return
            visited.add(node)
            for dep in self.dependencies_of(node):
                visit(dep)
            order.append(node)

        for node in self.nodes:
            visit(node)
        return order

    def parallel_groups(self, max_parallel: int) -> list[list[str]]:
        """Greedy partition: each group takes every unit whose dependencies are
        already placed, up to ``max_parallel`` units."""
        if max_parallel < 1:
            raise PlanningError("max_parallel must be at least 1")
        order = self.topological_order()
        deps = {node: set(self.dependencies_of(node)) for node in order}
        placed: set[str] = set()
        groups: list[list[str]] = []
        while len(placed) < len(order):
            ready = [node for node in order if node not in placed and deps[node] <= placed]
            if not ready:
                stuck = [node for node in order if node not in placed]
                raise PlanningError(f"Dependency cycle among: {', '.join(stuck)}")
            group = ready[:max_parallel]
            placed.update(group)
            groups.append(group)
        return groups

    def longest_path(self, cost: int = 1) -> list[str]:
        """Longest chain through the DAG with uniform unit ``cost``."""
        best: dict[str, tuple[int, list[str]]] = {}
        for node in self.topological_order():
            prior = [best[dep] for dep in self.dependencies_of(node) if dep in best]
            length, chain = max(prior, key=lambda item: item[0], default=(0, []))
            best[node] = (length + cost, [*chain, node])
        if not best:
            return []
        return max(best.values(), key=lambda item: item[0])[1]
