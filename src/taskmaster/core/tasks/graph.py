"""
Dependency graph over tasks and subtasks.

Provides a pure query object built from a task list snapshot. Immutable after
construction. Used by the dependency validator for cycle detection and by
`task-master list` for dependents.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from .ids import NodeKey, build_node_index, iter_nodes, node_sort_key, resolve_dependency

Edge = tuple[NodeKey, NodeKey]


class DependencyGraph:
    """Immutable dependency graph built from a snapshot of tasks.

    Nodes are task and subtask keys (``"3"``, ``"3.1"``). The graph models
    two kinds of edges:

    * **forward edge** (``depends_on``): A depends on B  →  A cannot start
      until B is done.
    * **reverse edge** (``dependents``): finishing B unblocks A.

    Dependencies on nodes that do not exist are left out of the graph.

    Example::

        graph = DependencyGraph(data["tasks"], additional_edges=[("2", 1)])
        graph.has_cycle_from("2")
    """

    __slots__ = ("_forward", "_reverse", "_all_ids")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        tasks: Sequence[Any],
        additional_edges: Iterable[tuple[Any, Any]] | None = None,
    ) -> None:
        index = build_node_index(tasks)
        self._all_ids: frozenset[NodeKey] = frozenset(index)

        # forward[A] = {B, C} means A depends on B and C
        self._forward: dict[NodeKey, set[NodeKey]] = {key: set() for key in index}
        # reverse[B] = {A} means finishing B unblocks A
        self._reverse: dict[NodeKey, set[NodeKey]] = {}

        for key, item, parent_id in iter_nodes(tasks):
            dependencies = item.get("dependencies")
            if not isinstance(dependencies, list):
                continue
            for dependency in dependencies:
                target = resolve_dependency(dependency, parent_id, index)
                if target in self._all_ids:
                    self._add_edge(key, target)

        # Edges not yet committed to the data, e.g. a dependency about to be added
        for source, dependency in additional_edges or ():
            source_key = resolve_dependency(source)
            parent_id = source_key.split(".")[0] if "." in source_key else None
            self._forward.setdefault(source_key, set())
            self._add_edge(source_key, resolve_dependency(dependency, parent_id, index))

    def _add_edge(self, source: NodeKey, target: NodeKey) -> None:
        self._forward[source].add(target)
        self._forward.setdefault(target, set())
        self._reverse.setdefault(target, set()).add(source)

    def _children(self, node: NodeKey) -> list[NodeKey]:
        return sorted(self._forward.get(node, ()), key=node_sort_key)

    # ------------------------------------------------------------------
    # Core queries
    # ------------------------------------------------------------------

    def __contains__(self, key: object) -> bool:
        return key in self._forward

    @property
    def nodes(self) -> list[NodeKey]:
        return sorted(self._forward, key=node_sort_key)

    def dependencies_of(self, key: NodeKey) -> list[NodeKey]:
        """Return the nodes *key* directly depends on."""
        return self._children(key)

    def dependents_of(self, key: NodeKey) -> list[NodeKey]:
        """Return the nodes that directly depend on *key* (reverse edge lookup)."""
        return sorted(self._reverse.get(key, ()), key=node_sort_key)

    def _walk(self, start: NodeKey, done: set[NodeKey], stop_at_first: bool) -> list[Edge]:
        """Iterative DFS from *start*, returning the back-edges it meets.

        Keeps an explicit stack of (node, remaining children) plus the set of
        nodes currently on it, so depth is bounded by memory rather than the
        interpreter's recursion limit. Nodes finished here are added to
        *done* and not walked again.
        """
        back_edges: list[Edge] = []
        if start in done or start not in self._forward:
            return back_edges

        on_stack: set[NodeKey] = {start}
        stack: list[tuple[NodeKey, list[NodeKey]]] = [(start, self._children(start))]

        while stack:
            node, children = stack[-1]
            if not children:
                stack.pop()
                on_stack.discard(node)
                done.add(node)
                continue

            child = children.pop(0)
            if child in on_stack:
                back_edges.append((node, child))
                if stop_at_first:
                    return back_edges
            elif child not in done:
                on_stack.add(child)
                stack.append((child, self._children(child)))

        return back_edges

    def has_cycle_from(self, key: NodeKey) -> bool:
        """True if a cycle is reachable by following dependencies from *key*."""
        return bool(self._walk(key, set(), stop_at_first=True))

    def back_edges_from(self, key: NodeKey) -> list[Edge]:
        """All back-edges met by a DFS from *key*, as (dependent, dependency)."""
        return self._walk(key, set(), stop_at_first=False)

    def back_edges(self) -> list[Edge]:
        """Back-edges of a DFS over the whole graph.

        Removing every returned edge leaves the graph acyclic.
        """
        done: set[NodeKey] = set()
        edges: list[Edge] = []
        for key in self.nodes:
            edges.extend(self._walk(key, done, stop_at_first=False))
        return edges

    def has_cycle(self) -> bool:
        done: set[NodeKey] = set()
        return any(self._walk(key, done, stop_at_first=True) for key in self.nodes)

    # ------------------------------------------------------------------
    # Aggregate stats
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict[str, int]:
        """Summary statistics: node_count, task_count, subtask_count, edge_count."""
        subtask_count = sum(1 for key in self._all_ids if "." in key)
        return {
            "node_count": len(self._all_ids),
            "task_count": len(self._all_ids) - subtask_count,
            "subtask_count": subtask_count,
            "edge_count": sum(len(deps) for deps in self._forward.values()),
        }
