# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Intent graph built from output/input name matching between components.

Nodes are component names. An edge ``(P, n) -> (C, n)`` exists wherever
component P declares output ``n`` and component C declares input ``n``.
"""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from iopc.model.entities import SystemSpec

# ###############
# Public Interface
# ###############


class CyclicDependencyError(Exception):
    """Raised when a topological order is requested for a cyclic graph.

    Attributes:
        cycle_path: Component names forming the cycle, starting at the
            lexicographically smallest member.
    """

    def __init__(self, cycle_path: list[str]) -> None:
        super().__init__(f"Cyclic dependency: {' -> '.join([*cycle_path, cycle_path[0]])}")
        self.cycle_path = cycle_path


@dataclass(frozen=True)
class Edge:
    """A directed data dependency from a producer output to a consumer input."""

    producer: str
    output: str
    consumer: str
    input: str

    def to_dict(self) -> dict[str, str]:
        return {"producer": self.producer, "output": self.output, "consumer": self.consumer, "input": self.input}


class IntentGraph:
    """An immutable directed graph over component names.

    Attributes:
        nodes: Component names in declaration order (first definition wins).
        edges: All edges, in producer then output then consumer declaration order.
    """

    def __init__(self, nodes: list[str], edges: list[Edge]) -> None:
        self.nodes: tuple[str, ...] = tuple(nodes)
        self.edges: tuple[Edge, ...] = tuple(edges)
        successors: dict[str, list[str]] = {n: [] for n in nodes}
        for edge in edges:
            if edge.consumer not in successors[edge.producer]:
                successors[edge.producer].append(edge.consumer)
        self._successors = MappingProxyType({n: tuple(sorted(s)) for n, s in successors.items()})

    def successors(self, node: str) -> tuple[str, ...]:
        """Return the distinct successors of *node* in name order."""
        return self._successors.get(node, ())

    def edges_between(self, producer: str, consumer: str) -> list[Edge]:
        return [e for e in self.edges if e.producer == producer and e.consumer == consumer]

    def find_cycles(self) -> list[list[str]]:
        """Return one cycle path per cyclic strongly connected component.

        Uses Tarjan's algorithm. A component counts as cyclic if it has more
        than one node or a self-edge. Each path starts at the smallest name in
        the component and follows a shortest route back to it; the start node
        is not repeated at the end. Cycles are returned sorted by start node.
        """
        cycles: list[list[str]] = []
        for scc in _tarjan(self.nodes, self._successors):
            members = set(scc)
            if len(members) == 1:
                (only,) = members
                if only not in self._successors[only]:
                    continue
            cycles.append(self._cycle_path(members))
        return sorted(cycles)

    def topological_order(self) -> list[str]:
        """Return the nodes in dependency order, ties broken by name.

        Raises:
            CyclicDependencyError: If the graph contains a cycle.
        """
        cycles = self.find_cycles()
        if cycles:
            raise CyclicDependencyError(cycles[0])
        in_degree = {n: 0 for n in self.nodes}
        for node in self.nodes:
            for succ in self._successors[node]:
                in_degree[succ] += 1
        ready = [n for n, d in in_degree.items() if d == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for succ in self._successors[node]:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    heapq.heappush(ready, succ)
        return order

    def to_dict(self) -> dict[str, Any]:
        return {"nodes": list(self.nodes), "edges": [e.to_dict() for e in self.edges]}

    def _cycle_path(self, members: set[str]) -> list[str]:
        """Breadth-first search for the shortest route from the smallest member back to itself."""
        start = min(members)
        parents: dict[str, str] = {}
        queue: deque[str] = deque([start])
        visited: set[str] = set()
        while queue:
            node = queue.popleft()
            for succ in self._successors[node]:
                if succ not in members:
                    continue
                if succ == start:
                    path = [node]
                    while path[-1] != start:
                        path.append(parents[path[-1]])
                    return list(reversed(path))
                if succ not in visited:
                    visited.add(succ)
                    parents[succ] = node
                    queue.append(succ)
        return [start]


def build_intent_graph(spec: SystemSpec) -> IntentGraph:
    """Build the intent graph for *spec*.

    When a component name is declared more than once only the first
    definition contributes ports; the duplicates are reported by validation.
    """
    nodes: list[str] = []
    seen: set[str] = set()
    unique = []
    for comp in spec.components:
        if comp.name in seen:
            continue
        seen.add(comp.name)
        nodes.append(comp.name)
        unique.append(comp)

    consumers: dict[str, list[tuple[str, str]]] = {}
    for comp in unique:
        for port in dict.fromkeys(comp.inputs):
            consumers.setdefault(port, []).append((comp.name, port))

    edges: list[Edge] = []
    for producer in unique:
        for output in dict.fromkeys(producer.outputs):
            for consumer, port in consumers.get(output, []):
                edges.append(Edge(producer=producer.name, output=output, consumer=consumer, input=port))
    return IntentGraph(nodes, edges)


# ################
# Implementation
# ################


def _tarjan(nodes: tuple[str, ...], successors: MappingProxyType[str, tuple[str, ...]]) -> list[list[str]]:
    """Iterative Tarjan strongly connected components."""
    index_of: dict[str, int] = {}
    low: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    result: list[list[str]] = []
    counter = 0

    for root in sorted(nodes):
        if root in index_of:
            continue
        work: list[tuple[str, int]] = [(root, 0)]
        while work:
            node, child_index = work.pop()
            if child_index == 0:
                index_of[node] = low[node] = counter
                counter += 1
                stack.append(node)
                on_stack.add(node)
            succs = successors[node]
            recurse = False
            for i in range(child_index, len(succs)):
                succ = succs[i]
                if succ not in index_of:
                    work.append((node, i + 1))
                    work.append((succ, 0))
                    recurse = True
                    break
                if succ in on_stack:
                    low[node] = min(low[node], index_of[succ])
            if recurse:
                continue
            if low[node] == index_of[node]:
                scc: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    scc.append(member)
                    if member == node:
                        break
                result.append(scc)
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
    return result
