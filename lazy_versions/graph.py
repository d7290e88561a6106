"""Directed multigraph used to model a monorepo.

Nodes and edges live in two flat, append-only lists and refer to each other
by integer index. Each node stores the index of its most recently added edge,
and each edge stores the index of the next (older) edge of the same source
node, forming an intrusive singly-linked list per node. This gives O(1) node
and edge insertion and O(degree) traversal without any object references
between nodes.

Nodes and edges are never removed, so an index handed out by add_node stays
valid for the lifetime of the graph.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from .errors import CycleError

T = TypeVar("T")


class Direction(Enum):
    """Which way an edge points relative to its source node."""

    OUTGOING = "outgoing"
    INCOMING = "incoming"


class EdgeKind(Enum):
    """What an edge means.

    DEPENDENCY edges come from manifest-declared dependencies between
    workspaces. MEMBER edges come from a parent's `workspaces` globs and
    record filesystem containment.
    """

    DEPENDENCY = "dependency"
    MEMBER = "member"


@dataclass
class Node(Generic[T]):
    """A graph node: the payload plus the head of its edge list."""

    data: T
    first_edge: int | None = None


@dataclass(frozen=True)
class _Edge:
    target: int
    direction: Direction
    kind: EdgeKind
    next_edge: int | None


class Graph(Generic[T]):
    """Arena-backed directed multigraph.

    Edge records are private; callers only see node payloads and the target
    indices yielded by edges().
    """

    def __init__(self) -> None:
        self.nodes: list[Node[T]] = []
        self._edges: list[_Edge] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(self, data: T) -> int:
        """Append a node with no edges and return its index."""
        index = len(self.nodes)
        self.nodes.append(Node(data))
        return index

    def get_node(self, index: int) -> Node[T] | None:
        """Return the node at index, or None if no such node exists."""
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def get_nodes(self) -> Iterator[tuple[int, Node[T]]]:
        """Iterate over (index, node) pairs in insertion order."""
        return enumerate(self.nodes)

    def add_edge(
        self,
        source: int,
        target: int,
        direction: Direction,
        kind: EdgeKind = EdgeKind.DEPENDENCY,
    ) -> None:
        """Add one edge record from source to target.

        The record is pushed onto the front of source's edge list, so
        traversal yields the newest edge first.

        Raises:
            IndexError: If source or target is not a node of this graph.
        """
        node = self.get_node(source)
        if node is None:
            raise IndexError(f"Source node {source} does not exist")
        if self.get_node(target) is None:
            raise IndexError(f"Target node {target} does not exist")

        edge_index = len(self._edges)
        self._edges.append(_Edge(target, direction, kind, node.first_edge))
        node.first_edge = edge_index

    def edges(
        self,
        source: int,
        direction: Direction,
        kind: EdgeKind | None = None,
    ) -> Iterator[int]:
        """Yield the targets of source's edges that match direction and kind.

        Args:
            source: Index of the node whose edges to walk.
            direction: Only edges with this direction are yielded.
            kind: Only edges of this kind are yielded. None matches any kind.

        Returns:
            A generator of target indices, most recently added first.
        """
        node = self.get_node(source)
        if node is None:
            raise IndexError(f"Source node {source} does not exist")
        return self._walk(node.first_edge, direction, kind)

    def _walk(
        self, edge_index: int | None, direction: Direction, kind: EdgeKind | None
    ) -> Iterator[int]:
        while edge_index is not None:
            edge = self._edges[edge_index]
            if edge.direction is direction and (kind is None or edge.kind is kind):
                yield edge.target
            edge_index = edge.next_edge


def topo_sort(graph: Graph[T], kind: EdgeKind = EdgeKind.DEPENDENCY) -> list[int]:
    """Topologically sort a graph along its OUTGOING edges of one kind.

    Uses Kahn's algorithm so that every node comes after all of the nodes it
    points to (dependencies before dependents). Ties are broken by node
    index for deterministic output.

    Args:
        graph: The graph to sort.
        kind: Edge kind to follow.

    Returns:
        Node indices in dependency-first order.

    Raises:
        CycleError: If the edges of this kind contain a cycle. The error
            lists the indices of every node that could not be ordered.

    Example:
        If 0 → 1 and 1 → 2 (OUTGOING): topo_sort(graph) → [2, 1, 0]
    """
    # Count distinct dependencies for each node
    in_degree = {index: 0 for index in range(len(graph))}
    # Track reverse edges (who points at each node)
    reverse: dict[int, list[int]] = {index: [] for index in range(len(graph))}

    for index in range(len(graph)):
        for target in set(graph.edges(index, Direction.OUTGOING, kind)):
            in_degree[index] += 1
            reverse[target].append(index)

    # Start with nodes that depend on nothing
    queue = sorted(index for index, count in in_degree.items() if count == 0)
    order: list[int] = []

    while queue:
        index = queue.pop(0)
        order.append(index)
        # Release the nodes that were waiting on this one
        for dependent in sorted(reverse[index]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    # Anything left over sits on, or behind, a cycle
    if len(order) != len(graph):
        stuck = sorted(set(range(len(graph))) - set(order))
        raise CycleError([str(index) for index in stuck])

    return order

