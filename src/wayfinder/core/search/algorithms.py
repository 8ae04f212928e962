"""
Search strategies over a ``SearchGraph``.

Every strategy produces a ``SearchTrace``: the order in which nodes were
finalized (with the parent each was reached from), the start-to-end path
and the path cost accumulated while searching. All per-run state lives in
``ScratchTable`` instances owned by the run, so any number of searches can
share one graph.

Guarantees:
- Dijkstra, A* and bidirectional Dijkstra return a minimum-cost path.
- BFS returns a minimum-hop path.
- Greedy best-first and DFS return some path, with no optimality promise.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, NamedTuple, Optional, Set, Tuple, Union

from wayfinder.core.errors import ValidationError
from wayfinder.core.search.graph import Edge, NodeId, SearchGraph
from wayfinder.core.search.heap import MinHeap

logger = logging.getLogger(__name__)


class Algorithm(str, Enum):
    """Supported search strategies."""

    DIJKSTRA = "dijkstra"
    ASTAR = "astar"
    GREEDY = "greedy"
    BFS = "bfs"
    DFS = "dfs"
    BIDIRECTIONAL = "bidirectional"

    @classmethod
    def parse(cls, value: Union[str, "Algorithm"]) -> "Algorithm":
        """
        Resolve an algorithm name.

        Args:
            value: Algorithm or its name (case-insensitive)

        Returns:
            Algorithm member

        Raises:
            ValidationError: If the name is unknown
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown algorithm '{value}'",
                field="algorithm",
                suggestions=[f"Use one of: {', '.join(a.value for a in cls)}"],
            )

    @property
    def is_cost_optimal(self) -> bool:
        """Whether the strategy guarantees a minimum-cost path."""
        return self in (Algorithm.DIJKSTRA, Algorithm.ASTAR, Algorithm.BIDIRECTIONAL)


class Visit(NamedTuple):
    """
    One finalized node in a visitation trace.

    ``reverse`` marks nodes settled by the backward half of a bidirectional
    search; for those the graph edge runs from ``node_id`` to ``parent_id``.
    """

    node_id: NodeId
    parent_id: Optional[NodeId] = None
    reverse: bool = False


@dataclass
class SearchTrace:
    """
    Raw output of a single search run.

    Attributes:
        visit_order: Finalized nodes in order
        path: Node ids from start to end, empty when no path was found
        total_cost: Cost accumulated along ``path`` while searching
        meeting_node: Node where the two frontiers joined (bidirectional only)
    """

    visit_order: List[Visit] = field(default_factory=list)
    path: List[NodeId] = field(default_factory=list)
    total_cost: Optional[float] = None
    meeting_node: Optional[NodeId] = None

    @property
    def found(self) -> bool:
        """Whether a start-to-end path was found."""
        return len(self.path) >= 2


@dataclass
class ScratchTable:
    """
    Search state for one run in one direction.

    Attributes:
        distances: Best known cost from the root to each discovered node
        parents: Predecessor of each discovered node (the root has none)
        finalized: Nodes whose distance is settled
    """

    distances: Dict[NodeId, float] = field(default_factory=dict)
    parents: Dict[NodeId, NodeId] = field(default_factory=dict)
    finalized: Set[NodeId] = field(default_factory=set)

    @classmethod
    def rooted_at(cls, node_id: NodeId) -> "ScratchTable":
        """Create a table whose root sits at distance zero."""
        return cls(distances={node_id: 0.0})

    def distance(self, node_id: NodeId) -> float:
        """Best known distance, ``inf`` for undiscovered nodes."""
        return self.distances.get(node_id, math.inf)

    def record(self, node_id: NodeId, distance: float, parent_id: Optional[NodeId]) -> None:
        """Store a (better) distance and the node it was reached from."""
        self.distances[node_id] = distance
        if parent_id is not None:
            self.parents[node_id] = parent_id

    def finalize(self, node_id: NodeId, reverse: bool = False) -> Visit:
        """Mark a node as settled and return its trace entry."""
        self.finalized.add(node_id)
        return Visit(node_id, self.parents.get(node_id), reverse)

    def path_to(self, node_id: NodeId) -> List[NodeId]:
        """Walk parent pointers from ``node_id`` back to the root."""
        path = [node_id]
        while path[-1] in self.parents:
            path.append(self.parents[path[-1]])
        path.reverse()
        return path


def _trace_to(table: ScratchTable, visits: List[Visit], end: NodeId) -> SearchTrace:
    if end not in table.finalized:
        return SearchTrace(visit_order=visits)

    path = table.path_to(end)
    # A single node is not a path
    if len(path) < 2:
        return SearchTrace(visit_order=visits)

    return SearchTrace(visit_order=visits, path=path, total_cost=table.distances[end])


def _best_first(
    graph: SearchGraph,
    start: NodeId,
    end: NodeId,
    priority: Callable[[NodeId, float], float],
) -> SearchTrace:
    """Lazy-deletion best-first search keyed by ``priority(node, g)``."""
    table = ScratchTable.rooted_at(start)
    visits: List[Visit] = []

    # Entries are (node, g, priority)
    heap: MinHeap[Tuple[NodeId, float, float]] = MinHeap(score=lambda entry: entry[2])
    heap.push((start, 0.0, priority(start, 0.0)))

    while heap:
        node_id, g, _ = heap.pop()

        # Stale entry: already settled, or superseded by a cheaper push
        if node_id in table.finalized or g > table.distance(node_id):
            continue

        visits.append(table.finalize(node_id))
        if node_id == end:
            break

        for edge in graph.neighbors(node_id):
            if math.isinf(edge.weight) or edge.target in table.finalized:
                continue

            candidate = g + edge.weight
            if candidate < table.distance(edge.target):
                table.record(edge.target, candidate, node_id)
                heap.push((edge.target, candidate, priority(edge.target, candidate)))

    return _trace_to(table, visits, end)


def dijkstra(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """Dijkstra's algorithm keyed by accumulated distance."""
    return _best_first(graph, start, end, lambda node_id, g: g)


def astar(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """A* keyed by g + h with the graph's admissible heuristic."""
    return _best_first(graph, start, end, lambda node_id, g: g + graph.heuristic(node_id, end))


def greedy_best_first(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """
    Greedy best-first search keyed by the heuristic alone.

    A node keeps the parent it was first discovered from. Fast, but the
    path is not guaranteed to be the cheapest.
    """
    table = ScratchTable.rooted_at(start)
    visits: List[Visit] = []

    heap: MinHeap[Tuple[NodeId, float]] = MinHeap(score=lambda entry: entry[1])
    heap.push((start, graph.heuristic(start, end)))

    while heap:
        node_id, _ = heap.pop()
        if node_id in table.finalized:
            continue

        visits.append(table.finalize(node_id))
        if node_id == end:
            break

        for edge in graph.neighbors(node_id):
            if math.isinf(edge.weight) or edge.target in table.distances:
                continue

            table.record(edge.target, table.distances[node_id] + edge.weight, node_id)
            heap.push((edge.target, graph.heuristic(edge.target, end)))

    return _trace_to(table, visits, end)


def breadth_first(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """Level-order search; the path has the fewest edges, not the lowest cost."""
    table = ScratchTable.rooted_at(start)
    visits: List[Visit] = []
    queue: Deque[NodeId] = deque([start])

    while queue:
        node_id = queue.popleft()
        visits.append(table.finalize(node_id))
        if node_id == end:
            break

        for edge in graph.neighbors(node_id):
            if math.isinf(edge.weight) or edge.target in table.distances:
                continue

            table.record(edge.target, table.distances[node_id] + edge.weight, node_id)
            queue.append(edge.target)

    return _trace_to(table, visits, end)


def depth_first(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """
    Stack-based depth-first search.

    Neighbors are pushed in reverse so the first declared neighbor is
    explored first, as a recursive DFS would.
    """
    table = ScratchTable()
    visits: List[Visit] = []

    # Entries are (node, parent, g); the parent is fixed when the node is popped
    stack: List[Tuple[NodeId, Optional[NodeId], float]] = [(start, None, 0.0)]

    while stack:
        node_id, parent_id, g = stack.pop()
        if node_id in table.finalized:
            continue

        table.record(node_id, g, parent_id)
        visits.append(table.finalize(node_id))
        if node_id == end:
            break

        for edge in reversed(graph.neighbors(node_id)):
            if math.isinf(edge.weight) or edge.target in table.finalized:
                continue
            stack.append((edge.target, node_id, g + edge.weight))

    return _trace_to(table, visits, end)


@dataclass
class _Meeting:
    node_id: Optional[NodeId] = None
    distance: float = math.inf

    def consider(self, node_id: NodeId, forward: ScratchTable, backward: ScratchTable) -> None:
        total = forward.distance(node_id) + backward.distance(node_id)
        if total < self.distance:
            self.distance = total
            self.node_id = node_id


def _settle_next(
    heap: MinHeap[Tuple[NodeId, float]],
    table: ScratchTable,
    expand: Callable[[NodeId], List[Edge]],
    visits: List[Visit],
    reverse: bool,
    on_improve: Callable[[NodeId], None],
) -> None:
    """Pop until one node is settled in this direction, then relax its edges."""
    while heap:
        node_id, dist = heap.pop()
        if node_id in table.finalized or dist > table.distance(node_id):
            continue

        visits.append(table.finalize(node_id, reverse))
        on_improve(node_id)

        for edge in expand(node_id):
            if math.isinf(edge.weight) or edge.target in table.finalized:
                continue

            candidate = dist + edge.weight
            if candidate < table.distance(edge.target):
                table.record(edge.target, candidate, node_id)
                heap.push((edge.target, candidate))
                on_improve(edge.target)
        return


def bidirectional_dijkstra(graph: SearchGraph, start: NodeId, end: NodeId) -> SearchTrace:
    """
    Two Dijkstra searches, forward from ``start`` and backward from ``end``.

    The best meeting point is updated whenever a node known to both sides
    gets a better distance. The search stops once the two queue minimums
    sum to at least the best meeting distance; no undiscovered path can be
    shorter after that.
    """
    forward = ScratchTable.rooted_at(start)
    backward = ScratchTable.rooted_at(end)
    meeting = _Meeting()
    visits: List[Visit] = []

    forward_heap: MinHeap[Tuple[NodeId, float]] = MinHeap(score=lambda entry: entry[1])
    backward_heap: MinHeap[Tuple[NodeId, float]] = MinHeap(score=lambda entry: entry[1])
    forward_heap.push((start, 0.0))
    backward_heap.push((end, 0.0))

    def improve(node_id: NodeId) -> None:
        meeting.consider(node_id, forward, backward)

    directions = (
        (forward_heap, forward, graph.neighbors, False),
        (backward_heap, backward, graph.predecessors, True),
    )

    done = False
    while forward_heap and backward_heap and not done:
        for heap, table, expand, reverse in directions:
            _settle_next(heap, table, expand, visits, reverse, improve)

            if forward_heap.peek_score() + backward_heap.peek_score() >= meeting.distance:
                done = True
                break

    if meeting.node_id is None:
        return SearchTrace(visit_order=visits)

    head = forward.path_to(meeting.node_id)
    tail = backward.path_to(meeting.node_id)
    tail.reverse()
    path = head + tail[1:]

    if len(path) < 2:
        return SearchTrace(visit_order=visits, meeting_node=meeting.node_id)

    return SearchTrace(
        visit_order=visits,
        path=path,
        total_cost=meeting.distance,
        meeting_node=meeting.node_id,
    )


_STRATEGIES: Dict[Algorithm, Callable[[SearchGraph, NodeId, NodeId], SearchTrace]] = {
    Algorithm.DIJKSTRA: dijkstra,
    Algorithm.ASTAR: astar,
    Algorithm.GREEDY: greedy_best_first,
    Algorithm.BFS: breadth_first,
    Algorithm.DFS: depth_first,
    Algorithm.BIDIRECTIONAL: bidirectional_dijkstra,
}


def run(
    algorithm: Union[str, Algorithm],
    graph: SearchGraph,
    start: NodeId,
    end: NodeId,
) -> SearchTrace:
    """
    Run one search.

    Args:
        algorithm: Strategy or its name
        graph: Graph to search
        start: Start node ID
        end: End node ID

    Returns:
        SearchTrace; empty when either endpoint is missing from the graph,
        and with an empty path when ``end`` is unreachable

    Raises:
        ValidationError: If the algorithm name is unknown
    """
    algorithm = Algorithm.parse(algorithm)

    if start not in graph or end not in graph:
        logger.debug(f"{algorithm.value}: endpoint missing from graph ({start!r} -> {end!r})")
        return SearchTrace()

    trace = _STRATEGIES[algorithm](graph, start, end)

    logger.debug(
        f"{algorithm.value}: visited {len(trace.visit_order)} nodes, "
        f"path {len(trace.path)} nodes",
        extra={"algorithm": algorithm.value, "visited": len(trace.visit_order)},
    )
    return trace
