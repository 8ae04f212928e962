"""
Timed search runs with display metrics.

Wraps the algorithm runner: measures wall-clock time, settles the final
path cost and sums the distance explored by the visitation trace.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from shapely.geometry import LineString

from wayfinder.core.config import settings
from wayfinder.core.errors import ValidationError
from wayfinder.core.search.algorithms import Algorithm, SearchTrace, Visit, run
from wayfinder.core.search.graph import NodeId, SearchGraph
from wayfinder.utils.logging import PerformanceTimer

logger = logging.getLogger(__name__)


@dataclass
class SearchMetrics:
    """
    Display metrics for one run.

    Attributes:
        time_ms: Wall-clock search time in milliseconds
        cost: Path cost rounded to 2 decimals (0.0 when no path)
        visited_count: Number of finalized nodes
        explored_distance: Summed weight of traversed trace edges, rounded to 2 decimals
    """

    time_ms: float
    cost: float
    visited_count: int
    explored_distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_ms": float(self.time_ms),
            "cost": float(self.cost),
            "visited_count": int(self.visited_count),
            "explored_distance": float(self.explored_distance),
        }


@dataclass
class SearchResult:
    """
    Outcome of a timed search run.

    Attributes:
        algorithm: Strategy that produced the result
        visit_order: Finalized nodes in order
        path: Node ids from start to end, empty when no path was found
        total_cost: Exact path cost, None when no path was found
        metrics: Display metrics
        positions: Node positions along ``path``
        meeting_node: Frontier meeting node (bidirectional only)
    """

    algorithm: Algorithm
    visit_order: List[Visit]
    path: List[NodeId]
    total_cost: Optional[float]
    metrics: SearchMetrics
    positions: List[Tuple[float, float]] = field(default_factory=list)
    meeting_node: Optional[NodeId] = None

    @property
    def found(self) -> bool:
        """Whether a start-to-end path was found."""
        return len(self.path) >= 2

    def get_geometry(self) -> LineString:
        """
        Get path as Shapely LineString.

        Returns:
            LineString geometry (empty when no path was found)
        """
        if not self.found:
            return LineString()
        return LineString(self.positions)

    def iter_visit_batches(self, batch_size: Optional[int] = None) -> Iterator[List[Visit]]:
        """
        Yield the visitation trace in fixed-size batches.

        Args:
            batch_size: Visits per batch (default: settings.visit_batch_size)

        Yields:
            Consecutive slices of ``visit_order``; the last may be shorter

        Raises:
            ValidationError: If batch_size is less than 1
        """
        if batch_size is None:
            batch_size = settings.visit_batch_size
        if batch_size < 1:
            raise ValidationError(
                f"Batch size must be at least 1, got {batch_size}",
                field="batch_size",
            )

        for offset in range(0, len(self.visit_order), batch_size):
            yield self.visit_order[offset : offset + batch_size]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert result to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "algorithm": self.algorithm.value,
            "found": self.found,
            "path": [str(node_id) for node_id in self.path],
            "total_cost": self.total_cost,
            "visit_order": [
                [str(v.node_id), None if v.parent_id is None else str(v.parent_id)]
                for v in self.visit_order
            ],
            "meeting_node": None if self.meeting_node is None else str(self.meeting_node),
            "metrics": self.metrics.to_dict(),
        }


def compute_path_cost(graph: SearchGraph, path: List[NodeId]) -> float:
    """
    Sum edge weights along a path.

    When two consecutive nodes have no edge between them the straight-line
    distance is used instead and a warning is logged; this points at an id
    collision from coordinate rounding.

    Args:
        graph: Graph the path was found in
        path: Node ids from start to end

    Returns:
        Total cost (0.0 for paths with fewer than 2 nodes)
    """
    total = 0.0
    for source, target in zip(path, path[1:]):
        weight = graph.edge_weight(source, target)
        if weight is None:
            weight = graph.distance(source, target)
            logger.warning(
                f"No edge between {source!r} and {target!r}, using straight-line distance",
                extra={"source": str(source), "target": str(target)},
            )
        total += weight
    return total


def compute_explored_distance(graph: SearchGraph, visits: Iterable[Visit]) -> float:
    """
    Sum the weights of the edges a visitation trace traversed.

    Infinite edges and visits without a parent contribute nothing.

    Args:
        graph: Graph the trace was produced on
        visits: Visitation trace

    Returns:
        Explored distance in weight units
    """
    total = 0.0
    for visit in visits:
        if visit.parent_id is None:
            continue

        if visit.reverse:
            weight = graph.edge_weight(visit.node_id, visit.parent_id)
        else:
            weight = graph.edge_weight(visit.parent_id, visit.node_id)

        if weight is not None and not math.isinf(weight):
            total += weight
    return total


def build_result(
    graph: SearchGraph,
    algorithm: Algorithm,
    trace: SearchTrace,
    time_ms: float,
) -> SearchResult:
    """
    Turn a raw trace into a SearchResult.

    Args:
        graph: Graph the trace was produced on
        algorithm: Strategy that produced the trace
        trace: Runner output
        time_ms: Measured search time

    Returns:
        SearchResult with metrics filled in
    """
    total_cost: Optional[float] = None
    if trace.found:
        total_cost = trace.total_cost
        if total_cost is None:
            total_cost = compute_path_cost(graph, trace.path)

    metrics = SearchMetrics(
        time_ms=time_ms,
        cost=round(total_cost, 2) if total_cost is not None else 0.0,
        visited_count=len(trace.visit_order),
        explored_distance=round(compute_explored_distance(graph, trace.visit_order), 2),
    )

    return SearchResult(
        algorithm=algorithm,
        visit_order=trace.visit_order,
        path=trace.path,
        total_cost=total_cost,
        metrics=metrics,
        positions=[graph.nodes[node_id].position for node_id in trace.path],
        meeting_node=trace.meeting_node,
    )


def run_search(
    graph: SearchGraph,
    algorithm: Union[str, Algorithm],
    start: NodeId,
    end: NodeId,
) -> SearchResult:
    """
    Run one search and collect its metrics.

    Args:
        graph: Graph to search
        algorithm: Strategy or its name
        start: Start node ID
        end: End node ID

    Returns:
        SearchResult

    Raises:
        ValidationError: If the algorithm name is unknown
    """
    algorithm = Algorithm.parse(algorithm)

    with PerformanceTimer(f"{algorithm.value} search", log_level=logging.DEBUG) as timer:
        trace = run(algorithm, graph, start, end)

    return build_result(graph, algorithm, trace, timer.duration_ms or 0.0)


def compare_algorithms(
    graph: SearchGraph,
    algorithms: Optional[Iterable[Union[str, Algorithm]]],
    start: NodeId,
    end: NodeId,
) -> Dict[Algorithm, SearchResult]:
    """
    Run several strategies against the same graph.

    Each run owns its scratch state, so the graph is shared read-only.

    Args:
        graph: Graph to search
        algorithms: Strategies to run, None for all of them
        start: Start node ID
        end: End node ID

    Returns:
        Results keyed by algorithm, in the order requested
    """
    if algorithms is None:
        algorithms = list(Algorithm)

    results: Dict[Algorithm, SearchResult] = {}
    for name in algorithms:
        algorithm = Algorithm.parse(name)
        results[algorithm] = run_search(graph, algorithm, start, end)

    logger.info(
        "Compared "
        + ", ".join(
            f"{a.value}={r.metrics.cost} ({r.metrics.visited_count} visited)"
            for a, r in results.items()
        )
    )
    return results
