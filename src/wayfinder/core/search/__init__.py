"""
Graph search engine.

This module provides:
- Road graph construction from polylines and GeoJSON, with one-way,
  relaxed, block and traffic handling
- A lazy-deletion min-heap
- Dijkstra, A*, greedy best-first, BFS, DFS and bidirectional Dijkstra
- Timed runs with cost and exploration metrics
- Terrain grids and a randomized maze generator
"""

from wayfinder.core.search.algorithms import Algorithm, SearchTrace, Visit, run
from wayfinder.core.search.builder import Polyline, build_road_graph, polylines_from_geojson
from wayfinder.core.search.graph import (
    Edge,
    GraphNode,
    ObstacleKind,
    RoadGraph,
    SearchGraph,
    TerrainGraph,
)
from wayfinder.core.search.heap import MinHeap
from wayfinder.core.search.maze import generate_maze
from wayfinder.core.search.metrics import (
    SearchMetrics,
    SearchResult,
    compare_algorithms,
    compute_path_cost,
    run_search,
)
from wayfinder.core.search.terrain import TerrainGrid, TerrainType

__all__ = [
    "Algorithm",
    "SearchTrace",
    "Visit",
    "run",
    "Polyline",
    "build_road_graph",
    "polylines_from_geojson",
    "Edge",
    "GraphNode",
    "ObstacleKind",
    "RoadGraph",
    "SearchGraph",
    "TerrainGraph",
    "MinHeap",
    "generate_maze",
    "SearchMetrics",
    "SearchResult",
    "compare_algorithms",
    "compute_path_cost",
    "run_search",
    "TerrainGrid",
    "TerrainType",
]
