"""
Directed search graphs shared by every search strategy.

A graph stores immutable nodes plus directed weighted edges. Weights are
non-negative reals or ``inf`` for impassable edges; parallel edges between
the same pair are allowed. Road graphs and terrain grids both derive from
``SearchGraph`` and differ only in their node ids and their (admissible)
heuristic.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, List, NamedTuple, Optional, Tuple

import networkx as nx

from wayfinder.core.config import settings
from wayfinder.core.search.geo import great_circle_km

NodeId = Hashable


class ObstacleKind(str, Enum):
    """User-placed modifiers on road nodes."""

    BLOCK = "block"
    TRAFFIC = "traffic"


@dataclass(frozen=True)
class GraphNode:
    """
    Represents a node in a search graph.

    Attributes:
        id: Stable node identifier ("lng,lat" string or (row, col) tuple)
        position: (x, y) coordinates, (lng, lat) for roads, (col, row) for grids
        cost: Terrain cost of entering the node (1.0 on roads)
        obstacle: Obstacle placed on the node, if any
    """

    id: NodeId
    position: Tuple[float, float]
    cost: float = 1.0
    obstacle: Optional[ObstacleKind] = None


class Edge(NamedTuple):
    """A directed edge as seen from ``source``."""

    source: NodeId
    target: NodeId
    weight: float


class SearchGraph:
    """
    Weighted directed graph backed by a networkx ``MultiDiGraph``.

    Subclasses fix the heuristic so that it is admissible for the weights
    they produce.
    """

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self.nodes: Dict[NodeId, GraphNode] = {}

    def add_node(self, node: GraphNode) -> GraphNode:
        """
        Add a node, keeping the existing record if the id is already known.

        Args:
            node: Node to add

        Returns:
            The node stored under ``node.id``
        """
        existing = self.nodes.get(node.id)
        if existing is not None:
            return existing

        self.nodes[node.id] = node
        self.graph.add_node(node.id)
        return node

    def add_edge(self, source: NodeId, target: NodeId, weight: float) -> None:
        """
        Add a directed edge.

        Args:
            source: Source node ID
            target: Target node ID
            weight: Non-negative weight or ``inf``

        Raises:
            ValueError: If either node doesn't exist or the weight is invalid
        """
        if source not in self.nodes or target not in self.nodes:
            raise ValueError("Both nodes must exist in graph")
        if math.isnan(weight) or weight < 0:
            raise ValueError(f"Edge weight must be non-negative, got {weight}")

        self.graph.add_edge(source, target, weight=float(weight))

    def __contains__(self, node_id: Any) -> bool:
        try:
            return node_id in self.nodes
        except TypeError:
            # Unhashable ids can't be in the graph
            return False

    def __len__(self) -> int:
        return len(self.nodes)

    def neighbors(self, node_id: NodeId) -> List[Edge]:
        """
        Outgoing edges of a node, in insertion order.

        Args:
            node_id: Node ID

        Returns:
            List of edges leaving ``node_id``
        """
        if node_id not in self.nodes:
            return []

        return [
            Edge(node_id, target, weight)
            for _, target, weight in self.graph.out_edges(node_id, data="weight")
        ]

    def predecessors(self, node_id: NodeId) -> List[Edge]:
        """
        Incoming edges of a node, flipped so they can be walked backwards.

        ``Edge.source`` is ``node_id`` and ``Edge.target`` is the node the
        original edge comes from.

        Args:
            node_id: Node ID

        Returns:
            List of reversed edges
        """
        if node_id not in self.nodes:
            return []

        return [
            Edge(node_id, source, weight)
            for source, _, weight in self.graph.in_edges(node_id, data="weight")
        ]

    def edge_weight(self, source: NodeId, target: NodeId) -> Optional[float]:
        """
        Weight of the cheapest edge from ``source`` to ``target``.

        Args:
            source: Source node ID
            target: Target node ID

        Returns:
            Edge weight, or None if no such edge exists
        """
        if source not in self.nodes or target not in self.nodes:
            return None

        parallel = self.graph.get_edge_data(source, target)
        if not parallel:
            return None
        return min(data["weight"] for data in parallel.values())

    def heuristic(self, node_id: NodeId, goal_id: NodeId) -> float:
        """
        Admissible estimate of the remaining cost from a node to the goal.

        Plain graphs know nothing about geometry, so the estimate is zero.

        Args:
            node_id: Current node ID
            goal_id: Goal node ID

        Returns:
            Lower bound on the cost of any path between the two nodes
        """
        return 0.0

    def distance(self, node1_id: NodeId, node2_id: NodeId) -> float:
        """Euclidean distance between two node positions."""
        return math.dist(self.nodes[node1_id].position, self.nodes[node2_id].position)

    def get_graph_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the graph.

        Returns:
            Dictionary with graph statistics
        """
        if len(self.nodes) == 0:
            return {
                "num_nodes": 0,
                "num_edges": 0,
                "blocked_edges": 0,
                "is_connected": False,
                "num_components": 0,
                "avg_out_degree": 0.0,
            }

        blocked = sum(
            1 for _, _, weight in self.graph.edges(data="weight") if math.isinf(weight)
        )
        num_nodes = self.graph.number_of_nodes()

        return {
            "num_nodes": num_nodes,
            "num_edges": self.graph.number_of_edges(),
            "blocked_edges": blocked,
            "is_connected": nx.is_weakly_connected(self.graph),
            "num_components": nx.number_weakly_connected_components(self.graph),
            "avg_out_degree": self.graph.number_of_edges() / num_nodes,
        }

    def export_to_geojson(self) -> Dict[str, Any]:
        """
        Export graph to GeoJSON format.

        Impassable edges are exported with a ``null`` weight.

        Returns:
            GeoJSON FeatureCollection
        """
        features = []

        for node in self.nodes.values():
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": list(node.position)},
                    "properties": {
                        "id": str(node.id),
                        "cost": None if math.isinf(node.cost) else node.cost,
                        "obstacle": node.obstacle.value if node.obstacle else None,
                        "type": "node",
                    },
                }
            )

        for source, target, weight in self.graph.edges(data="weight"):
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [
                            list(self.nodes[source].position),
                            list(self.nodes[target].position),
                        ],
                    },
                    "properties": {
                        "from": str(source),
                        "to": str(target),
                        "weight": None if math.isinf(weight) else weight,
                        "type": "edge",
                    },
                }
            )

        return {"type": "FeatureCollection", "features": features}


class RoadGraph(SearchGraph):
    """
    Road network keyed by rounded "lng,lat" ids, weighted in kilometers.

    Attributes:
        relaxed: Whether one-way tags were ignored at build time
        skipped_geometries: Number of degenerate polylines dropped at build time
    """

    def __init__(self, relaxed: bool = False) -> None:
        super().__init__()
        self.relaxed = relaxed
        self.skipped_geometries = 0

    @classmethod
    def from_geojson(
        cls,
        feature_collection: Dict[str, Any],
        obstacles: Optional[Dict[str, Any]] = None,
        relaxed: Optional[bool] = None,
    ) -> "RoadGraph":
        """
        Build a road graph from an OSM-derived GeoJSON FeatureCollection.

        Args:
            feature_collection: GeoJSON FeatureCollection of road geometries
            obstacles: Optional node id -> obstacle kind mapping
            relaxed: Force two-way edges; read from the collection's
                ``properties.isFastMode`` tag when omitted

        Returns:
            New RoadGraph
        """
        from wayfinder.core.search.builder import build_road_graph, polylines_from_geojson

        if relaxed is None:
            properties = feature_collection.get("properties") or {}
            relaxed = bool(properties.get("isFastMode", False))

        polylines = polylines_from_geojson(feature_collection)
        return build_road_graph(polylines, obstacles, relaxed=relaxed)

    def heuristic(self, node_id: NodeId, goal_id: NodeId) -> float:
        """Great-circle distance in kilometers, never more than the road distance."""
        return great_circle_km(self.nodes[node_id].position, self.nodes[goal_id].position)

    def distance(self, node1_id: NodeId, node2_id: NodeId) -> float:
        """Great-circle distance in kilometers, the unit of road weights."""
        return self.heuristic(node1_id, node2_id)

    def find_nearest_node(
        self, lng: float, lat: float, max_distance_km: Optional[float] = None
    ) -> Optional[GraphNode]:
        """
        Find the nearest node to a given position.

        Args:
            lng: Longitude of the query point
            lat: Latitude of the query point
            max_distance_km: Snap radius, defaults to ``settings.snap_radius_km``

        Returns:
            Nearest GraphNode, or None if the graph is empty or nothing lies
            within the snap radius
        """
        if max_distance_km is None:
            max_distance_km = settings.snap_radius_km

        min_dist = float("inf")
        nearest_node = None

        for node in self.nodes.values():
            dist = great_circle_km((lng, lat), node.position)
            if dist < min_dist:
                min_dist = dist
                nearest_node = node

        if min_dist >= max_distance_km:
            return None
        return nearest_node

    def get_graph_stats(self) -> Dict[str, Any]:
        stats = super().get_graph_stats()
        stats["relaxed"] = self.relaxed
        stats["skipped_geometries"] = self.skipped_geometries
        return stats


class TerrainGraph(SearchGraph):
    """
    Grid graph keyed by (row, col) with 4-directional adjacency.

    Every step costs at least 1, so Manhattan distance is admissible.
    """

    def __init__(self, rows: int, cols: int) -> None:
        super().__init__()
        self.rows = rows
        self.cols = cols

    def heuristic(self, node_id: NodeId, goal_id: NodeId) -> float:
        """Manhattan distance between two cells."""
        row1, col1 = node_id
        row2, col2 = goal_id
        return float(abs(row1 - row2) + abs(col1 - col2))
