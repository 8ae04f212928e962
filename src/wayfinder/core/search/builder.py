"""
Road graph construction from line geometries.

Each polyline contributes one directed edge per consecutive coordinate
pair, plus the reverse edge unless the polyline is one-way and the build
is not relaxed. Obstacles are baked into edge weights here; changing them
means building a new graph.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from shapely.geometry import LineString

from wayfinder.core.config import settings
from wayfinder.core.errors import ValidationError
from wayfinder.core.search.geo import coordinate_from_id, coordinate_id, great_circle_km
from wayfinder.core.search.graph import GraphNode, ObstacleKind, RoadGraph
from wayfinder.utils.logging import log_performance

logger = logging.getLogger(__name__)


@dataclass
class Polyline:
    """
    A road geometry as delivered by the map data source.

    Attributes:
        coordinates: Ordered (lng, lat) pairs
        one_way: Whether traffic may only follow the coordinate order
        properties: Source tags (OSM highway, name, ...)
    """

    coordinates: List[Tuple[float, float]]
    one_way: bool = False
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_linestring(
        cls,
        line: LineString,
        one_way: bool = False,
        properties: Optional[Dict[str, Any]] = None,
    ) -> "Polyline":
        """
        Create a polyline from a Shapely LineString.

        Args:
            line: LineString in (lng, lat) order
            one_way: One-way flag
            properties: Optional source tags

        Returns:
            Polyline instance
        """
        coords = [(float(c[0]), float(c[1])) for c in line.coords]
        return cls(coordinates=coords, one_way=one_way, properties=properties or {})

    @property
    def is_degenerate(self) -> bool:
        """A polyline needs at least two coordinates to form a segment."""
        return len(self.coordinates) < 2


def is_one_way(properties: Mapping[str, Any]) -> bool:
    """OSM tagging: explicit ``oneway=yes`` or any roundabout."""
    return properties.get("oneway") == "yes" or properties.get("junction") == "roundabout"


def polylines_from_geojson(feature_collection: Mapping[str, Any]) -> List[Polyline]:
    """
    Extract road polylines from a GeoJSON FeatureCollection.

    LineString features map to one polyline, MultiLineString features to one
    per part. Other geometry types (e.g. node Points) are ignored. Degenerate
    lines are kept so the builder can count them.

    Args:
        feature_collection: GeoJSON FeatureCollection

    Returns:
        List of polylines in feature order
    """
    polylines: List[Polyline] = []
    features = feature_collection.get("features") or []

    for feature in features:
        geometry = feature.get("geometry") or {}
        properties = feature.get("properties") or {}
        geometry_type = geometry.get("type")
        one_way = is_one_way(properties)

        if geometry_type == "LineString":
            parts = [geometry.get("coordinates") or []]
        elif geometry_type == "MultiLineString":
            parts = geometry.get("coordinates") or []
        else:
            continue

        for part in parts:
            coords = [(float(c[0]), float(c[1])) for c in part]
            polylines.append(Polyline(coordinates=coords, one_way=one_way, properties=properties))

    return polylines


def coerce_obstacles(obstacles: Optional[Mapping[str, Any]]) -> Dict[str, ObstacleKind]:
    """
    Normalize an obstacle mapping to ObstacleKind values.

    Args:
        obstacles: Node id -> "block" | "traffic" (or ObstacleKind)

    Returns:
        Node id -> ObstacleKind

    Raises:
        ValidationError: If an obstacle kind is unknown
    """
    if not obstacles:
        return {}

    kinds: Dict[str, ObstacleKind] = {}
    for node_id, kind in obstacles.items():
        try:
            kinds[node_id] = ObstacleKind(kind)
        except ValueError:
            raise ValidationError(
                f"Unknown obstacle kind '{kind}' for node {node_id}",
                field="obstacles",
                suggestions=[f"Use one of: {', '.join(k.value for k in ObstacleKind)}"],
            )
    return kinds


def _edge_weight(
    graph: RoadGraph,
    from_id: str,
    to_id: str,
    kinds: Mapping[str, ObstacleKind],
    traffic_multiplier: float,
) -> float:
    endpoint_kinds = (kinds.get(from_id), kinds.get(to_id))
    if ObstacleKind.BLOCK in endpoint_kinds:
        return math.inf

    weight = great_circle_km(graph.nodes[from_id].position, graph.nodes[to_id].position)
    if ObstacleKind.TRAFFIC in endpoint_kinds:
        weight *= traffic_multiplier
    return weight


@log_performance(log_level=logging.DEBUG)
def build_road_graph(
    polylines: Iterable[Polyline],
    obstacles: Optional[Mapping[str, Any]] = None,
    relaxed: bool = False,
    precision: Optional[int] = None,
    traffic_multiplier: Optional[float] = None,
) -> RoadGraph:
    """
    Build a directed road graph.

    Node positions are the rounded coordinates encoded in their ids, and
    weights are great-circle distances between those positions, so the
    great-circle heuristic never overestimates.

    Args:
        polylines: Road geometries in (lng, lat) order
        obstacles: Optional node id -> obstacle kind mapping
        relaxed: Insert reverse edges even for one-way polylines
        precision: Id rounding decimals (default: settings.coordinate_precision)
        traffic_multiplier: Traffic factor (default: settings.traffic_multiplier)

    Returns:
        New RoadGraph
    """
    if precision is None:
        precision = settings.coordinate_precision
    if traffic_multiplier is None:
        traffic_multiplier = settings.traffic_multiplier

    kinds = coerce_obstacles(obstacles)
    graph = RoadGraph(relaxed=relaxed)
    one_way_segments = 0

    for polyline in polylines:
        if polyline.is_degenerate:
            graph.skipped_geometries += 1
            continue

        one_way = polyline.one_way and not relaxed
        coords = polyline.coordinates

        for start, end in zip(coords, coords[1:]):
            from_id = coordinate_id(start, precision)
            to_id = coordinate_id(end, precision)

            for node_id in (from_id, to_id):
                if node_id not in graph:
                    graph.add_node(
                        GraphNode(
                            id=node_id,
                            position=coordinate_from_id(node_id),
                            obstacle=kinds.get(node_id),
                        )
                    )

            weight = _edge_weight(graph, from_id, to_id, kinds, traffic_multiplier)
            graph.add_edge(from_id, to_id, weight)

            if one_way:
                one_way_segments += 1
            else:
                graph.add_edge(to_id, from_id, weight)

    if graph.skipped_geometries:
        logger.warning(f"Skipped {graph.skipped_geometries} degenerate road geometries")

    logger.debug(
        f"Road graph built: {len(graph.nodes)} nodes, "
        f"{graph.graph.number_of_edges()} edges, "
        f"{one_way_segments} one-way segments, relaxed={relaxed}"
    )

    return graph
