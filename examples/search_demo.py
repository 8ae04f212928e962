"""
Demo script for graph search.

This example demonstrates the search engine end to end:
1. Generate a maze on a terrain grid and compare every algorithm
2. Build a road graph from GeoJSON with traffic and a roadblock
3. Snap clicked points to the network and compare routes
"""

from wayfinder.core.logging_config import setup_logging
from wayfinder.core.search import (
    Algorithm,
    RoadGraph,
    TerrainGrid,
    compare_algorithms,
    generate_maze,
)


def print_results(results):
    """Print one line of metrics per algorithm."""
    print(f"   {'algorithm':<14}{'cost':>10}{'visited':>10}{'explored':>12}{'time':>10}")
    for algorithm, result in results.items():
        metrics = result.metrics
        cost = f"{metrics.cost:.2f}" if result.found else "no path"
        print(
            f"   {algorithm.value:<14}{cost:>10}{metrics.visited_count:>10}"
            f"{metrics.explored_distance:>12.2f}{metrics.time_ms:>8.2f}ms"
        )


def build_city_blocks(size=8, step=0.002, origin=(-0.1278, 51.5074)):
    """Square street grid where every other east-west street is one-way."""
    lng0, lat0 = origin
    features = []

    for i in range(size):
        street = [[lng0 + j * step, lat0 + i * step] for j in range(size)]
        avenue = [[lng0 + i * step, lat0 + j * step] for j in range(size)]
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": street},
                "properties": {"highway": "residential", "oneway": "yes" if i % 2 else "no"},
            }
        )
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": avenue},
                "properties": {"highway": "secondary"},
            }
        )

    return {"type": "FeatureCollection", "features": features}


def main():
    """Run graph search demo."""
    setup_logging(log_level="WARNING")

    print("=" * 60)
    print("Graph Search Demo")
    print("=" * 60)

    # 1. Terrain grid with a random maze
    print("\n1. Generating maze on the default terrain grid...")
    grid = TerrainGrid()
    walls = generate_maze(grid, seed=7)
    grid.set_terrain((grid.start[0], grid.start[1] + 1), "forest")

    print(f"   - Size: {grid.rows} x {grid.cols}")
    print(f"   - Walls: {len(walls)}")
    print(f"   - Start: {grid.start}  Finish: {grid.finish}")

    print("\n2. Comparing algorithms on the maze...")
    print("-" * 60)
    graph = grid.to_graph()
    print_results(compare_algorithms(graph, None, grid.start, grid.finish))

    # 2. Road network from GeoJSON
    print("\n3. Building road graph from GeoJSON...")
    collection = build_city_blocks()
    plain = RoadGraph.from_geojson(collection)

    start = plain.find_nearest_node(-0.12781, 51.50741)
    end = plain.find_nearest_node(-0.1138, 51.5214)
    if start is None or end is None:
        print("   ERROR: Could not snap endpoints to the road network!")
        return

    middle = list(plain.nodes)[len(plain.nodes) // 2]
    obstacles = {middle: "block"}
    for node_id in list(plain.nodes)[10:14]:
        obstacles[node_id] = "traffic"

    roads = RoadGraph.from_geojson(collection, obstacles=obstacles)
    stats = roads.get_graph_stats()
    print(f"   - Nodes: {stats['num_nodes']}")
    print(f"   - Edges: {stats['num_edges']}")
    print(f"   - Blocked edges: {stats['blocked_edges']}")
    print(f"   - Route: {start.id} -> {end.id}")

    print("\n4. Comparing algorithms on the road graph...")
    print("-" * 60)
    results = compare_algorithms(roads, None, start.id, end.id)
    print_results(results)

    # 3. Consistency check
    print("\n5. Optimality Check:")
    print("-" * 60)
    reference = results[Algorithm.DIJKSTRA]
    if not reference.found:
        print("   No route between the endpoints with these obstacles.")
        return

    for algorithm in (Algorithm.ASTAR, Algorithm.BIDIRECTIONAL):
        matched = abs(results[algorithm].total_cost - reference.total_cost) < 1e-6
        status = "✓ PASS" if matched else "✗ FAIL"
        print(f"   {status}: {algorithm.value} matches dijkstra")

    geometry = reference.get_geometry()
    print(f"\n   Shortest route: {len(reference.path)} nodes, {geometry.length:.4f} degrees long")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
