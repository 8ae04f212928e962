"""
Tests for the search strategies.

networkx shortest-path routines serve as the exhaustive reference on
small fixture graphs.
"""

import math

import networkx as nx
import numpy as np
import pytest

from wayfinder.core.errors import ValidationError
from wayfinder.core.search.algorithms import Algorithm, ScratchTable, run
from wayfinder.core.search.builder import Polyline, build_road_graph
from wayfinder.core.search.geo import coordinate_id
from wayfinder.core.search.graph import GraphNode, SearchGraph
from wayfinder.core.search.terrain import TerrainGrid

ALL_ALGORITHMS = list(Algorithm)
OPTIMAL_ALGORITHMS = [Algorithm.DIJKSTRA, Algorithm.ASTAR, Algorithm.BIDIRECTIONAL]

STEP = 0.01


def lattice_id(x: int, y: int) -> str:
    return coordinate_id((x * STEP, y * STEP), 5)


def make_graph(edges, node_ids=None):
    """Build a plain SearchGraph from (source, target, weight) triples."""
    graph = SearchGraph()
    if node_ids is None:
        node_ids = []
        for source, target, _ in edges:
            for node_id in (source, target):
                if node_id not in node_ids:
                    node_ids.append(node_id)
    for index, node_id in enumerate(node_ids):
        graph.add_node(GraphNode(id=node_id, position=(float(index), 0.0)))
    for source, target, weight in edges:
        graph.add_edge(source, target, weight)
    return graph


def random_graph(seed: int, num_nodes: int = 30, num_edges: int = 90) -> SearchGraph:
    """Random directed graph with unique node pairs and some blocked edges."""
    rng = np.random.default_rng(seed)
    pairs = set()
    while len(pairs) < num_edges:
        source, target = (int(x) for x in rng.integers(0, num_nodes, size=2))
        if source != target:
            pairs.add((source, target))

    edges = []
    for source, target in sorted(pairs):
        weight = math.inf if rng.random() < 0.1 else float(rng.integers(1, 10))
        edges.append((source, target, weight))
    return make_graph(edges, node_ids=list(range(num_nodes)))


def reference_graph(graph: SearchGraph) -> nx.DiGraph:
    """Finite edges only, cheapest parallel edge per pair."""
    reference = nx.DiGraph()
    reference.add_nodes_from(graph.nodes)
    for source, target, weight in graph.graph.edges(data="weight"):
        if math.isinf(weight):
            continue
        if reference.has_edge(source, target):
            weight = min(weight, reference[source][target]["weight"])
        reference.add_edge(source, target, weight=weight)
    return reference


def road_lattice(size: int = 6, obstacles=None, relaxed: bool = False):
    """Square lattice of roads; odd rows are one-way eastbound."""
    polylines = []
    for i in range(size):
        row = [(j * STEP, i * STEP) for j in range(size)]
        column = [(i * STEP, j * STEP) for j in range(size)]
        polylines.append(Polyline(row, one_way=(i % 2 == 1)))
        polylines.append(Polyline(column))
    return build_road_graph(polylines, obstacles, relaxed=relaxed)


def assert_valid_path(graph: SearchGraph, path, start, end):
    """A found path is a connected walk over finite edges from start to end."""
    assert len(path) >= 2
    assert path[0] == start
    assert path[-1] == end
    for source, target in zip(path, path[1:]):
        weight = graph.edge_weight(source, target)
        assert weight is not None
        assert not math.isinf(weight)


def path_weight(graph: SearchGraph, path) -> float:
    return sum(graph.edge_weight(s, t) for s, t in zip(path, path[1:]))


@pytest.fixture
def bfs_trap():
    """Cheap three-hop route versus an expensive direct edge."""
    return make_graph(
        [
            ("s", "a", 1.0),
            ("a", "b", 1.0),
            ("b", "t", 1.0),
            ("s", "t", 10.0),
        ]
    )


@pytest.fixture
def first_contact_trap():
    """The first node both frontiers reach is not on the best path."""
    return make_graph(
        [
            ("s", "u", 3.0),
            ("u", "t", 3.0),
            ("s", "v", 2.0),
            ("v", "w", 1.5),
            ("w", "t", 2.0),
        ]
    )


@pytest.fixture
def lattice_obstacles():
    return {
        lattice_id(2, 2): "block",
        lattice_id(3, 1): "block",
        lattice_id(1, 3): "traffic",
        lattice_id(4, 4): "traffic",
    }


class TestAlgorithmParse:
    """Tests for Algorithm name resolution."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("dijkstra", Algorithm.DIJKSTRA),
            ("AStar", Algorithm.ASTAR),
            (" greedy ", Algorithm.GREEDY),
            ("bfs", Algorithm.BFS),
            ("DFS", Algorithm.DFS),
            ("bidirectional", Algorithm.BIDIRECTIONAL),
            (Algorithm.ASTAR, Algorithm.ASTAR),
        ],
    )
    def test_parse(self, name, expected):
        """Test case-insensitive parsing."""
        assert Algorithm.parse(name) is expected

    def test_unknown_name(self):
        """Test that unknown names raise instead of falling back."""
        with pytest.raises(ValidationError) as exc_info:
            Algorithm.parse("bellman-ford")

        assert exc_info.value.details["field"] == "algorithm"

    def test_run_with_unknown_name(self, bfs_trap):
        """Test that the runner rejects unknown names."""
        with pytest.raises(ValidationError):
            run("teleport", bfs_trap, "s", "t")

    def test_cost_optimal_flags(self):
        """Test which strategies guarantee minimum cost."""
        assert {a for a in Algorithm if a.is_cost_optimal} == set(OPTIMAL_ALGORITHMS)


class TestScratchTable:
    """Tests for per-run search state."""

    def test_rooted_table(self):
        """Test a fresh table."""
        table = ScratchTable.rooted_at("s")

        assert table.distance("s") == 0.0
        assert math.isinf(table.distance("x"))
        assert table.path_to("s") == ["s"]

    def test_path_to(self):
        """Test walking parent pointers."""
        table = ScratchTable.rooted_at("s")
        table.record("a", 1.0, "s")
        table.record("b", 2.0, "a")

        assert table.path_to("b") == ["s", "a", "b"]

    def test_finalize_returns_visit(self):
        """Test trace entries."""
        table = ScratchTable.rooted_at("s")
        table.record("a", 1.0, "s")

        visit = table.finalize("a", reverse=True)

        assert visit.node_id == "a"
        assert visit.parent_id == "s"
        assert visit.reverse is True
        assert "a" in table.finalized


class TestOptimality:
    """Tests for cost guarantees against exhaustive reference searches."""

    @pytest.mark.parametrize("seed", range(12))
    def test_dijkstra_matches_reference(self, seed):
        """Test Dijkstra against networkx on random graphs."""
        graph = random_graph(seed)
        reference = reference_graph(graph)

        for end in (5, 17, 29):
            trace = run(Algorithm.DIJKSTRA, graph, 0, end)
            try:
                expected = nx.dijkstra_path_length(reference, 0, end)
            except nx.NetworkXNoPath:
                assert trace.path == []
                continue

            assert_valid_path(graph, trace.path, 0, end)
            assert trace.total_cost == pytest.approx(expected)

    @pytest.mark.parametrize("seed", range(12))
    @pytest.mark.parametrize("algorithm", [Algorithm.ASTAR, Algorithm.BIDIRECTIONAL])
    def test_parity_with_dijkstra_on_random_graphs(self, seed, algorithm):
        """Test that optimal strategies agree with Dijkstra."""
        graph = random_graph(seed)

        for start, end in [(0, 29), (3, 11), (20, 1)]:
            expected = run(Algorithm.DIJKSTRA, graph, start, end)
            trace = run(algorithm, graph, start, end)

            assert trace.found == expected.found
            if expected.found:
                assert_valid_path(graph, trace.path, start, end)
                assert trace.total_cost == pytest.approx(expected.total_cost)

    @pytest.mark.parametrize(
        "start,end",
        [((0, 0), (5, 5)), ((5, 0), (0, 5)), ((0, 4), (5, 1)), ((2, 5), (2, 0))],
    )
    def test_parity_on_road_lattice(self, lattice_obstacles, start, end):
        """Test A* (non-zero heuristic) and bidirectional parity on a road graph."""
        graph = road_lattice(obstacles=lattice_obstacles)
        reference = reference_graph(graph)
        source, target = lattice_id(*start), lattice_id(*end)

        expected = nx.dijkstra_path_length(reference, source, target)
        assert graph.heuristic(source, target) > 0

        for algorithm in OPTIMAL_ALGORITHMS:
            trace = run(algorithm, graph, source, target)
            assert_valid_path(graph, trace.path, source, target)
            assert trace.total_cost == pytest.approx(expected, abs=1e-6)

    def test_parity_on_weighted_terrain(self):
        """Test optimal strategies on mixed terrain against networkx."""
        grid = TerrainGrid.from_layout(
            """
            S.fff.
            .#mmm.
            .#www.
            .#....
            ...#wF
            """
        )
        graph = grid.to_graph()
        expected = nx.dijkstra_path_length(reference_graph(graph), grid.start, grid.finish)

        for algorithm in OPTIMAL_ALGORITHMS:
            trace = run(algorithm, graph, grid.start, grid.finish)
            assert trace.total_cost == expected

    def test_bidirectional_does_not_stop_at_first_contact(self, first_contact_trap):
        """Test the lower-bound stopping rule."""
        trace = run(Algorithm.BIDIRECTIONAL, first_contact_trap, "s", "t")

        assert trace.path == ["s", "v", "w", "t"]
        assert trace.total_cost == 5.5
        assert trace.meeting_node in trace.path

    def test_bfs_minimizes_hops(self, bfs_trap):
        """Test that BFS prefers fewer edges over lower cost."""
        bfs = run(Algorithm.BFS, bfs_trap, "s", "t")
        dijkstra = run(Algorithm.DIJKSTRA, bfs_trap, "s", "t")

        assert bfs.path == ["s", "t"]
        assert bfs.total_cost == 10.0
        assert dijkstra.path == ["s", "a", "b", "t"]
        assert dijkstra.total_cost == 3.0

    @pytest.mark.parametrize("seed", range(8))
    def test_bfs_hop_count_matches_reference(self, seed):
        """Test BFS hop counts against networkx on random graphs."""
        graph = random_graph(seed)
        reference = reference_graph(graph)

        for end in (7, 23):
            trace = run(Algorithm.BFS, graph, 0, end)
            if not nx.has_path(reference, 0, end):
                assert trace.path == []
                continue

            assert len(trace.path) - 1 == nx.shortest_path_length(reference, 0, end)


class TestPathValidity:
    """Tests shared by every strategy."""

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    @pytest.mark.parametrize("seed", range(6))
    def test_paths_are_connected_and_costed(self, algorithm, seed):
        """Test path shape and that re-summed weights match the reported cost."""
        graph = random_graph(seed)
        reference = reference_graph(graph)

        for end in (9, 21):
            trace = run(algorithm, graph, 0, end)
            if not nx.has_path(reference, 0, end):
                assert trace.path == []
                assert trace.total_cost is None
                continue

            assert_valid_path(graph, trace.path, 0, end)
            assert trace.total_cost == pytest.approx(path_weight(graph, trace.path))

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_blocked_nodes_never_on_path(self, algorithm, lattice_obstacles):
        """Test that infinite edges are never traversed."""
        graph = road_lattice(obstacles=lattice_obstacles)
        blocked = {node_id for node_id, kind in lattice_obstacles.items() if kind == "block"}

        trace = run(algorithm, graph, lattice_id(0, 0), lattice_id(5, 5))

        assert_valid_path(graph, trace.path, lattice_id(0, 0), lattice_id(5, 5))
        assert blocked.isdisjoint(trace.path)
        assert blocked.isdisjoint(v.node_id for v in trace.visit_order)

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_parents_are_visited_first(self, algorithm, lattice_obstacles):
        """Test that every visit's parent appears earlier in the same direction."""
        graph = road_lattice(obstacles=lattice_obstacles)
        trace = run(algorithm, graph, lattice_id(0, 0), lattice_id(5, 5))

        seen = {False: set(), True: set()}
        for visit in trace.visit_order:
            if visit.parent_id is not None:
                assert visit.parent_id in seen[visit.reverse]
            seen[visit.reverse].add(visit.node_id)

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_missing_endpoint(self, algorithm, bfs_trap):
        """Test that unknown endpoints give an empty trace."""
        for start, end in [("nowhere", "t"), ("s", "nowhere")]:
            trace = run(algorithm, bfs_trap, start, end)

            assert trace.visit_order == []
            assert trace.path == []
            assert trace.total_cost is None
            assert not trace.found

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_unreachable_target(self, algorithm, bfs_trap):
        """Test that an unreachable end gives a trace but no path."""
        trace = run(algorithm, bfs_trap, "t", "s")

        assert trace.path == []
        assert trace.total_cost is None
        assert [v.node_id for v in trace.visit_order][0] == "t"

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_start_equals_end(self, algorithm, bfs_trap):
        """Test that a single node is never reported as a path."""
        trace = run(algorithm, bfs_trap, "s", "s")

        assert trace.path == []
        assert not trace.found

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_runs_do_not_share_state(self, algorithm, lattice_obstacles):
        """Test that repeated runs on one graph are identical."""
        graph = road_lattice(obstacles=lattice_obstacles)
        edges_before = sorted(graph.graph.edges(data="weight"))

        first = run(algorithm, graph, lattice_id(0, 0), lattice_id(5, 5))
        run(algorithm, graph, lattice_id(5, 5), lattice_id(0, 0))
        second = run(algorithm, graph, lattice_id(0, 0), lattice_id(5, 5))

        assert first == second
        assert sorted(graph.graph.edges(data="weight")) == edges_before

    def test_dfs_follows_declared_order(self):
        """Test that DFS explores the first declared neighbor first."""
        graph = make_graph(
            [
                ("s", "a", 1.0),
                ("s", "b", 1.0),
                ("a", "c", 1.0),
                ("b", "t", 1.0),
                ("c", "t", 1.0),
            ]
        )

        trace = run(Algorithm.DFS, graph, "s", "t")

        assert [v.node_id for v in trace.visit_order] == ["s", "a", "c", "t"]
        assert trace.path == ["s", "a", "c", "t"]
        assert trace.total_cost == 3.0


class TestOneWayScenarios:
    """Tests for one-way edges with and without relaxed builds."""

    @pytest.fixture
    def one_way_pair(self):
        return make_graph([("A", "B", 1.0)])

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_forward_direction(self, algorithm, one_way_pair):
        """Test A to B along the one-way edge."""
        trace = run(algorithm, one_way_pair, "A", "B")

        assert trace.path == ["A", "B"]
        assert trace.total_cost == 1.0

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_against_one_way(self, algorithm, one_way_pair):
        """Test that B to A has no path."""
        assert run(algorithm, one_way_pair, "B", "A").path == []

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_strict_road_build(self, algorithm):
        """Test a one-way road polyline without relaxed mode."""
        graph = build_road_graph([Polyline([(0.0, 0.0), (0.01, 0.0)], one_way=True)])
        a, b = lattice_id(0, 0), lattice_id(1, 0)

        assert run(algorithm, graph, b, a).path == []
        forward = run(algorithm, graph, a, b)
        assert forward.path == [a, b]
        assert forward.total_cost == graph.edge_weight(a, b)

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_relaxed_road_build(self, algorithm):
        """Test that relaxed builds allow travel against the tag."""
        graph = build_road_graph(
            [Polyline([(0.0, 0.0), (0.01, 0.0)], one_way=True)], relaxed=True
        )
        a, b = lattice_id(0, 0), lattice_id(1, 0)

        trace = run(algorithm, graph, b, a)

        assert trace.path == [b, a]
        assert trace.total_cost == graph.edge_weight(a, b)


class TestGridScenarios:
    """Tests for fixed terrain grid scenarios."""

    @pytest.mark.parametrize("algorithm", [Algorithm.DIJKSTRA, Algorithm.BFS])
    def test_open_grid(self, algorithm):
        """Test the 5x5 open grid corner to corner."""
        grid = TerrainGrid(5, 5, start=(0, 0), finish=(4, 4))

        trace = run(algorithm, grid.to_graph(), (0, 0), (4, 4))

        assert len(trace.path) == 9
        assert trace.total_cost == 8.0

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_wall_column_with_gap(self, algorithm):
        """Test that every path goes through the single gap at (4, 2)."""
        grid = TerrainGrid.from_layout(
            """
            S.#..
            ..#..
            ..#..
            ..#..
            ....F
            """
        )

        trace = run(algorithm, grid.to_graph(), (0, 0), (4, 4))

        assert (4, 2) in trace.path
        assert all(col != 2 or row == 4 for row, col in trace.path)
        if algorithm.is_cost_optimal:
            assert trace.total_cost == 8.0
        else:
            assert trace.total_cost >= 8.0

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_walled_in_finish(self, algorithm):
        """Test that an enclosed finish is unreachable."""
        grid = TerrainGrid.from_layout(
            """
            S....
            ...#.
            ..#F#
            ...#.
            .....
            """
        )

        trace = run(algorithm, grid.to_graph(), grid.start, grid.finish)

        assert trace.path == []
        assert len(trace.visit_order) > 0

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_search_from_wall_cell(self, algorithm):
        """Test that a search starting on a wall cannot leave it."""
        grid = TerrainGrid.from_layout(
            """
            S....
            .#...
            ....F
            """
        )
        graph = grid.to_graph()

        trace = run(algorithm, graph, (1, 1), (2, 4))

        assert not trace.found
        assert trace.path == []
        assert trace.total_cost is None
        assert run(algorithm, graph, (2, 4), (1, 1)).path == []
