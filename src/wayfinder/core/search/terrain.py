"""
Grid terrain model.

A rectangular grid of cells, each with a terrain type whose cost is paid
when a search steps into the cell. Walls are impassable. The grid is
edited in place and converted into a fresh ``TerrainGraph`` for every
search.
"""

import logging
import math
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from wayfinder.core.config import settings
from wayfinder.core.errors import ValidationError
from wayfinder.core.search.graph import GraphNode, TerrainGraph

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

# Up, down, left, right
NEIGHBOR_OFFSETS: Tuple[Cell, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


class TerrainType(str, Enum):
    """Cell terrain and the cost of entering it."""

    OPEN = "open"
    FOREST = "forest"
    MUD = "mud"
    WATER = "water"
    WALL = "wall"

    @property
    def cost(self) -> float:
        return TERRAIN_COSTS[self]


TERRAIN_COSTS = {
    TerrainType.OPEN: 1.0,
    TerrainType.FOREST: 3.0,
    TerrainType.MUD: 5.0,
    TerrainType.WATER: 10.0,
    TerrainType.WALL: float("inf"),
}

_TERRAIN_BY_COST = {cost: terrain for terrain, cost in TERRAIN_COSTS.items()}

LAYOUT_CHARS = {
    ".": TerrainType.OPEN,
    "f": TerrainType.FOREST,
    "m": TerrainType.MUD,
    "w": TerrainType.WATER,
    "#": TerrainType.WALL,
    "S": TerrainType.OPEN,
    "F": TerrainType.OPEN,
}


class TerrainGrid:
    """
    Editable terrain grid with a start and a finish cell.

    Cells are addressed as (row, col). Costs live in a numpy array where
    walls are ``inf``. The start and finish cells can never be walls.

    Attributes:
        rows: Number of rows
        cols: Number of columns
        start: Start cell
        finish: Finish cell
        costs: (rows, cols) array of entry costs
    """

    def __init__(
        self,
        rows: Optional[int] = None,
        cols: Optional[int] = None,
        start: Optional[Cell] = None,
        finish: Optional[Cell] = None,
    ):
        """
        Initialize an all-open grid.

        Args:
            rows: Number of rows (default: settings.grid_rows)
            cols: Number of columns (default: settings.grid_cols)
            start: Start cell (default: settings.grid_start)
            finish: Finish cell (default: settings.grid_finish)

        Raises:
            ValidationError: If the size is not positive, an endpoint lies
                outside the grid, or start and finish coincide
        """
        self.rows = settings.grid_rows if rows is None else rows
        self.cols = settings.grid_cols if cols is None else cols

        if self.rows < 1 or self.cols < 1:
            raise ValidationError(
                f"Grid size must be positive, got {self.rows}x{self.cols}",
                field="grid_size",
            )

        self.costs = np.ones((self.rows, self.cols), dtype=float)

        start = tuple(settings.grid_start if start is None else start)
        finish = tuple(settings.grid_finish if finish is None else finish)
        self._check_in_bounds(start, "start")
        self._check_in_bounds(finish, "finish")
        if start == finish:
            raise ValidationError("Start and finish must be different cells", field="finish")

        self.start: Cell = start
        self.finish: Cell = finish

    @classmethod
    def from_layout(cls, layout: Union[str, Sequence[str]]) -> "TerrainGrid":
        """
        Build a grid from an ASCII layout.

        Characters: ``.`` open, ``f`` forest, ``m`` mud, ``w`` water,
        ``#`` wall, ``S`` start, ``F`` finish. Blank lines are ignored.

        Args:
            layout: Multi-line string or list of row strings

        Returns:
            TerrainGrid matching the layout

        Raises:
            ValidationError: For ragged rows, unknown characters, or a
                missing or repeated start/finish
        """
        if isinstance(layout, str):
            layout = layout.splitlines()
        lines = [line.strip() for line in layout if line.strip()]

        if not lines:
            raise ValidationError("Layout is empty", field="layout")
        if any(len(line) != len(lines[0]) for line in lines):
            raise ValidationError("Layout rows must all have the same length", field="layout")

        starts: List[Cell] = []
        finishes: List[Cell] = []
        for row, line in enumerate(lines):
            for col, char in enumerate(line):
                if char not in LAYOUT_CHARS:
                    raise ValidationError(
                        f"Unknown layout character '{char}' at ({row}, {col})",
                        field="layout",
                        suggestions=[f"Use one of: {' '.join(LAYOUT_CHARS)}"],
                    )
                if char == "S":
                    starts.append((row, col))
                elif char == "F":
                    finishes.append((row, col))

        if len(starts) != 1 or len(finishes) != 1:
            raise ValidationError(
                "Layout needs exactly one 'S' and one 'F'",
                field="layout",
                details={"starts": starts, "finishes": finishes},
            )

        grid = cls(len(lines), len(lines[0]), start=starts[0], finish=finishes[0])
        for row, line in enumerate(lines):
            for col, char in enumerate(line):
                grid.costs[row, col] = LAYOUT_CHARS[char].cost
        return grid

    def _check_in_bounds(self, cell: Sequence[int], field: str) -> None:
        if len(cell) != 2 or not (0 <= cell[0] < self.rows and 0 <= cell[1] < self.cols):
            raise ValidationError(
                f"Cell {tuple(cell)} is outside the {self.rows}x{self.cols} grid",
                field=field,
            )

    def in_bounds(self, cell: Cell) -> bool:
        """Whether a cell lies inside the grid."""
        row, col = cell
        return 0 <= row < self.rows and 0 <= col < self.cols

    def terrain_at(self, cell: Cell) -> TerrainType:
        """Terrain of a cell."""
        self._check_in_bounds(cell, "cell")
        return _TERRAIN_BY_COST[float(self.costs[tuple(cell)])]

    def is_wall(self, cell: Cell) -> bool:
        return self.terrain_at(cell) is TerrainType.WALL

    def set_terrain(self, cell: Cell, terrain: Union[str, TerrainType]) -> None:
        """
        Paint one cell.

        Args:
            cell: (row, col)
            terrain: TerrainType or its name

        Raises:
            ValidationError: If the cell is outside the grid, the terrain is
                unknown, or a wall would cover the start or finish
        """
        self._check_in_bounds(cell, "cell")
        try:
            terrain = TerrainType(terrain)
        except ValueError:
            raise ValidationError(
                f"Unknown terrain '{terrain}'",
                field="terrain",
                suggestions=[f"Use one of: {', '.join(t.value for t in TerrainType)}"],
            )

        if terrain is TerrainType.WALL and tuple(cell) in (self.start, self.finish):
            raise ValidationError(f"Cannot place a wall on endpoint {tuple(cell)}", field="cell")

        self.costs[tuple(cell)] = terrain.cost

    def walls(self) -> List[Cell]:
        """All wall cells in row-major order."""
        return [(int(r), int(c)) for r, c in np.argwhere(np.isinf(self.costs))]

    def clear_walls(self) -> None:
        """Turn every wall back into open ground, keeping other terrain."""
        self.costs[np.isinf(self.costs)] = TerrainType.OPEN.cost

    def reset(self) -> None:
        """Make every cell open ground."""
        self.costs.fill(TerrainType.OPEN.cost)

    def _check_endpoint(self, cell: Cell, field: str, other: Cell) -> Cell:
        cell = tuple(cell)
        self._check_in_bounds(cell, field)
        if self.is_wall(cell):
            raise ValidationError(f"Cannot move {field} onto wall {cell}", field=field)
        if cell == other:
            raise ValidationError("Start and finish must be different cells", field=field)
        return cell

    def move_start(self, cell: Cell) -> None:
        """Move the start to a non-wall cell other than the finish."""
        self.start = self._check_endpoint(cell, "start", self.finish)

    def move_finish(self, cell: Cell) -> None:
        """Move the finish to a non-wall cell other than the start."""
        self.finish = self._check_endpoint(cell, "finish", self.start)

    def to_graph(self) -> TerrainGraph:
        """
        Convert the grid into a search graph.

        Nodes are cells in row-major order, keyed by (row, col) with
        position (col, row). Each cell gets edges to its in-bounds
        neighbors (up, down, left, right) weighted by the neighbor's cost.
        Any edge touching a wall costs ``inf``, in either direction.

        Returns:
            New TerrainGraph
        """
        graph = TerrainGraph(self.rows, self.cols)

        for row in range(self.rows):
            for col in range(self.cols):
                graph.add_node(
                    GraphNode(id=(row, col), position=(col, row), cost=float(self.costs[row, col]))
                )

        for row in range(self.rows):
            for col in range(self.cols):
                leaving_wall = np.isinf(self.costs[row, col])
                for d_row, d_col in NEIGHBOR_OFFSETS:
                    neighbor = (row + d_row, col + d_col)
                    if self.in_bounds(neighbor):
                        weight = math.inf if leaving_wall else float(self.costs[neighbor])
                        graph.add_edge((row, col), neighbor, weight)

        logger.debug(
            f"Terrain graph built: {self.rows}x{self.cols}, {len(self.walls())} walls"
        )
        return graph

    def render(self) -> str:
        """ASCII rendering using the ``from_layout`` characters."""
        chars = {terrain: char for char, terrain in LAYOUT_CHARS.items() if char not in "SF"}
        lines = []
        for row in range(self.rows):
            line = []
            for col in range(self.cols):
                if (row, col) == self.start:
                    line.append("S")
                elif (row, col) == self.finish:
                    line.append("F")
                else:
                    line.append(chars[self.terrain_at((row, col))])
            lines.append("".join(line))
        return "\n".join(lines)
