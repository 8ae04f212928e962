"""
Randomized maze generation for terrain grids.

A depth-first backtracker carves corridors two cells at a time starting
from the grid's start cell. Every cell left uncarved then becomes a wall
with ``wall_probability``; the cells that escape open extra loops through
the maze. Start and finish are never walled, but a finish off the carving
lattice may end up enclosed, so connectivity is likely rather than
guaranteed.
"""

import logging
from typing import List, Optional, Set

import numpy as np

from wayfinder.core.config import settings
from wayfinder.core.errors import ValidationError
from wayfinder.core.search.terrain import Cell, TerrainGrid, TerrainType

logger = logging.getLogger(__name__)

# Two-cell steps: up, down, left, right
CARVE_STEPS = ((-2, 0), (2, 0), (0, -2), (0, 2))


def carve_passages(grid: TerrainGrid, rng: np.random.Generator) -> Set[Cell]:
    """
    Carve corridors with an iterative randomized depth-first search.

    Args:
        grid: Grid whose size and start cell drive the carving
        rng: Random generator used to shuffle directions

    Returns:
        Set of carved (open) cells, always including start and finish
    """
    carved: Set[Cell] = {grid.start, grid.finish}
    visited: Set[Cell] = {grid.start}
    stack: List[Cell] = [grid.start]

    while stack:
        row, col = stack[-1]

        order = rng.permutation(len(CARVE_STEPS))
        for index in order:
            d_row, d_col = CARVE_STEPS[index]
            target = (row + d_row, col + d_col)
            if not grid.in_bounds(target) or target in visited:
                continue

            between = (row + d_row // 2, col + d_col // 2)
            visited.add(target)
            carved.add(target)
            carved.add(between)
            stack.append(target)
            break
        else:
            # Dead end
            stack.pop()

    return carved


def generate_maze(
    grid: TerrainGrid,
    seed: Optional[int] = None,
    wall_probability: Optional[float] = None,
) -> List[Cell]:
    """
    Replace the grid's contents with a random maze.

    All terrain is reset to open ground first.

    Args:
        grid: Grid to modify in place
        seed: Optional seed for reproducible mazes
        wall_probability: Chance that an uncarved cell becomes a wall
            (default: settings.maze_wall_probability)

    Returns:
        Wall cells in row-major order

    Raises:
        ValidationError: If wall_probability is outside [0, 1]
    """
    if wall_probability is None:
        wall_probability = settings.maze_wall_probability
    if not 0.0 <= wall_probability <= 1.0:
        raise ValidationError(
            f"Wall probability must be between 0 and 1, got {wall_probability}",
            field="wall_probability",
        )

    rng = np.random.default_rng(seed)
    grid.reset()
    carved = carve_passages(grid, rng)

    walls: List[Cell] = []
    for row in range(grid.rows):
        for col in range(grid.cols):
            cell = (row, col)
            if cell in carved:
                continue
            if rng.random() < wall_probability:
                grid.set_terrain(cell, TerrainType.WALL)
                walls.append(cell)

    logger.debug(
        f"Generated maze on {grid.rows}x{grid.cols} grid: "
        f"{len(carved)} carved cells, {len(walls)} walls",
        extra={"seed": seed},
    )
    return walls
