"""
Binary min-heap keyed by a caller-supplied score.

There is no decrease-key. Searches push a fresh entry whenever a node's
score improves and discard stale entries when they are popped.
"""

import heapq
import itertools
import math
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class MinHeap(Generic[T]):
    """
    Min-heap ordered by ``score(item)``.

    Items with equal scores come out in insertion order. Popping or peeking
    an empty heap returns ``None`` instead of raising.
    """

    def __init__(self, score: Callable[[T], float]):
        """
        Initialize the heap.

        Args:
            score: Function mapping an item to its priority (lower pops first)
        """
        self._score = score
        self._heap: List[Tuple[float, int, T]] = []
        self._counter = itertools.count()

    def push(self, item: T) -> None:
        """Add an item, O(log n)."""
        heapq.heappush(self._heap, (self._score(item), next(self._counter), item))

    def pop(self) -> Optional[T]:
        """Remove and return the lowest-scored item, or None when empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[2]

    def peek(self) -> Optional[T]:
        """Return the lowest-scored item without removing it, or None."""
        if not self._heap:
            return None
        return self._heap[0][2]

    def peek_score(self) -> float:
        """Score of the lowest item, ``inf`` when the heap is empty."""
        if not self._heap:
            return math.inf
        return self._heap[0][0]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
