"""
Edge-list builders for simulated topologies.

Node ids are 0..n-1. Every builder returns a sorted list of (a, b) pairs
with a < b.
"""

import math
import random
from typing import Dict, List, Optional, Tuple

Edge = Tuple[int, int]


def _normalize(edges) -> List[Edge]:
    return sorted({(min(a, b), max(a, b)) for a, b in edges if a != b})


def line(n: int) -> List[Edge]:
    """0 - 1 - 2 - ... - n-1"""
    return _normalize((i, i + 1) for i in range(n - 1))


def ring(n: int) -> List[Edge]:
    if n < 3:
        return line(n)
    return _normalize([(i, (i + 1) % n) for i in range(n)])


def grid(rows: int, cols: int) -> List[Edge]:
    """4-neighborhood grid; node id is row * cols + col."""
    edges = []
    for r in range(rows):
        for c in range(cols):
            node = r * cols + c
            if c + 1 < cols:
                edges.append((node, node + 1))
            if r + 1 < rows:
                edges.append((node, node + cols))
    return _normalize(edges)


def random_positions(n: int, width: float = 1.0, height: float = 1.0,
                     seed: Optional[int] = None) -> Dict[int, Tuple[float, float]]:
    rng = random.Random(seed)
    return {i: (rng.uniform(0, width), rng.uniform(0, height)) for i in range(n)}


def random_geometric(n: int, radius: float, seed: Optional[int] = None,
                     width: float = 1.0, height: float = 1.0) -> List[Edge]:
    """
    Unit-disk graph over uniformly placed nodes.

    Two nodes are linked when their distance is at most radius.
    Deterministic for a given seed.
    """
    positions = random_positions(n, width, height, seed)
    edges = []
    for a in range(n):
        ax, ay = positions[a]
        for b in range(a + 1, n):
            bx, by = positions[b]
            if math.hypot(ax - bx, ay - by) <= radius:
                edges.append((a, b))
    return _normalize(edges)


def build(name: str, size: int, radius: float = 0.3, seed: Optional[int] = None) -> List[Edge]:
    """
    Topology by name, as used by the command line runner.

    For 'grid', size is the side length (size x size nodes).
    """
    if name == 'line':
        return line(size)
    if name == 'ring':
        return ring(size)
    if name == 'grid':
        return grid(size, size)
    if name == 'random':
        return random_geometric(size, radius, seed)
    raise ValueError(f"Unknown topology: {name}")
