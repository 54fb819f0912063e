import math

import numpy as np
from scipy.spatial import cKDTree

NEIGHBOURS = [(dx, dz) for dx in (-1, 0, 1) for dz in (-1, 0, 1) if (dx, dz) != (0, 0)]


def is_active(index, coords, threshold):
    ticks = index.get(coords)
    return ticks is not None and ticks >= threshold


def compute_boundary(index, threshold):
    """Active chunks with at least one inactive or untracked neighbour."""
    boundary = set()
    for (x, z), ticks in index.items():
        if ticks < threshold:
            continue
        active = sum(1 for dx, dz in NEIGHBOURS if is_active(index, (x + dx, z + dz), threshold))
        if active < len(NEIGHBOURS):
            boundary.add((x, z))
    return frozenset(boundary)


class SpatialBufferResolver:
    """Nearest-boundary-point oracle over a static KD-tree."""

    def __init__(self, boundary, leafsize=256):
        self.points = np.array(sorted(boundary), dtype=np.int64).reshape(-1, 2)
        self.tree = cKDTree(self.points, leafsize=leafsize) if len(self.points) else None

    def nearest(self, coords):
        """
        Squared grid distance from each coordinate to its nearest boundary
        point, as exact integers. None when there is no boundary at all.
        """
        if self.tree is None:
            return None
        query = np.asarray(coords, dtype=np.int64).reshape(-1, 2)
        if not len(query):
            return np.zeros(0, dtype=np.int64)
        _, idx = self.tree.query(query, k=1)
        delta = self.points[idx] - query
        return (delta * delta).sum(axis=1)

    def keep_set(self, index, threshold, buffer_radius):
        if not math.isfinite(buffer_radius) or buffer_radius < 0:
            raise ValueError(f"buffer radius must be a finite number >= 0: {buffer_radius}")
        keep = {coords for coords, ticks in index.items() if ticks >= threshold}
        inactive = [coords for coords, ticks in index.items() if ticks < threshold]
        distances = self.nearest(inactive)
        if distances is not None:
            limit = buffer_radius ** 2
            keep.update(coords for coords, d in zip(inactive, distances) if d <= limit)
        return frozenset(keep)


def keep_set(index, threshold, buffer_radius):
    """Every active chunk plus the inactive ones within buffer_radius of the boundary."""
    resolver = SpatialBufferResolver(compute_boundary(index, threshold))
    return resolver.keep_set(index, threshold, buffer_radius)
