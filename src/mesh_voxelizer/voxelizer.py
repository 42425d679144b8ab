"""
Voxel Data Structures

This module provides:
- Voxel: immutable output record (x, y, z, color)
- VoxelAccumulator: sparse map from integer cell keys to color sums
- quantize_points: world points -> integer cell keys
- center_voxels: re-base a voxel set around its bounding-box midpoint

The accumulator keeps a running (r, g, b, count) per cell, so the average
does not depend on the order in which samples arrive.
"""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
import numpy as np

logger = logging.getLogger(__name__)


Key = Tuple[int, int, int]


class Voxel(NamedTuple):
    """A colored unit cell. Color channels are floats in [0, 1]."""
    x: int
    y: int
    z: int
    color: Tuple[float, float, float]

    @property
    def key(self) -> Key:
        return (self.x, self.y, self.z)


SNAP_TOLERANCE = 1e-6


def quantize_points(
    points: np.ndarray,
    origin: np.ndarray,
    voxel_size: float,
    extent: Optional[np.ndarray] = None,
    tolerance: float = SNAP_TOLERANCE
) -> np.ndarray:
    """
    Integer cell keys for world-space points.

    Cell coordinates within ``tolerance`` of an integer are snapped to it
    before flooring, so points lying on a cell boundary (box faces in
    particular) land in the same layer regardless of rounding noise.

    Args:
        points: (N, 3) positions
        origin: Bounding-box minimum corner
        voxel_size: Edge length of one cell
        extent: Bounding-box size; keys are clamped to
                ``[0, floor(extent / voxel_size)]`` when given
        tolerance: Snap distance in cell units

    Returns:
        (N, 3) int64 keys, ``floor((point - origin) / voxel_size)``
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    cells = (points - origin) / voxel_size
    nearest = np.round(cells)
    cells = np.where(np.abs(cells - nearest) <= tolerance, nearest, cells)
    keys = np.floor(cells).astype(np.int64)

    if extent is not None:
        upper = np.floor(np.asarray(extent, dtype=np.float64) / voxel_size + tolerance)
        keys = np.clip(keys, 0, upper.astype(np.int64))
    return keys


class VoxelAccumulator:
    """
    Sparse voxel grid that collects color samples per cell.

    Two insertion policies are supported:
    - ``add_samples``: every sample contributes to the cell average
    - ``add_first``: the first color written to a cell wins
    """

    def __init__(self):
        self._cells: Dict[Key, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key) -> bool:
        return tuple(key) in self._cells

    @property
    def sample_count(self) -> int:
        return int(sum(cell[3] for cell in self._cells.values()))

    def add(self, key: Key, color) -> None:
        """Append one color sample to a cell."""
        cell = self._cells.get(key)
        if cell is None:
            cell = np.zeros(4, dtype=np.float64)
            self._cells[key] = cell
        cell[:3] += color[:3]
        cell[3] += 1

    def add_samples(self, keys: np.ndarray, colors: np.ndarray) -> None:
        """
        Append many samples at once.

        Samples sharing a key are summed with numpy before touching the
        dictionary, so the Python loop runs once per distinct cell.

        Args:
            keys: (N, 3) integer cell keys
            colors: (N, 3) float colors
        """
        keys = np.asarray(keys, dtype=np.int64).reshape(-1, 3)
        colors = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        if len(keys) != len(colors):
            raise ValueError("keys and colors must have the same length")
        if len(keys) == 0:
            return

        unique, inverse = np.unique(keys, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)
        sums = np.zeros((len(unique), 3), dtype=np.float64)
        np.add.at(sums, inverse, colors)
        counts = np.bincount(inverse, minlength=len(unique))

        for (x, y, z), color_sum, count in zip(unique.tolist(), sums, counts):
            key = (x, y, z)
            cell = self._cells.get(key)
            if cell is None:
                cell = np.zeros(4, dtype=np.float64)
                self._cells[key] = cell
            cell[:3] += color_sum
            cell[3] += count

    def add_first(self, keys: np.ndarray, colors: np.ndarray) -> int:
        """
        Store colors only for cells that are still empty.

        Within the batch the earliest sample for a key wins.

        Returns:
            Number of newly populated cells
        """
        keys = np.asarray(keys, dtype=np.int64).reshape(-1, 3)
        colors = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        if len(keys) == 0:
            return 0

        # np.unique returns the first occurrence index for each key
        unique, first = np.unique(keys, axis=0, return_index=True)
        added = 0
        for (x, y, z), index in zip(unique.tolist(), first):
            key = (x, y, z)
            if key in self._cells:
                continue
            cell = np.zeros(4, dtype=np.float64)
            cell[:3] = colors[index]
            cell[3] = 1
            self._cells[key] = cell
            added += 1
        return added

    def finalize(self) -> List[Voxel]:
        """
        Average every cell into a Voxel.

        Cells without samples are skipped. Output order is unspecified.
        """
        voxels = []
        for (x, y, z), cell in self._cells.items():
            count = cell[3]
            if count <= 0:
                continue
            r, g, b = np.clip(cell[:3] / count, 0.0, 1.0)
            voxels.append(Voxel(x, y, z, (float(r), float(g), float(b))))
        logger.debug("Finalized %d voxels from %d cells", len(voxels), len(self._cells))
        return voxels


def voxel_bounds(voxels: Iterable[Voxel]) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Componentwise (min, max) of voxel coordinates, or None when empty."""
    coords = np.array([voxel.key for voxel in voxels], dtype=np.int64)
    if len(coords) == 0:
        return None
    return coords.min(axis=0), coords.max(axis=0)


def grid_center(voxels: Iterable[Voxel]) -> Optional[Key]:
    """
    Integer midpoint ``floor(min + (max - min) / 2)`` of a voxel set.

    For even widths this rounds toward the minimum corner rather than
    returning a symmetric center.
    """
    bounds = voxel_bounds(voxels)
    if bounds is None:
        return None
    lo, hi = bounds
    center = np.floor(lo + (hi - lo) / 2.0).astype(np.int64)
    return (int(center[0]), int(center[1]), int(center[2]))


def center_voxels(voxels: List[Voxel]) -> List[Voxel]:
    """
    Shift voxel coordinates so the set is centered near the origin.

    Colors are untouched. An empty list is returned unchanged.
    """
    voxels = list(voxels)
    center = grid_center(voxels)
    if center is None:
        return voxels
    cx, cy, cz = center
    return [Voxel(v.x - cx, v.y - cy, v.z - cz, v.color) for v in voxels]


def voxels_to_arrays(voxels: List[Voxel]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert to sparse array representation.

    Returns:
        Tuple of (coordinates, colors) where:
        - coordinates: Array of shape (N, 3) int64
        - colors: Array of shape (N, 3) float64
    """
    if not voxels:
        return np.empty((0, 3), dtype=np.int64), np.empty((0, 3), dtype=np.float64)
    coords = np.array([v.key for v in voxels], dtype=np.int64)
    colors = np.array([v.color for v in voxels], dtype=np.float64)
    return coords, colors
