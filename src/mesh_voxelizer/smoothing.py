"""
Morphological Smoothing

Repairs sampling noise on a voxel shell using 6-connected neighbor counts:
- Keep rule: a voxel survives if it has between 2 and 5 neighbors
- Fill rule: an empty neighbor cell with 3 or more populated neighbors is
  filled, inheriting the color of the voxel that proposed it

Neighbor lookups work on the sparse key set: keys are packed into int64
scalars and matched with a binary search against the sorted packed keys,
so memory grows with the voxel count rather than the grid extent.
"""

import logging
from typing import List, Sequence, Tuple
import numpy as np

from .config import check_iterations
from .errors import InvalidInputError
from .voxelizer import Voxel, voxels_to_arrays

logger = logging.getLogger(__name__)


NEIGHBOR_OFFSETS = np.array([
    [1, 0, 0], [-1, 0, 0],
    [0, 1, 0], [0, -1, 0],
    [0, 0, 1], [0, 0, -1],
], dtype=np.int64)

# Packed keys must stay below this to avoid int64 overflow
_MAX_PACKED = 2 ** 62


class KeyPacker:
    """
    Maps integer keys inside a box to unique int64 scalars.

    The box is the key bounds grown by one cell on every side, so every
    6-neighbor of a key packs without collisions.
    """

    def __init__(self, coords: np.ndarray):
        self.origin = coords.min(axis=0) - 1
        dims = coords.max(axis=0) - self.origin + 2
        self.dims = [int(d) for d in dims]
        if self.dims[0] * self.dims[1] * self.dims[2] >= _MAX_PACKED:
            raise InvalidInputError(
                f"Voxel coordinates span too large a range to smooth: {tuple(self.dims)}"
            )

    def pack(self, coords: np.ndarray) -> np.ndarray:
        local = coords - self.origin
        return (local[..., 0] * self.dims[1] + local[..., 1]) * self.dims[2] + local[..., 2]


def neighbor_counts(coords: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    6-neighbor counts for voxels and for the cells around them.

    Args:
        coords: (N, 3) unique integer voxel coordinates, N > 0

    Returns:
        Tuple of (own, occupied, counts) where:
        - own: (N,) populated neighbors of each voxel
        - occupied: (N, 6) whether each neighbor cell holds a voxel
        - counts: (N, 6) populated neighbors of each neighbor cell
    """
    packer = KeyPacker(coords)
    packed = np.sort(packer.pack(coords))

    candidates = packer.pack(coords[:, None, :] + NEIGHBOR_OFFSETS[None, :, :])
    index = np.minimum(np.searchsorted(packed, candidates), len(packed) - 1)
    occupied = packed[index] == candidates
    own = occupied.sum(axis=1)

    # A cell's neighbor count is how many voxels list it as a candidate
    _, inverse, multiplicity = np.unique(candidates, return_inverse=True, return_counts=True)
    counts = multiplicity[np.asarray(inverse).reshape(-1)].reshape(candidates.shape)
    return own, occupied, counts


def _smooth_once(
    voxels: List[Voxel],
    keep_range: Tuple[int, int],
    fill_threshold: int
) -> List[Voxel]:
    coords, _ = voxels_to_arrays(voxels)
    own, occupied, counts = neighbor_counts(coords)

    keep = (own >= keep_range[0]) & (own <= keep_range[1])
    fill = ~occupied & (counts >= fill_threshold)

    # Slot 0 is the voxel itself, slots 1-6 its fill proposals; flattening
    # in C order keeps proposals in per-voxel order for the dedup below.
    keys = np.concatenate([coords[:, None, :], coords[:, None, :] + NEIGHBOR_OFFSETS], axis=1)
    valid = np.concatenate([keep[:, None], fill], axis=1)
    source = np.repeat(np.arange(len(voxels)), 7).reshape(-1, 7)

    keys = keys[valid]
    source = source[valid]
    if len(keys) == 0:
        return []

    _, first = np.unique(keys, axis=0, return_index=True)
    first.sort()

    result = []
    for index in first:
        x, y, z = keys[index].tolist()
        result.append(Voxel(x, y, z, voxels[source[index]].color))
    return result


def smooth_voxels(
    voxels: Sequence[Voxel],
    iterations: int,
    keep_range: Tuple[int, int] = (2, 5),
    fill_threshold: int = 3
) -> List[Voxel]:
    """
    Remove isolated voxels and fill small gaps.

    Runs exactly ``iterations`` passes; each pass reads a snapshot of the
    current set and produces a new deduplicated list.

    Args:
        voxels: Input voxels
        iterations: Number of passes (0 returns the input unchanged)
        keep_range: Inclusive neighbor-count range for survival
        fill_threshold: Minimum neighbors for filling an empty cell

    Returns:
        Smoothed voxel list
    """
    iterations = check_iterations(iterations)
    current = list(voxels)
    if iterations == 0 or not current:
        return current

    logger.info("Applying %d smoothing iterations to %d voxels", iterations, len(current))
    for i in range(iterations):
        current = _smooth_once(current, keep_range, fill_threshold)
        logger.debug("Smoothing pass %d: %d voxels", i + 1, len(current))
        if not current:
            break

    return current
