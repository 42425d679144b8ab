"""
Surface Sampler

Monte-Carlo voxelization of triangle surfaces:
1. Each triangle receives ``ceil(area / voxel_size**2) * K`` samples
2. Samples are uniform barycentric points (a + b > 1 is reflected back)
3. Every sample is keyed to a cell and its color is accumulated
4. Cells are averaged, centered and optionally smoothed

Randomness comes from an explicit numpy Generator, so a fixed seed
reproduces the same voxel set.
"""

import logging
from typing import List, Optional
import numpy as np

from .color import TextureSampler
from .config import DEFAULT_CONFIG, VoxelizerConfig, check_iterations, clamp_resolution
from .errors import EmptyMeshError
from .mesh import BoundingBox, Mesh, compute_voxel_size
from .smoothing import smooth_voxels
from .voxelizer import Voxel, VoxelAccumulator, center_voxels, quantize_points

logger = logging.getLogger(__name__)


def barycentric_samples(rng: np.random.Generator, count: int) -> np.ndarray:
    """
    Uniform barycentric weights inside a triangle.

    Args:
        rng: Random source
        count: Number of samples

    Returns:
        (count, 3) weights (a, b, c) with a + b + c == 1
    """
    ab = rng.random((count, 2))
    a = ab[:, 0]
    b = ab[:, 1]
    outside = a + b > 1.0
    a[outside] = 1.0 - a[outside]
    b[outside] = 1.0 - b[outside]
    # Rounding can push 1 - a - b a hair below zero
    c = np.clip(1.0 - a - b, 0.0, 1.0)
    return np.column_stack([a, b, c])


class SurfaceSampler:
    """
    Area-proportional random sampler feeding a VoxelAccumulator.

    Triangles are processed in batches to bound the size of the
    temporary sample arrays.
    """

    def __init__(
        self,
        sampling_density: int = 10,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        batch_triangles: int = 4096
    ):
        """
        Args:
            sampling_density: Oversampling multiplier K
            rng: Random source; created from ``seed`` when omitted
            seed: Seed for a new Generator
            batch_triangles: Triangles processed per vectorized batch
        """
        if sampling_density < 1:
            raise ValueError("sampling_density must be at least 1")
        self.sampling_density = sampling_density
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.batch_triangles = batch_triangles

    def sample_counts(self, mesh: Mesh, voxel_size: float) -> np.ndarray:
        """Samples per triangle; zero-area triangles get none."""
        areas = mesh.areas()
        return np.ceil(areas / (voxel_size * voxel_size)).astype(np.int64) * self.sampling_density

    def sample(
        self,
        mesh: Mesh,
        bbox: BoundingBox,
        voxel_size: float,
        accumulator: Optional[VoxelAccumulator] = None
    ) -> VoxelAccumulator:
        """
        Sample the mesh surface into an accumulator.

        Args:
            mesh: Mesh to sample
            bbox: Bounding box whose minimum corner anchors the grid
            voxel_size: Edge length of one cell
            accumulator: Accumulator to extend (a new one if None)

        Returns:
            The populated accumulator
        """
        accumulator = accumulator if accumulator is not None else VoxelAccumulator()
        color_sampler = TextureSampler.for_material(mesh.material)
        use_texture = mesh.has_uvs and color_sampler.has_texture
        counts = self.sample_counts(mesh, voxel_size)

        for start in range(0, mesh.triangle_count, self.batch_triangles):
            stop = min(start + self.batch_triangles, mesh.triangle_count)
            batch_counts = counts[start:stop]
            total = int(batch_counts.sum())
            if total == 0:
                continue

            tri_index = np.repeat(np.arange(start, stop), batch_counts)
            weights = barycentric_samples(self.rng, total)

            corners = mesh.triangles[tri_index]
            points = np.einsum("nk,nkd->nd", weights, corners)
            keys = quantize_points(points, bbox.min, voxel_size, bbox.size)

            if use_texture:
                uvs = np.einsum("nk,nkd->nd", weights, mesh.uvs[tri_index])
                colors = color_sampler.sample_batch(uvs)
            else:
                colors = color_sampler.fallback_batch(total)

            accumulator.add_samples(keys, colors)

        return accumulator


def voxelize_surface(
    mesh: Mesh,
    resolution: int = DEFAULT_CONFIG.resolution,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    sampling_density: Optional[int] = None,
    smoothing_iterations: int = 0,
    config: VoxelizerConfig = DEFAULT_CONFIG
) -> List[Voxel]:
    """
    Voxelize a mesh surface by stochastic triangle sampling.

    Args:
        mesh: Mesh to voxelize
        resolution: Voxels along the longest bounding-box axis
        seed: Seed for the random source (ignored when ``rng`` is given)
        rng: Explicit random source
        sampling_density: Oversampling multiplier K (config default if None)
        smoothing_iterations: Morphological smoothing passes
        config: Limits and smoothing thresholds

    Returns:
        Centered voxel list; empty for a mesh without triangles

    Raises:
        EmptyMeshError: If ``mesh`` is None
        DegenerateMeshError: If the mesh bounding box has zero size
    """
    if mesh is None:
        raise EmptyMeshError("No mesh available for voxelization")
    resolution = clamp_resolution(resolution, config)
    smoothing_iterations = check_iterations(smoothing_iterations)

    if mesh.is_empty:
        logger.warning("Mesh '%s' has no triangles; nothing to voxelize", mesh.name)
        return []

    bbox = mesh.bounding_box()
    voxel_size = compute_voxel_size(bbox, resolution)

    density = sampling_density if sampling_density is not None else config.sampling_density
    sampler = SurfaceSampler(density, rng=rng, seed=seed)

    logger.info("[Surface Voxelizer] Sampling %d triangles (voxel size %.6g)",
                mesh.triangle_count, voxel_size)
    accumulator = sampler.sample(mesh, bbox, voxel_size)

    logger.info("[Surface Voxelizer] Averaging %d samples over %d cells",
                accumulator.sample_count, len(accumulator))
    voxels = center_voxels(accumulator.finalize())

    if smoothing_iterations > 0:
        voxels = smooth_voxels(
            voxels,
            smoothing_iterations,
            keep_range=(config.keep_min_neighbors, config.keep_max_neighbors),
            fill_threshold=config.fill_min_neighbors
        )

    logger.info("[Surface Voxelizer] Generated %d surface voxels", len(voxels))
    return voxels
