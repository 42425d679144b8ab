"""
Multi-View Rasterizer

Reconstructs surface voxels from six orthographic captures (+-X, +-Y, +-Z)
instead of iterating triangles on the CPU:

1. Frame an orthographic camera around the scene bounds for each view
2. Render color, then render again with a depth-packing material
3. For each covered pixel (alpha > 0), unpack depth, unproject to a world
   point and quantize it to a voxel key
4. The first view to reach a cell sets its color; later views never
   overwrite it

Render targets and the depth material live only for one call and are
released on every exit path.
"""

import logging
from typing import List, Optional, Union
import numpy as np

from .config import DEFAULT_CONFIG, VoxelizerConfig, check_iterations, clamp_resolution
from .depth import unpack_depth, world_depth
from .errors import BackendUnavailableError, EmptyMeshError
from .mesh import BoundingBox, Mesh, Scene, compute_voxel_size
from .projection import VIEWS, OrthographicCamera, View, frame_camera
from .rendering import (
    DepthPackingMaterial,
    RenderBackend,
    cleared_background,
    substituted_material,
)
from .smoothing import smooth_voxels
from .voxelizer import Voxel, VoxelAccumulator, center_voxels, quantize_points

logger = logging.getLogger(__name__)


class MultiViewRasterizer:
    """
    Six-view orthographic voxelizer on top of a RenderBackend.
    """

    def __init__(
        self,
        backend: RenderBackend,
        resolution: int = DEFAULT_CONFIG.resolution,
        oversample: int = DEFAULT_CONFIG.render_oversample,
        near_ratio: float = 0.25,
        far_ratio: float = 2.0
    ):
        """
        Args:
            backend: Rendering backend with off-screen capture
            resolution: Voxels along the longest bounding-box axis
            oversample: Render target pixels per voxel
            near_ratio: Near plane as a fraction of the max dimension
            far_ratio: Far plane as a multiple of the max dimension
        """
        if backend is None:
            raise BackendUnavailableError("A render backend instance must be provided")
        if oversample < 1:
            raise ValueError("oversample must be at least 1")
        self.backend = backend
        self.resolution = resolution
        self.oversample = oversample
        self.near_ratio = near_ratio
        self.far_ratio = far_ratio

    @property
    def target_size(self) -> int:
        return self.resolution * self.oversample

    def capture(self, scene: Scene) -> VoxelAccumulator:
        """
        Render all six views and collect first-hit voxel colors.

        An empty scene is still rendered (around a unit box) and simply
        yields no covered pixels.

        Raises:
            DegenerateMeshError: If the scene has geometry with zero extent
        """
        bbox = scene.bounding_box()
        if bbox is None:
            logger.warning("[Renderer Voxelizer] Scene has no geometry")
            bbox = BoundingBox(np.full(3, -0.5), np.full(3, 0.5))
        voxel_size = compute_voxel_size(bbox, self.resolution)

        size = self.target_size
        backend = self.backend
        accumulator = VoxelAccumulator()

        color_target = backend.create_render_target(size, size)
        depth_target = None
        depth_material = DepthPackingMaterial()
        try:
            depth_target = backend.create_render_target(size, size)
            with cleared_background(scene):
                for view in VIEWS:
                    added = self._capture_view(
                        scene, view, bbox, voxel_size,
                        color_target, depth_target, depth_material, accumulator
                    )
                    logger.debug("[Renderer Voxelizer] View %s added %d voxels", view.name, added)
        finally:
            backend.dispose_render_target(color_target)
            if depth_target is not None:
                backend.dispose_render_target(depth_target)
            depth_material.dispose()

        return accumulator

    def _capture_view(
        self,
        scene: Scene,
        view: View,
        bbox: BoundingBox,
        voxel_size: float,
        color_target,
        depth_target,
        depth_material: DepthPackingMaterial,
        accumulator: VoxelAccumulator
    ) -> int:
        logger.info("[Renderer Voxelizer] Rendering view: %s", view.name)
        camera = frame_camera(view, bbox, self.near_ratio, self.far_ratio)
        backend = self.backend
        backend.set_camera(camera)

        backend.render(scene, color_target)
        color = backend.read_pixels(color_target)

        with substituted_material(scene, depth_material):
            backend.render(scene, depth_target)
            packed = backend.read_pixels(depth_target)

        points, colors = self.reconstruct(camera, color, packed)
        if len(points) == 0:
            return 0
        keys = quantize_points(points, bbox.min, voxel_size, bbox.size)
        return accumulator.add_first(keys, colors)

    @staticmethod
    def reconstruct(
        camera: OrthographicCamera,
        color: np.ndarray,
        packed_depth: np.ndarray
    ):
        """
        World points and colors for every covered pixel.

        Args:
            camera: Camera the buffers were rendered with
            color: (H, W, 4) uint8 color readback
            packed_depth: (H, W, 4) uint8 packed depth readback

        Returns:
            Tuple of (points (N, 3), colors (N, 3) in [0, 1]) in row-major
            pixel order
        """
        height, width = color.shape[:2]
        ys, xs = np.nonzero(color[:, :, 3])
        if len(ys) == 0:
            return np.empty((0, 3)), np.empty((0, 3))

        depth = unpack_depth(packed_depth[ys, xs])
        distance = world_depth(depth, camera.near, camera.far)
        x_offset, y_offset = camera.pixel_offsets(xs, ys, width, height)
        points = camera.unproject(x_offset, y_offset, distance)
        colors = color[ys, xs, :3].astype(np.float64) / 255.0
        return points, colors


def voxelize_multiview(
    scene: Union[Scene, Mesh],
    backend: Optional[RenderBackend],
    resolution: int = DEFAULT_CONFIG.resolution,
    smoothing_iterations: int = 0,
    config: VoxelizerConfig = DEFAULT_CONFIG
) -> List[Voxel]:
    """
    Voxelize a scene by six-view orthographic rendering.

    Args:
        scene: Scene (or a single Mesh) to capture
        backend: Rendering backend; required
        resolution: Voxels along the longest bounding-box axis
        smoothing_iterations: Morphological smoothing passes
        config: Oversampling and smoothing thresholds

    Returns:
        Centered voxel list; empty when no view covers any pixel

    Raises:
        BackendUnavailableError: If ``backend`` is None
        EmptyMeshError: If ``scene`` is None
        DegenerateMeshError: If the geometry has zero extent
    """
    if backend is None:
        raise BackendUnavailableError("A render backend instance must be provided")
    if scene is None:
        raise EmptyMeshError("No mesh available for voxelization")
    if isinstance(scene, Mesh):
        scene = Scene([scene])
    resolution = clamp_resolution(resolution, config)
    smoothing_iterations = check_iterations(smoothing_iterations)

    logger.info("[Renderer Voxelizer] Starting 6-view rendering...")
    rasterizer = MultiViewRasterizer(backend, resolution, config.render_oversample)
    accumulator = rasterizer.capture(scene)

    voxels = accumulator.finalize()
    if not voxels:
        logger.warning("[Renderer Voxelizer] No voxels were generated.")
        return []

    voxels = center_voxels(voxels)
    if smoothing_iterations > 0:
        voxels = smooth_voxels(
            voxels,
            smoothing_iterations,
            keep_range=(config.keep_min_neighbors, config.keep_max_neighbors),
            fill_threshold=config.fill_min_neighbors
        )

    logger.info("[Renderer Voxelizer] Voxelization complete. Generated %d surface voxels.",
                len(voxels))
    return voxels
