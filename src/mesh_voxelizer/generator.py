"""
Main MeshVoxelizer Class

This is the primary interface for the mesh-to-voxel pipeline.
It orchestrates:
1. Mesh loading (first mesh, or the whole scene for rendering)
2. Voxelization by surface sampling or six-view rasterization
3. Centering and optional morphological smoothing
4. Export to JSON and MagicaVoxel .vox

Example Usage:
    voxelizer = MeshVoxelizer(resolution=48, seed=7)
    voxelizer.load_mesh("model.glb")
    voxelizer.voxelize(method="surface", smoothing_iterations=1)
    voxelizer.export_vox("model.vox")
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from .config import DEFAULT_CONFIG, VoxelizerConfig, check_iterations, clamp_resolution
from .exporters import JSONExporter, VoxExporter
from .ingestion import MeshLoader, load_texture
from .mesh import Material, Mesh, Scene
from .multiview import voxelize_multiview
from .rendering import RenderBackend
from .sampler import voxelize_surface
from .smoothing import smooth_voxels
from .software_renderer import SoftwareRenderer
from .voxelizer import Voxel, voxel_bounds

logger = logging.getLogger(__name__)


METHODS = ("surface", "multiview")


class MeshVoxelizer:
    """
    High-level interface for mesh voxelization.

    Attributes:
        resolution: Voxels along the longest bounding-box axis
        sampling_density: Surface oversampling multiplier
        seed: Seed for surface sampling
        config: Limits and thresholds
    """

    def __init__(
        self,
        resolution: int = DEFAULT_CONFIG.resolution,
        sampling_density: Optional[int] = None,
        seed: Optional[int] = None,
        config: VoxelizerConfig = DEFAULT_CONFIG
    ):
        self.config = config
        self.resolution = clamp_resolution(resolution, config)
        if sampling_density is None:
            sampling_density = config.sampling_density
        self.sampling_density = sampling_density
        self.seed = seed

        self._loader = MeshLoader(config)
        self._scene: Optional[Scene] = None
        self._voxels: Optional[List[Voxel]] = None

    def load_mesh(self, path: Union[str, Path]) -> "MeshVoxelizer":
        """
        Load the first mesh of an asset.

        Args:
            path: .glb / .gltf / .obj file

        Returns:
            self for method chaining
        """
        return self.set_mesh(self._loader.load(path))

    def load_scene(self, path: Union[str, Path]) -> "MeshVoxelizer":
        """Load every mesh of an asset (used as-is by multiview)."""
        self._scene = self._loader.load_scene(path)
        self._voxels = None
        return self

    def set_mesh(self, mesh: Union[Mesh, Scene]) -> "MeshVoxelizer":
        """Use an in-memory Mesh or Scene."""
        self._scene = mesh if isinstance(mesh, Scene) else Scene([mesh])
        self._voxels = None
        return self

    def set_texture(self, path: Union[str, Path]) -> "MeshVoxelizer":
        """Replace the texture of every loaded mesh with an image file."""
        if self._scene is None:
            raise RuntimeError("No mesh loaded. Call load_mesh() first.")
        texture = load_texture(path)
        for mesh in self._scene.meshes:
            mesh.material = Material(mesh.material.color, texture, mesh.material.name)
        return self

    @property
    def mesh(self) -> Optional[Mesh]:
        """The first loaded mesh (the one surface sampling uses)."""
        if self._scene is None or len(self._scene) == 0:
            return None
        return self._scene.meshes[0]

    @property
    def scene(self) -> Optional[Scene]:
        return self._scene

    def voxelize(
        self,
        method: str = "surface",
        smoothing_iterations: Optional[int] = None,
        backend: Optional[RenderBackend] = None
    ) -> "MeshVoxelizer":
        """
        Convert the loaded mesh to voxels.

        Args:
            method: "surface" (stochastic sampling of the first mesh) or
                    "multiview" (six-view rendering of the whole scene)
            smoothing_iterations: Smoothing passes (config default if None)
            backend: Render backend for multiview; SoftwareRenderer if None

        Returns:
            self for method chaining
        """
        if self._scene is None:
            raise RuntimeError("No mesh loaded. Call load_mesh() first.")
        if method not in METHODS:
            raise ValueError(f"Unknown method '{method}'. Choose from {METHODS}")
        if smoothing_iterations is None:
            smoothing_iterations = self.config.smoothing_iterations

        logger.info("Voxelizing %d mesh(es) with method '%s' at resolution %d",
                    len(self._scene), method, self.resolution)

        if method == "surface":
            self._voxels = voxelize_surface(
                self.mesh,
                self.resolution,
                seed=self.seed,
                sampling_density=self.sampling_density,
                smoothing_iterations=smoothing_iterations,
                config=self.config,
            )
        else:
            self._voxels = voxelize_multiview(
                self._scene,
                backend if backend is not None else SoftwareRenderer(),
                self.resolution,
                smoothing_iterations=smoothing_iterations,
                config=self.config,
            )

        return self

    def smooth(self, iterations: int = 1) -> "MeshVoxelizer":
        """Run additional smoothing passes on the current voxels."""
        if self._voxels is None:
            raise RuntimeError("No voxels. Call voxelize() first.")
        check_iterations(iterations)
        self._voxels = smooth_voxels(
            self._voxels,
            iterations,
            keep_range=(self.config.keep_min_neighbors, self.config.keep_max_neighbors),
            fill_threshold=self.config.fill_min_neighbors,
        )
        return self

    def export_json(self, output_path: Union[str, Path], indent: Optional[int] = None):
        """Export the voxel list as JSON."""
        if self._voxels is None:
            raise RuntimeError("No voxels. Call voxelize() first.")
        JSONExporter(indent=indent).export(self._voxels, output_path, self.resolution)
        logger.info("Wrote %d voxels to %s", len(self._voxels), output_path)

    def export_vox(self, output_path: Union[str, Path]):
        """Export to MagicaVoxel .vox format."""
        if self._voxels is None:
            raise RuntimeError("No voxels. Call voxelize() first.")
        VoxExporter().export(self._voxels, output_path)
        logger.info("Wrote %d voxels to %s", len(self._voxels), output_path)

    def export_all(self, base_path: Union[str, Path], formats: Optional[list] = None):
        """
        Export to multiple formats at once.

        Args:
            base_path: Base file path (without extension)
            formats: List of formats to export (default: json and vox)
        """
        base_path = Path(base_path)
        formats = formats or ["json", "vox"]
        outputs = []

        if "json" in formats:
            outputs.append(base_path.with_suffix(".json"))
            self.export_json(outputs[-1])

        if "vox" in formats:
            outputs.append(base_path.with_suffix(".vox"))
            self.export_vox(outputs[-1])

        return outputs

    @property
    def voxels(self) -> Optional[List[Voxel]]:
        return self._voxels

    @property
    def voxel_count(self) -> int:
        if self._voxels is None:
            return 0
        return len(self._voxels)

    def preview(self) -> dict:
        """
        Get a preview of the current state.

        Returns:
            Dictionary with current state information
        """
        info = {
            "mesh_loaded": self._scene is not None,
            "voxelized": self._voxels is not None,
            "resolution": self.resolution,
        }

        if self._scene is not None:
            info["mesh_count"] = len(self._scene)
            info["triangle_count"] = self._scene.triangle_count
            info["textured"] = any(
                getattr(m.material, "has_texture", False) for m in self._scene.meshes
            )

        if self._voxels is not None:
            info["voxel_count"] = len(self._voxels)
            bounds = voxel_bounds(self._voxels)
            if bounds is not None:
                lo, hi = bounds
                info["grid_size"] = tuple(int(s) for s in (hi - lo + 1))
                info["unique_colors"] = len({v.color for v in self._voxels})

        return info
