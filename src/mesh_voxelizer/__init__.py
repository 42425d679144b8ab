"""
Mesh Voxelizer
==============

Converts triangulated, optionally textured 3D meshes into sparse sets of
colored unit voxels approximating the surface.

Two reconstruction strategies share one output contract:
- Surface sampling: seeded Monte-Carlo sampling of triangle interiors with
  per-cell color averaging
- Multi-view rasterization: six orthographic color + packed-depth captures
  unprojected into voxel space

Both feed the same centering step and an optional morphological smoothing
pass that removes isolated voxels and fills small gaps.

Example Usage:
    from mesh_voxelizer import MeshVoxelizer

    voxelizer = MeshVoxelizer(resolution=48, seed=7)
    voxelizer.load_mesh("model.glb")
    voxelizer.voxelize(method="surface", smoothing_iterations=1)
    voxelizer.export_json("model.json")
"""

__version__ = "1.0.0"

from .config import VoxelizerConfig
from .errors import (
    MeshVoxelizerError,
    InvalidInputError,
    EmptyMeshError,
    DegenerateMeshError,
    BackendUnavailableError,
)
from .mesh import Material, Mesh, Scene, BoundingBox
from .color import TextureSampler
from .voxelizer import Voxel, VoxelAccumulator, center_voxels
from .sampler import SurfaceSampler, voxelize_surface
from .multiview import MultiViewRasterizer, voxelize_multiview
from .rendering import RenderBackend, RenderTarget
from .software_renderer import SoftwareRenderer
from .smoothing import smooth_voxels
from .generator import MeshVoxelizer

__all__ = [
    "VoxelizerConfig",
    "MeshVoxelizerError",
    "InvalidInputError",
    "EmptyMeshError",
    "DegenerateMeshError",
    "BackendUnavailableError",
    "Material",
    "Mesh",
    "Scene",
    "BoundingBox",
    "TextureSampler",
    "Voxel",
    "VoxelAccumulator",
    "center_voxels",
    "SurfaceSampler",
    "voxelize_surface",
    "MultiViewRasterizer",
    "voxelize_multiview",
    "RenderBackend",
    "RenderTarget",
    "SoftwareRenderer",
    "smooth_voxels",
    "MeshVoxelizer",
]
