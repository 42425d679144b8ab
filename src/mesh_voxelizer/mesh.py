"""
Mesh Data Model

Triangle soup representation consumed by both voxelization strategies:
- Material: optional RGB texture plus a constant fallback color
- Mesh: world-space triangles, optional per-corner UVs, one material
- Scene: the meshes handed to a render backend
- BoundingBox: axis-aligned extent, fixed for a voxelization run

Triangles are stored unindexed as an (N, 3, 3) array so that sampling and
rasterization can work on whole-mesh numpy slices.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple
import numpy as np

from .color import hex_to_rgb
from .config import DEFAULT_COLOR
from .errors import DegenerateMeshError, InvalidInputError


@dataclass
class Material:
    """
    Surface appearance of a mesh.

    Attributes:
        color: Fallback RGB color in [0, 1], used without texture or UVs
        texture: Optional (H, W, 3) or (H, W, 4) uint8 image
        name: Material name (informational)
    """

    color: Tuple[float, float, float] = field(
        default_factory=lambda: hex_to_rgb(DEFAULT_COLOR)
    )
    texture: Optional[np.ndarray] = None
    name: str = ""

    def __post_init__(self):
        if self.texture is not None:
            texture = np.asarray(self.texture)
            if texture.ndim != 3 or texture.shape[2] not in (3, 4):
                raise InvalidInputError(
                    f"Texture must have shape (H, W, 3|4), got {texture.shape}"
                )
            if texture.shape[0] == 0 or texture.shape[1] == 0:
                raise InvalidInputError("Texture must not be empty")
            self.texture = np.ascontiguousarray(texture[:, :, :3], dtype=np.uint8)
        self.color = tuple(float(c) for c in self.color[:3])

    @property
    def has_texture(self) -> bool:
        return self.texture is not None


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box."""

    min: np.ndarray
    max: np.ndarray

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            raise InvalidInputError("Cannot bound an empty point set")
        return cls(points.min(axis=0), points.max(axis=0))

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    @property
    def max_dimension(self) -> float:
        return float(np.max(self.size))

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(np.minimum(self.min, other.min), np.maximum(self.max, other.max))


def compute_voxel_size(bbox: BoundingBox, resolution: int) -> float:
    """
    Edge length of one voxel: the longest box dimension over the resolution.

    Raises:
        DegenerateMeshError: If the bounding box has zero extent
    """
    max_dim = bbox.max_dimension
    if not np.isfinite(max_dim) or max_dim <= 0.0:
        raise DegenerateMeshError(
            f"Mesh bounding box has zero size (max dimension {max_dim})"
        )
    return max_dim / resolution


@dataclass
class Mesh:
    """
    Triangulated surface in world space.

    Attributes:
        triangles: (N, 3, 3) float64 vertex positions, one row per corner
        uvs: Optional (N, 3, 2) texture coordinates matching ``triangles``
        material: Material shared by every triangle
        name: Mesh name (informational)
    """

    triangles: np.ndarray
    uvs: Optional[np.ndarray] = None
    material: Material = field(default_factory=Material)
    name: str = "mesh"

    def __post_init__(self):
        triangles = np.asarray(self.triangles, dtype=np.float64)
        if triangles.size == 0:
            triangles = triangles.reshape(0, 3, 3)
        if triangles.ndim != 3 or triangles.shape[1:] != (3, 3):
            raise InvalidInputError(
                f"Triangles must have shape (N, 3, 3), got {triangles.shape}"
            )
        self.triangles = triangles

        if self.uvs is not None:
            uvs = np.asarray(self.uvs, dtype=np.float64)
            if uvs.shape != (len(triangles), 3, 2):
                raise InvalidInputError(
                    f"UVs must have shape ({len(triangles)}, 3, 2), got {uvs.shape}"
                )
            self.uvs = uvs

    @classmethod
    def from_arrays(
        cls,
        vertices: np.ndarray,
        faces: np.ndarray,
        uv: Optional[np.ndarray] = None,
        material: Optional[Material] = None,
        name: str = "mesh"
    ) -> "Mesh":
        """
        Build a mesh from indexed geometry.

        Args:
            vertices: (V, 3) vertex positions
            faces: (F, 3) vertex indices
            uv: Optional (V, 2) per-vertex texture coordinates
            material: Material for the whole mesh
            name: Mesh name

        Returns:
            Mesh with F unindexed triangles
        """
        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        if len(faces) and (faces.min() < 0 or faces.max() >= len(vertices)):
            raise InvalidInputError("Face indices out of range")

        triangles = vertices[faces]
        uvs = None
        if uv is not None:
            uv = np.asarray(uv, dtype=np.float64).reshape(-1, 2)
            if len(uv) != len(vertices):
                raise InvalidInputError("UV count must match vertex count")
            uvs = uv[faces]

        return cls(triangles, uvs, material or Material(), name)

    def transformed(self, matrix: np.ndarray) -> "Mesh":
        """Return a copy with a 4x4 affine transform applied to every vertex."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise InvalidInputError("Transform must be a 4x4 matrix")
        flat = self.triangles.reshape(-1, 3)
        moved = flat @ matrix[:3, :3].T + matrix[:3, 3]
        return Mesh(moved.reshape(-1, 3, 3), self.uvs, self.material, self.name)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return len(self.triangles) == 0

    @property
    def has_uvs(self) -> bool:
        return self.uvs is not None

    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(self.triangles)

    def areas(self) -> np.ndarray:
        """World-space area of every triangle."""
        a = self.triangles[:, 0]
        ab = a - self.triangles[:, 1]
        ac = a - self.triangles[:, 2]
        return np.linalg.norm(np.cross(ab, ac), axis=1) / 2.0


class Scene:
    """
    A set of meshes rendered together by a backend.

    ``background`` mirrors the clear color of an interactive scene; the
    multi-view rasterizer clears it while capturing.
    """

    def __init__(self, meshes: Optional[List[Mesh]] = None, background=None):
        self.meshes: List[Mesh] = list(meshes or [])
        self.background = background

    def add(self, mesh: Mesh) -> "Scene":
        self.meshes.append(mesh)
        return self

    def __iter__(self) -> Iterator[Mesh]:
        return iter(self.meshes)

    def __len__(self) -> int:
        return len(self.meshes)

    @property
    def triangle_count(self) -> int:
        return sum(mesh.triangle_count for mesh in self.meshes)

    def bounding_box(self) -> Optional[BoundingBox]:
        """Union of all non-empty mesh bounds, or None for an empty scene."""
        bbox = None
        for mesh in self.meshes:
            if mesh.is_empty:
                continue
            box = mesh.bounding_box()
            bbox = box if bbox is None else bbox.union(box)
        return bbox
