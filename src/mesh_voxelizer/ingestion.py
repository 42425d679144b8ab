"""
Mesh Ingestion

This module handles:
- Validating mesh files (existence, extension, size ceiling)
- Loading .glb / .gltf / .obj assets with trimesh
- Baking scene-graph transforms into world-space triangles
- Extracting UVs, the base color texture (via Pillow) and a fallback color

Only the loading side lives here; the voxelizers consume ``Mesh`` and
``Scene`` objects and never touch files.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union
import numpy as np
from PIL import Image
import trimesh

from .color import parse_color
from .config import DEFAULT_CONFIG, VoxelizerConfig
from .errors import EmptyMeshError, InvalidInputError
from .mesh import Material, Mesh, Scene

logger = logging.getLogger(__name__)


def validate_mesh_file(
    path: Union[str, Path],
    config: VoxelizerConfig = DEFAULT_CONFIG
) -> Path:
    """
    Check that a mesh file can be handed to the loader.

    Args:
        path: Mesh file path
        config: Provides the extension list and size ceiling

    Returns:
        The path as a Path

    Raises:
        InvalidInputError: Missing, unsupported, empty or oversized file
    """
    if path is None or str(path) == "":
        raise InvalidInputError("No file provided")
    path = Path(path)
    if not path.is_file():
        raise InvalidInputError(f"Mesh file not found: {path}")

    if path.suffix.lower() not in config.supported_extensions:
        supported = ", ".join(config.supported_extensions)
        raise InvalidInputError(
            f"Invalid file format '{path.suffix}'. Supported: {supported}"
        )

    size = path.stat().st_size
    if size == 0:
        raise InvalidInputError(f"Empty file: {path}")
    if size > config.max_file_size:
        limit_mb = config.max_file_size / (1024 * 1024)
        raise InvalidInputError(f"File too large. Maximum size: {limit_mb:g}MB")

    return path


def load_texture(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as an (H, W, 3) uint8 texture.

    Args:
        path: Image path (any format Pillow reads)
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Texture not found: {path}")
    img = Image.open(path)
    if img.mode != "RGB":
        img = img.convert("RGB")
    return np.array(img, dtype=np.uint8)


def _image_to_array(image) -> Optional[np.ndarray]:
    if image is None:
        return None
    if isinstance(image, Image.Image):
        if image.mode != "RGB":
            image = image.convert("RGB")
        return np.array(image, dtype=np.uint8)

    array = np.asarray(image)
    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    if array.ndim != 3 or array.shape[2] < 3:
        return None
    return np.ascontiguousarray(array[:, :, :3], dtype=np.uint8)


def extract_material(geometry: trimesh.Trimesh, default_color: int) -> Material:
    """
    Build a Material from a trimesh visual.

    Texture: ``baseColorTexture`` (PBR) or ``image`` (simple material).
    Fallback color: ``baseColorFactor`` / ``main_color``, else the default.
    """
    visual = geometry.visual
    material = getattr(visual, "material", None)

    texture = None
    color = None
    name = ""
    if material is not None:
        name = getattr(material, "name", "") or ""
        texture = _image_to_array(getattr(material, "baseColorTexture", None))
        if texture is None:
            texture = _image_to_array(getattr(material, "image", None))

        factor = getattr(material, "baseColorFactor", None)
        if factor is None:
            factor = getattr(material, "main_color", None)
        if factor is not None:
            color = parse_color(factor)
    elif getattr(visual, "kind", None) in ("face", "vertex"):
        color = parse_color(visual.main_color)

    if color is None:
        color = parse_color(default_color)
    return Material(color=color, texture=texture, name=name)


def extract_uvs(geometry: trimesh.Trimesh) -> Optional[np.ndarray]:
    """Per-vertex UVs, or None when the visual carries none."""
    uv = getattr(geometry.visual, "uv", None)
    if uv is None:
        return None
    uv = np.asarray(uv, dtype=np.float64)
    if uv.ndim != 2 or uv.shape[1] != 2 or len(uv) != len(geometry.vertices):
        logger.warning("Ignoring UVs with shape %s", uv.shape)
        return None
    return uv


def trimesh_to_mesh(
    geometry: trimesh.Trimesh,
    name: str = "mesh",
    default_color: int = DEFAULT_CONFIG.default_color
) -> Mesh:
    """Convert a (world-space) trimesh geometry to a Mesh."""
    return Mesh.from_arrays(
        geometry.vertices,
        geometry.faces,
        uv=extract_uvs(geometry),
        material=extract_material(geometry, default_color),
        name=name,
    )


class MeshLoader:
    """
    Loads mesh assets into world-space Mesh objects.

    Usage:
        loader = MeshLoader()
        mesh = loader.load("model.glb")          # first mesh
        scene = loader.load_scene("model.glb")   # every mesh
    """

    def __init__(self, config: VoxelizerConfig = DEFAULT_CONFIG):
        self.config = config

    def load_meshes(self, path: Union[str, Path]) -> List[Mesh]:
        """
        Load every triangle mesh in an asset, transforms applied.

        Raises:
            InvalidInputError: If the file fails validation or parsing
            EmptyMeshError: If the asset holds no triangle mesh
        """
        path = validate_mesh_file(path, self.config)
        try:
            loaded = trimesh.load(str(path))
        except Exception as e:
            raise InvalidInputError(f"Failed to parse mesh file: {e}") from e

        meshes = []
        default_color = self.config.default_color
        if isinstance(loaded, trimesh.Scene):
            for node in loaded.graph.nodes_geometry:
                transform, geometry_name = loaded.graph[node]
                geometry = loaded.geometry[geometry_name]
                if not isinstance(geometry, trimesh.Trimesh):
                    continue
                world = geometry.copy()
                world.apply_transform(transform)
                meshes.append(trimesh_to_mesh(world, str(node), default_color))
        elif isinstance(loaded, trimesh.Trimesh):
            meshes.append(trimesh_to_mesh(loaded, path.stem, default_color))

        if not meshes:
            raise EmptyMeshError(f"No mesh found in {path.name}")

        logger.info("Found %d mesh(es) in %s", len(meshes), path.name)
        return meshes

    def load(self, path: Union[str, Path]) -> Mesh:
        """Load the first mesh of an asset."""
        meshes = self.load_meshes(path)
        if len(meshes) > 1:
            logger.info("Using the first mesh '%s'", meshes[0].name)
        return meshes[0]

    def load_scene(self, path: Union[str, Path]) -> Scene:
        """Load all meshes of an asset into a Scene."""
        return Scene(self.load_meshes(path))
