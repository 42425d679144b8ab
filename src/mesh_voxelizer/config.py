"""
Voxelizer Configuration

Defaults and limits shared by the loaders, the two voxelization
strategies, the smoothing pass and the command line.
"""

from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidInputError


DEFAULT_RESOLUTION = 30
MAX_RESOLUTION = 200
DEFAULT_COLOR = 0xCCCCCC
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB


@dataclass(frozen=True)
class VoxelizerConfig:
    """
    Tunable parameters for a voxelization run.

    Attributes:
        resolution: Voxels along the longest bounding-box axis
        max_resolution: Upper clamp for the resolution
        sampling_density: Surface oversampling multiplier (K)
        default_color: Fallback color (0xRRGGBB) for untextured meshes
        max_file_size: Largest mesh file accepted by the loader, in bytes
        supported_extensions: Mesh file suffixes accepted by the loader
        smoothing_iterations: Default number of smoothing passes
        keep_min_neighbors: Lower bound of the smoothing keep range
        keep_max_neighbors: Upper bound of the smoothing keep range
        fill_min_neighbors: Neighbors required to fill an empty cell
        render_oversample: Render target pixels per voxel (multiview)
    """

    resolution: int = DEFAULT_RESOLUTION
    max_resolution: int = MAX_RESOLUTION
    sampling_density: int = 10
    default_color: int = DEFAULT_COLOR
    max_file_size: int = MAX_FILE_SIZE
    supported_extensions: Tuple[str, ...] = (".glb", ".gltf", ".obj")
    smoothing_iterations: int = 0
    keep_min_neighbors: int = 2
    keep_max_neighbors: int = 5
    fill_min_neighbors: int = 3
    render_oversample: int = 2


DEFAULT_CONFIG = VoxelizerConfig()


def clamp_resolution(value, config: VoxelizerConfig = DEFAULT_CONFIG) -> int:
    """
    Validate a resolution and clamp it to the configured maximum.

    Args:
        value: Requested resolution
        config: Configuration providing ``max_resolution``

    Returns:
        Resolution in ``[1, max_resolution]``
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Resolution must be an integer, got {value!r}")
    if value < 1:
        raise InvalidInputError(f"Resolution must be positive, got {value}")
    return min(value, config.max_resolution)


def check_iterations(value) -> int:
    """Validate a smoothing iteration count."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Iterations must be an integer, got {value!r}")
    if value < 0:
        raise InvalidInputError(f"Iterations must be non-negative, got {value}")
    return value
