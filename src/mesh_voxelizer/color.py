"""
Color Management Module

Handles:
- Texture color lookup by UV coordinate (clamped, V flipped)
- Constant fallback colors for untextured meshes
- Hex <-> float RGB conversion
- Color quantization for palette-limited formats (.vox)

Colors inside the engine are float RGB triples in [0, 1]. Textures are
uint8 images whose row 0 is the top of the picture, which is why V is
flipped before indexing.
"""

import math
from typing import Optional, Tuple, Union
import numpy as np
from numba import njit, prange


ColorLike = Union[int, str, Tuple[float, float, float]]


def hex_to_rgb(value: int) -> Tuple[float, float, float]:
    """Convert 0xRRGGBB to an RGB triple in [0, 1]."""
    value = int(value) & 0xFFFFFF
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )


def rgb_to_hex(color) -> str:
    """Convert an RGB triple in [0, 1] to a '#rrggbb' string."""
    r, g, b = (int(round(max(0.0, min(1.0, float(c))) * 255)) for c in color[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def parse_color(value: ColorLike) -> Tuple[float, float, float]:
    """
    Normalize a user supplied color.

    Accepts 0xRRGGBB integers, '#rrggbb' strings, float triples in [0, 1]
    and 0-255 integer triples.
    """
    if isinstance(value, str):
        return hex_to_rgb(int(value.lstrip("#"), 16))
    if isinstance(value, (int, np.integer)):
        return hex_to_rgb(int(value))

    rgb = np.asarray(value, dtype=np.float64)[:3]
    if rgb.max() > 1.0:
        rgb = rgb / 255.0
    rgb = np.clip(rgb, 0.0, 1.0)
    return (float(rgb[0]), float(rgb[1]), float(rgb[2]))


@njit(cache=True)
def _texel_index(u: float, v: float, width: int, height: int) -> Tuple[int, int]:
    """Pixel column/row for a UV pair: clamp, flip V, floor, clamp to image."""
    cu = min(max(u, 0.0), 1.0)
    cv = min(max(v, 0.0), 1.0)
    x = min(max(int(math.floor(cu * width)), 0), width - 1)
    y = min(max(int(math.floor((1.0 - cv) * height)), 0), height - 1)
    return x, y


@njit(cache=True, parallel=True)
def _sample_texture_batch(texture: np.ndarray, uvs: np.ndarray) -> np.ndarray:
    """
    Look up texture colors for many UV pairs.

    Args:
        texture: (H, W, 3) uint8 image
        uvs: (N, 2) float64 texture coordinates

    Returns:
        (N, 3) float64 colors in [0, 1]
    """
    height = texture.shape[0]
    width = texture.shape[1]
    n = uvs.shape[0]
    result = np.empty((n, 3), dtype=np.float64)

    for i in prange(n):
        x, y = _texel_index(uvs[i, 0], uvs[i, 1], width, height)
        for c in range(3):
            result[i, c] = texture[y, x, c] / 255.0

    return result


class TextureSampler:
    """
    Maps UV coordinates to colors from a decoded texture.

    Without a texture every lookup returns the fallback color. The texture
    is copied once on construction and treated as immutable afterwards.
    """

    def __init__(
        self,
        texture: Optional[np.ndarray] = None,
        fallback_color: ColorLike = 0xCCCCCC
    ):
        """
        Args:
            texture: Optional (H, W, 3|4) uint8 image
            fallback_color: Color used when no texture or UV is available
        """
        self.fallback_color = parse_color(fallback_color)
        self._texture: Optional[np.ndarray] = None
        if texture is not None:
            texture = np.asarray(texture)
            self._texture = np.ascontiguousarray(texture[:, :, :3], dtype=np.uint8)

    @classmethod
    def for_material(cls, material) -> "TextureSampler":
        """Create a sampler from a Material's texture and fallback color."""
        return cls(material.texture, material.color)

    @property
    def has_texture(self) -> bool:
        return self._texture is not None

    @property
    def size(self) -> Tuple[int, int]:
        """Texture (width, height), or (0, 0) without a texture."""
        if self._texture is None:
            return (0, 0)
        return (self._texture.shape[1], self._texture.shape[0])

    def sample(self, u: float, v: float) -> Tuple[float, float, float]:
        """Color at a single UV coordinate."""
        if self._texture is None:
            return self.fallback_color
        height, width = self._texture.shape[:2]
        x, y = _texel_index(float(u), float(v), width, height)
        r, g, b = self._texture[y, x] / 255.0
        return (float(r), float(g), float(b))

    def sample_batch(self, uvs: Optional[np.ndarray], count: Optional[int] = None) -> np.ndarray:
        """
        Colors for many UV coordinates.

        Args:
            uvs: (N, 2) texture coordinates, or None when the geometry
                 carries no UVs
            count: Number of colors to return when ``uvs`` is None

        Returns:
            (N, 3) float64 colors in [0, 1]
        """
        if uvs is None or self._texture is None:
            n = count if uvs is None else len(uvs)
            return self.fallback_batch(n or 0)

        uvs = np.ascontiguousarray(uvs, dtype=np.float64).reshape(-1, 2)
        if len(uvs) == 0:
            return np.empty((0, 3), dtype=np.float64)
        return _sample_texture_batch(self._texture, uvs)

    def fallback_batch(self, count: int) -> np.ndarray:
        return np.tile(np.asarray(self.fallback_color, dtype=np.float64), (count, 1))


def colors_to_uint8(colors: np.ndarray) -> np.ndarray:
    """Convert float colors in [0, 1] to uint8."""
    return (np.clip(colors, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


class ColorQuantizer:
    """
    Color quantization for palette-limited formats.

    The .vox format is limited to 255 usable colors. Colors are reduced with
    K-Means only when the voxel set has more unique colors than that.
    """

    def __init__(self, max_colors: int = 255, iterations: int = 20, seed: int = 0):
        """
        Initialize the quantizer.

        Args:
            max_colors: Maximum number of colors in output palette
            iterations: K-Means iterations
            seed: Seed for K-Means initialization
        """
        self.max_colors = max_colors
        self.iterations = iterations
        self.seed = seed

    def quantize(self, colors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Quantize colors to a limited palette.

        Args:
            colors: Array of shape (N, 3) with uint8 RGB values

        Returns:
            Tuple of (palette, indices) where:
            - palette: Array of shape (M, 3) uint8, M <= max_colors
            - indices: Array of shape (N,) mapping each input to palette index
        """
        colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
        unique, inverse = np.unique(colors, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)

        if len(unique) <= self.max_colors:
            return unique, inverse

        return self._kmeans_quantize(colors)

    def _kmeans_quantize(self, colors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        from scipy.cluster.vq import kmeans2

        centroids, labels = kmeans2(
            colors.astype(np.float64),
            self.max_colors,
            minit='++',
            iter=self.iterations,
            seed=self.seed
        )

        palette = np.clip(np.round(centroids), 0, 255).astype(np.uint8)
        return palette, labels
