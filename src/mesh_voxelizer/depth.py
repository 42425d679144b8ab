"""
Depth Packing

An 8-bit RGBA render target cannot hold a float, so normalized depth
``d`` in [0, 1) is spread across the four channels as successive base-255
digits:

    enc = fract(d * (1, 255, 255^2, 255^3))
    enc.rgb -= enc.gba / 255

Unpacking recombines the channels with the complementary weights
``(1, 1/255, 1/255^2, 1/255^3)``. The round trip error is far below one
8-bit step.
"""

import numpy as np


PACK_FACTORS = np.array([1.0, 255.0, 255.0 ** 2, 255.0 ** 3], dtype=np.float64)
UNPACK_FACTORS = 1.0 / PACK_FACTORS

# Largest depth that still packs without wrapping to zero
MAX_PACKED_DEPTH = 1.0 - 1e-7


def pack_depth(depth) -> np.ndarray:
    """
    Encode normalized depth into RGBA bytes.

    Args:
        depth: Scalar or array of depths, clamped to [0, 1)

    Returns:
        uint8 array with a trailing axis of 4 channels
    """
    d = np.clip(np.asarray(depth, dtype=np.float64), 0.0, MAX_PACKED_DEPTH)
    enc = d[..., None] * PACK_FACTORS
    enc = enc - np.floor(enc)
    enc[..., :3] -= enc[..., 1:] / 255.0
    return np.clip(np.round(enc * 255.0), 0, 255).astype(np.uint8)


def unpack_depth(rgba) -> np.ndarray:
    """
    Decode RGBA bytes produced by :func:`pack_depth`.

    Args:
        rgba: uint8 array with a trailing axis of 4 channels

    Returns:
        Float depth array (scalar array for a single pixel)
    """
    channels = np.asarray(rgba, dtype=np.float64)[..., :4] / 255.0
    return channels @ UNPACK_FACTORS


def linear_depth(distance, near: float, far: float) -> np.ndarray:
    """Map eye-space distance to normalized depth for an orthographic camera."""
    return (np.asarray(distance, dtype=np.float64) - near) / (far - near)


def world_depth(depth, near: float, far: float) -> np.ndarray:
    """Inverse of :func:`linear_depth`."""
    return near + np.asarray(depth, dtype=np.float64) * (far - near)
