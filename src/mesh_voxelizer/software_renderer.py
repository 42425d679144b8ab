"""
Software Rasterizer

CPU implementation of ``RenderBackend`` for environments without a GPU.

Triangles are projected through the orthographic camera and filled with
edge functions in a Numba JIT kernel. Pixel (x, y) is sampled exactly at
the image-plane position the multi-view unprojection assumes, so a
rendered depth maps back onto the surface it came from.

Shading is unlit: textured meshes show their texel color, untextured
meshes their material color.
"""

import math
from typing import Optional
import numpy as np
from numba import njit

from .color import _texel_index
from .depth import linear_depth, pack_depth
from .mesh import Scene
from .projection import OrthographicCamera
from .rendering import DepthPackingMaterial, RenderBackend, RenderTarget


_EDGE_EPS = 1e-9
_AREA_EPS = 1e-12


@njit(cache=True)
def _rasterize(
    px: np.ndarray,
    py: np.ndarray,
    pz: np.ndarray,
    uvs: np.ndarray,
    use_texture: bool,
    texture: np.ndarray,
    base_color: np.ndarray,
    is_depth: bool,
    zbuffer: np.ndarray,
    color: np.ndarray,
    depth_mask: np.ndarray
):
    """
    Z-buffered triangle fill.

    Args:
        px, py: (N, 3) pixel-space corner coordinates
        pz: (N, 3) normalized depth per corner
        uvs: (N, 3, 2) texture coordinates (ignored without texture)
        use_texture: Sample ``texture`` by interpolated UV
        texture: (H, W, 3) uint8 image
        base_color: (3,) uint8 flat color
        is_depth: Mark covered pixels for depth packing
        zbuffer: (rows, cols) float64, nearest depth so far
        color: (rows, cols, 4) uint8 output
        depth_mask: (rows, cols) bool, True where a depth material won
    """
    rows = zbuffer.shape[0]
    cols = zbuffer.shape[1]
    tex_h = texture.shape[0]
    tex_w = texture.shape[1]

    for t in range(px.shape[0]):
        x0, x1, x2 = px[t, 0], px[t, 1], px[t, 2]
        y0, y1, y2 = py[t, 0], py[t, 1], py[t, 2]

        area = (x1 - x0) * (y2 - y0) - (y1 - y0) * (x2 - x0)
        if abs(area) < _AREA_EPS:
            continue

        min_x = max(int(math.ceil(min(x0, min(x1, x2)))), 0)
        max_x = min(int(math.floor(max(x0, max(x1, x2)))), cols - 1)
        min_y = max(int(math.ceil(min(y0, min(y1, y2)))), 0)
        max_y = min(int(math.floor(max(y0, max(y1, y2)))), rows - 1)

        for y in range(min_y, max_y + 1):
            for x in range(min_x, max_x + 1):
                w0 = ((x2 - x1) * (y - y1) - (y2 - y1) * (x - x1)) / area
                w1 = ((x0 - x2) * (y - y2) - (y0 - y2) * (x - x2)) / area
                w2 = 1.0 - w0 - w1
                if w0 < -_EDGE_EPS or w1 < -_EDGE_EPS or w2 < -_EDGE_EPS:
                    continue

                z = w0 * pz[t, 0] + w1 * pz[t, 1] + w2 * pz[t, 2]
                if z < 0.0 or z > 1.0 or z >= zbuffer[y, x]:
                    continue
                zbuffer[y, x] = z
                depth_mask[y, x] = is_depth

                if is_depth:
                    color[y, x, 3] = 255
                    continue

                if use_texture:
                    u = w0 * uvs[t, 0, 0] + w1 * uvs[t, 1, 0] + w2 * uvs[t, 2, 0]
                    v = w0 * uvs[t, 0, 1] + w1 * uvs[t, 1, 1] + w2 * uvs[t, 2, 1]
                    tx, ty = _texel_index(u, v, tex_w, tex_h)
                    for c in range(3):
                        color[y, x, c] = texture[ty, tx, c]
                else:
                    for c in range(3):
                        color[y, x, c] = base_color[c]
                color[y, x, 3] = 255


_NO_TEXTURE = np.zeros((1, 1, 3), dtype=np.uint8)


class SoftwareRenderer(RenderBackend):
    """
    Orthographic CPU renderer.

    Usage:
        renderer = SoftwareRenderer()
        target = renderer.create_render_target(64, 64)
        renderer.set_camera(camera)
        renderer.render(scene, target)
        pixels = renderer.read_pixels(target)
    """

    def __init__(self):
        self._camera: Optional[OrthographicCamera] = None
        self.render_count = 0

    def create_render_target(self, width: int, height: int) -> RenderTarget:
        return RenderTarget(width, height)

    def set_camera(self, camera: OrthographicCamera) -> None:
        self._camera = camera

    def render(self, scene: Scene, target: RenderTarget) -> None:
        if self._camera is None:
            raise RuntimeError("No camera set. Call set_camera() first.")
        target._check()
        camera = self._camera

        if scene.background is not None:
            r, g, b = (int(round(c * 255)) for c in scene.background[:3])
            target.clear((r, g, b, 255))
        else:
            target.clear()

        zbuffer = np.full((target.height, target.width), np.inf, dtype=np.float64)
        depth_mask = np.zeros((target.height, target.width), dtype=np.bool_)

        for mesh in scene.meshes:
            if mesh.is_empty:
                continue
            self._draw_mesh(mesh, camera, target, zbuffer, depth_mask)

        if depth_mask.any():
            target.pixels[depth_mask] = pack_depth(zbuffer[depth_mask])

        self.render_count += 1

    def _draw_mesh(self, mesh, camera, target, zbuffer, depth_mask):
        local = camera.to_camera_space(mesh.triangles)
        px = (local[..., 0] / camera.frame_width + 0.5) * (target.width - 1)
        py = (local[..., 1] / camera.frame_height + 0.5) * (target.height - 1)
        pz = linear_depth(local[..., 2], camera.near, camera.far)

        material = mesh.material
        is_depth = isinstance(material, DepthPackingMaterial)
        texture = getattr(material, "texture", None)
        use_texture = (not is_depth) and texture is not None and mesh.has_uvs

        if use_texture:
            uvs = np.ascontiguousarray(mesh.uvs, dtype=np.float64)
            texture = np.ascontiguousarray(texture[:, :, :3], dtype=np.uint8)
        else:
            uvs = np.zeros((mesh.triangle_count, 3, 2), dtype=np.float64)
            texture = _NO_TEXTURE

        base = getattr(material, "color", (0.0, 0.0, 0.0))
        base_color = np.array(
            [int(round(min(max(c, 0.0), 1.0) * 255)) for c in base[:3]], dtype=np.uint8
        )

        _rasterize(
            np.ascontiguousarray(px), np.ascontiguousarray(py), np.ascontiguousarray(pz),
            uvs, use_texture, texture, base_color, is_depth,
            zbuffer, target.pixels, depth_mask
        )

    def read_pixels(self, target: RenderTarget) -> np.ndarray:
        target._check()
        return target.pixels.copy()
