"""
Rendering Backend Interface

The multi-view rasterizer needs only a narrow slice of a renderer:
- create and dispose off-screen RGBA8 render targets
- configure an orthographic camera
- render a scene into a target
- read the target back as pixels

``RenderBackend`` captures that contract so GPU renderers and the CPU
``SoftwareRenderer`` are interchangeable. Material substitution for the
depth pass is scoped: originals are restored on every exit path.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator
import numpy as np

from .mesh import Scene
from .projection import OrthographicCamera


@dataclass
class RenderTarget:
    """
    Off-screen RGBA8 color buffer.

    Pixel rows are stored bottom-up: row 0 is the bottom of the frame.
    """

    width: int
    height: int
    pixels: np.ndarray = field(init=False, repr=False)
    disposed: bool = field(default=False, init=False)

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Invalid render target size {self.width}x{self.height}")
        self.pixels = np.zeros((self.height, self.width, 4), dtype=np.uint8)

    def clear(self, rgba=(0, 0, 0, 0)):
        self._check()
        self.pixels[:] = rgba

    def dispose(self):
        self.pixels = np.zeros((0, 0, 4), dtype=np.uint8)
        self.disposed = True

    def _check(self):
        if self.disposed:
            raise RuntimeError("Render target has been disposed")


class DepthPackingMaterial:
    """
    Material that writes packed normalized depth instead of color.

    Backends detect it and encode depth with ``depth.pack_depth``.
    """

    def __init__(self):
        self.disposed = False

    def dispose(self):
        self.disposed = True


class RenderBackend(ABC):
    """Minimal off-screen rendering contract."""

    @abstractmethod
    def create_render_target(self, width: int, height: int) -> RenderTarget:
        """Allocate a cleared RGBA8 target."""

    @abstractmethod
    def set_camera(self, camera: OrthographicCamera) -> None:
        """Use ``camera`` for subsequent renders."""

    @abstractmethod
    def render(self, scene: Scene, target: RenderTarget) -> None:
        """Clear ``target`` and draw ``scene`` into it."""

    @abstractmethod
    def read_pixels(self, target: RenderTarget) -> np.ndarray:
        """Blocking readback; (H, W, 4) uint8, row 0 at the bottom."""

    def dispose_render_target(self, target: RenderTarget) -> None:
        target.dispose()


@contextmanager
def substituted_material(scene: Scene, material) -> Iterator[Scene]:
    """
    Temporarily assign ``material`` to every mesh in ``scene``.

    Not reentrant: the scene must not be rendered elsewhere meanwhile.
    """
    originals = [(mesh, mesh.material) for mesh in scene.meshes]
    try:
        for mesh in scene.meshes:
            mesh.material = material
        yield scene
    finally:
        for mesh, original in originals:
            mesh.material = original


@contextmanager
def cleared_background(scene: Scene) -> Iterator[Scene]:
    """Remove the scene background for the duration of a capture."""
    original = scene.background
    scene.background = None
    try:
        yield scene
    finally:
        scene.background = original
