"""
Orthographic Camera Mathematics

Defines the six axis-aligned capture views and an orthographic camera
framed around a bounding box.

Camera basis (right-handed, as produced by a look-at toward the target):
- view_direction: unit vector from the target to the camera
- right: normalize(up x view_direction)
- up: view_direction x right
- forward (into the scene): -view_direction

Pixel (x, y) of a W x H target, row 0 at the bottom, sits at image-plane
offset ``((x / (W - 1) - 0.5) * width, (y / (H - 1) - 0.5) * height)``.
"""

from dataclasses import dataclass
from typing import List, Tuple
import numpy as np

from .mesh import BoundingBox


@dataclass(frozen=True)
class View:
    """A canonical capture direction with a non-degenerate up vector."""
    name: str
    direction: Tuple[float, float, float]
    up: Tuple[float, float, float]


VIEWS: List[View] = [
    View("pos-x", (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
    View("neg-x", (-1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
    View("pos-y", (0.0, 1.0, 0.0), (0.0, 0.0, -1.0)),
    View("neg-y", (0.0, -1.0, 0.0), (0.0, 0.0, 1.0)),
    View("pos-z", (0.0, 0.0, 1.0), (0.0, 1.0, 0.0)),
    View("neg-z", (0.0, 0.0, -1.0), (0.0, 1.0, 0.0)),
]


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero vector")
    return v / norm


@dataclass
class OrthographicCamera:
    """
    Parallel-projection camera.

    Attributes:
        position: Camera location in world space
        view_direction: Unit vector from the look-at target to the camera
        up_hint: Requested up vector (orthonormalized into ``up``)
        left, right_edge, top, bottom: Frustum extents on the image plane
        near, far: Clip distances along the forward axis
    """

    position: np.ndarray
    view_direction: np.ndarray
    up_hint: np.ndarray
    left: float
    right_edge: float
    top: float
    bottom: float
    near: float
    far: float

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64)
        self.view_direction = _normalize(np.asarray(self.view_direction, dtype=np.float64))
        self.up_hint = np.asarray(self.up_hint, dtype=np.float64)
        self.right = _normalize(np.cross(self.up_hint, self.view_direction))
        self.up = np.cross(self.view_direction, self.right)

    @property
    def forward(self) -> np.ndarray:
        return -self.view_direction

    @property
    def frame_width(self) -> float:
        return self.right_edge - self.left

    @property
    def frame_height(self) -> float:
        return self.top - self.bottom

    def to_camera_space(self, points: np.ndarray) -> np.ndarray:
        """
        Express world points in camera coordinates.

        Returns:
            (..., 3) array of (horizontal offset, vertical offset, distance
            along forward)
        """
        rel = np.asarray(points, dtype=np.float64) - self.position
        return np.stack([rel @ self.right, rel @ self.up, rel @ self.forward], axis=-1)

    def pixel_offsets(self, x, y, width_px: int, height_px: int) -> Tuple[np.ndarray, np.ndarray]:
        """Image-plane offsets of pixel indices (row 0 at the bottom)."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        fx = x / (width_px - 1) if width_px > 1 else np.zeros_like(x) + 0.5
        fy = y / (height_px - 1) if height_px > 1 else np.zeros_like(y) + 0.5
        return (fx - 0.5) * self.frame_width, (fy - 0.5) * self.frame_height

    def unproject(self, x_offset, y_offset, distance) -> np.ndarray:
        """
        World points for image-plane offsets at a given forward distance.

        Walks from the camera backwards along the view direction by
        ``distance`` and then moves within the image plane.
        """
        x_offset = np.asarray(x_offset, dtype=np.float64)[..., None]
        y_offset = np.asarray(y_offset, dtype=np.float64)[..., None]
        distance = np.asarray(distance, dtype=np.float64)[..., None]
        return (
            self.position
            - self.view_direction * distance
            + self.right * x_offset
            + self.up * y_offset
        )


def frame_camera(
    view: View,
    bbox: BoundingBox,
    near_ratio: float = 0.25,
    far_ratio: float = 2.0
) -> OrthographicCamera:
    """
    Build a camera looking at the box center along ``view``.

    The camera sits one max-dimension away from the center. Its frame spans
    the box cross-section on the two non-view axes; near/far are scaled by
    the max dimension so the whole box lies between them.

    Args:
        view: Capture direction
        bbox: Box to frame
        near_ratio: Near plane as a fraction of the max dimension
        far_ratio: Far plane as a multiple of the max dimension

    Returns:
        Configured OrthographicCamera
    """
    max_dim = bbox.max_dimension
    if max_dim <= 0.0:
        max_dim = 1.0
    direction = np.asarray(view.direction, dtype=np.float64)
    position = bbox.center + direction * max_dim

    camera = OrthographicCamera(
        position=position,
        view_direction=direction,
        up_hint=view.up,
        left=0.0, right_edge=0.0, top=0.0, bottom=0.0,
        near=near_ratio * max_dim,
        far=far_ratio * max_dim,
    )

    # Flat boxes viewed edge-on still need a non-zero frame
    width = float(np.abs(camera.right) @ bbox.size) or max_dim
    height = float(np.abs(camera.up) @ bbox.size) or max_dim
    camera.left, camera.right_edge = -width / 2.0, width / 2.0
    camera.bottom, camera.top = -height / 2.0, height / 2.0
    return camera
