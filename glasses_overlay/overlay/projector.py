"""
Overlay projection.

Turns a pose estimate into the parameters a render target consumes: a 2D
affine for the image-plane sprite, or a rigid transform expressed in the 3D
renderer's axis convention.

The planar path deliberately ignores the reconstructed 3D pose and works
from the raw eye landmarks in pixel space, so it is unaffected by depth
noise. The projector holds configuration only and never mutates its inputs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from ..geometry import Mat3, Vec3
from ..tracking.landmarks import LandmarkPoint
from ..tracking.pose_estimator import PoseEstimate
from ..utils.exceptions import UnstablePoseError
from .mode import RenderMode

DEFAULT_AXIS_MAP = ((1.0, 0.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, -1.0))


@dataclass(frozen=True)
class Affine2D:
    """Sprite placement in display pixels; rotation about the translation point."""

    translation: Tuple[float, float]
    rotation_radians: float
    width: float
    height: float


@dataclass(frozen=True)
class Transform3D:
    """Root-node transform for the 3D accessory, in renderer axes."""

    position: Vec3
    basis: Mat3
    scale: float


OverlayCommand = Union[Affine2D, Transform3D]


class OverlayProjector:
    """
    Maps (pose estimate, render mode) to an overlay command.
    """

    def __init__(self, frame_size: Tuple[int, int] = (640, 480),
                 width_multiplier: float = 2.4, aspect_ratio: float = 2.5,
                 mirror: bool = True,
                 axis_map: Optional[Sequence[Sequence[float]]] = None,
                 min_eye_distance: float = 1e-9):
        """
        Initialize the projector.

        Args:
            frame_size: Display size in pixels (width, height)
            width_multiplier: Sprite width relative to the eye distance
            aspect_ratio: Sprite width / height
            mirror: Whether the display shows the camera feed mirrored
            axis_map: 3x3 matrix from engine axes to renderer axes
            min_eye_distance: Pixel eye distances below this cannot place
                the sprite
        """
        if width_multiplier <= 0 or aspect_ratio <= 0:
            raise ValueError("width_multiplier and aspect_ratio must be positive")
        self.frame_size = (int(frame_size[0]), int(frame_size[1]))
        self.width_multiplier = float(width_multiplier)
        self.aspect_ratio = float(aspect_ratio)
        self.mirror = bool(mirror)
        self.axis_map = Mat3.from_rows(axis_map if axis_map is not None else DEFAULT_AXIS_MAP)
        self.min_eye_distance = float(min_eye_distance)

    @classmethod
    def from_config(cls, overlay_config: dict, frame_size: Tuple[int, int]) -> "OverlayProjector":
        return cls(
            frame_size=frame_size,
            width_multiplier=overlay_config.get("width_multiplier", 2.4),
            aspect_ratio=overlay_config.get("aspect_ratio", 2.5),
            mirror=overlay_config.get("mirror", True),
            axis_map=overlay_config.get("axis_map"),
            min_eye_distance=overlay_config.get("min_eye_distance", 1e-9),
        )

    def to_pixels(self, p: LandmarkPoint) -> Tuple[float, float]:
        """Display pixel position of a landmark."""
        width, height = self.frame_size
        x = (1.0 - p.x) if self.mirror else p.x
        return (x * width, p.y * height)

    def project(self, estimate: PoseEstimate, mode: RenderMode) -> OverlayCommand:
        """
        Compute the overlay command for ``mode``.

        Raises:
            UnstablePoseError: if ``estimate`` carries no transform, or in
                ``TWO_D`` when the eyes coincide on screen
        """
        transform = estimate.require_transform()

        if mode is RenderMode.TWO_D:
            return self._project_planar(estimate.left_eye, estimate.right_eye)

        m = self.axis_map
        return Transform3D(
            position=m.transform(transform.position),
            basis=Mat3.from_basis(m.transform(transform.right),
                                  m.transform(transform.up),
                                  m.transform(transform.forward)),
            scale=transform.scale,
        )

    def _project_planar(self, left: LandmarkPoint, right: LandmarkPoint) -> Affine2D:
        lx, ly = self.to_pixels(left)
        rx, ry = self.to_pixels(right)

        # the sprite x axis runs from the eye shown on the left to the one on the right
        if self.mirror:
            dx, dy = lx - rx, ly - ry
        else:
            dx, dy = rx - lx, ry - ly

        distance = math.hypot(dx, dy)
        if distance < self.min_eye_distance:
            # eyes differ only in depth
            raise UnstablePoseError("place a sprite for")

        width = distance * self.width_multiplier
        return Affine2D(
            translation=((lx + rx) / 2.0, (ly + ry) / 2.0),
            rotation_radians=math.atan2(dy, dx),
            width=width,
            height=width / self.aspect_ratio,
        )
