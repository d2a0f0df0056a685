"""
Head pose estimation from a sparse set of face landmarks.

This module reconstructs a rigid placement (position, orthonormal basis,
uniform scale) for a face accessory from four anchor landmarks: the two
outer eye corners, the nose tip and the forehead center. The estimator is a
pure function of its input; degenerate anchor geometry produces an unstable
estimate instead of NaN values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..geometry import Mat3, Vec3
from ..utils.exceptions import UnstablePoseError
from .landmarks import AnchorIndices, LandmarkPoint, LandmarkSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RigidTransform:
    """Position, orthonormal orientation basis and uniform scale."""

    position: Vec3
    right: Vec3
    up: Vec3
    forward: Vec3
    scale: float

    @property
    def basis(self) -> Mat3:
        return Mat3.from_basis(self.right, self.up, self.forward)


@dataclass(frozen=True)
class PoseEstimate:
    """
    Estimator output for one frame.

    ``left_eye``/``right_eye`` are the raw landmarks, kept for the planar
    overlay path. ``transform`` is None when the estimate is unstable.
    """

    left_eye: LandmarkPoint
    right_eye: LandmarkPoint
    transform: Optional[RigidTransform] = None

    @property
    def stable(self) -> bool:
        return self.transform is not None

    def require_transform(self) -> RigidTransform:
        if self.transform is None:
            raise UnstablePoseError("use the transform of")
        return self.transform


def orthonormal_basis(right_raw: Vec3, forward_raw: Vec3,
                      min_length: float = 1e-9) -> Optional[Tuple[Vec3, Vec3, Vec3]]:
    """
    Build an orthonormal (right, up, forward) basis from two raw directions.

    Right is the trusted axis and is only normalized. Up is derived from
    forward x right, then forward is recomputed as right x up. Returns None
    when any intermediate vector is shorter than ``min_length``.
    """
    if right_raw.length() < min_length or forward_raw.length() < min_length:
        return None
    right = right_raw.normalized()
    forward = forward_raw.normalized()

    up_raw = forward.cross(right)
    if up_raw.length() < min_length:
        return None
    up = up_raw.normalized()

    forward_raw = right.cross(up)
    if forward_raw.length() < min_length:
        return None
    forward = forward_raw.normalized()
    return right, up, forward


class PoseEstimator:
    """
    Landmark-based rigid pose estimator.

    All tuning constants are constructor parameters so they can be driven
    from configuration.
    """

    def __init__(self, indices: Optional[AnchorIndices] = None,
                 depth_scale: float = 2.0, scale_calibration: float = 0.015,
                 min_vector_length: float = 1e-9):
        """
        Initialize the pose estimator.

        Args:
            indices: Anchor landmark indices
            depth_scale: Multiplier applied to landmark z (k)
            scale_calibration: Eye distance to accessory scale factor
            min_vector_length: Vectors shorter than this are degenerate
        """
        if scale_calibration <= 0:
            raise ValueError("scale_calibration must be positive")
        self.indices = indices or AnchorIndices()
        self.depth_scale = float(depth_scale)
        self.scale_calibration = float(scale_calibration)
        self.min_vector_length = float(min_vector_length)

    @classmethod
    def from_config(cls, pose_config: dict, landmark_config: Optional[dict] = None) -> "PoseEstimator":
        return cls(
            indices=AnchorIndices.from_config(landmark_config) if landmark_config else None,
            depth_scale=pose_config.get("depth_scale", 2.0),
            scale_calibration=pose_config.get("scale_calibration", 0.015),
            min_vector_length=pose_config.get("min_vector_length", 1e-9),
        )

    def to_world(self, p: LandmarkPoint) -> Vec3:
        """Map a normalized landmark to the centered engine frame."""
        return Vec3(
            -(1.0 - p.x - 0.5) * 2.0,
            (p.y - 0.5) * 2.0,
            p.z * self.depth_scale,
        )

    def estimate(self, landmarks: LandmarkSet) -> PoseEstimate:
        """
        Estimate the accessory placement for one landmark set.

        Args:
            landmarks: Landmarks of a detected face

        Returns:
            Pose estimate; unstable when the anchor geometry is degenerate
        """
        left, right, nose, forehead = landmarks.anchors(self.indices)

        lw, rw = self.to_world(left), self.to_world(right)
        nw, fw = self.to_world(nose), self.to_world(forehead)

        if not all(v.is_finite() for v in (lw, rw, nw, fw)):
            logger.debug("Non-finite anchor coordinates, pose unstable")
            return PoseEstimate(left, right)

        basis = orthonormal_basis(rw - lw, fw - nw, self.min_vector_length)
        if basis is None:
            logger.debug("Degenerate anchor geometry, pose unstable")
            return PoseEstimate(left, right)

        right_dir, up_dir, forward_dir = basis
        transform = RigidTransform(
            position=Vec3.midpoint(lw, rw),
            right=right_dir,
            up=up_dir,
            forward=forward_dir,
            scale=lw.distance_to(rw) * self.scale_calibration,
        )
        return PoseEstimate(left, right, transform)
