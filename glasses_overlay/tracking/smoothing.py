"""
Temporal smoothing of consecutive rigid transforms.

Blends the newest stable transform with the previous smoothed one, the same
exponential scheme used for tracked boxes and depth maps. The blended basis
is re-orthonormalized with the estimator's own correction so the output
stays a valid rigid transform.
"""

from __future__ import annotations

import logging
from typing import Optional

from .pose_estimator import RigidTransform, orthonormal_basis

logger = logging.getLogger(__name__)


class TransformSmoother:
    """
    Exponential smoother for rigid transforms.

    ``smoothing_factor`` is the weight of the previous value: 0 disables
    smoothing, values close to 1 lag heavily.
    """

    def __init__(self, smoothing_factor: float = 0.0):
        if not 0.0 <= smoothing_factor < 1.0:
            raise ValueError("smoothing_factor must be in [0, 1)")
        self.smoothing_factor = float(smoothing_factor)
        self.previous: Optional[RigidTransform] = None

    @property
    def enabled(self) -> bool:
        return self.smoothing_factor > 0.0

    def update(self, current: RigidTransform) -> RigidTransform:
        """Blend ``current`` into the running estimate and return the result."""
        if not self.enabled or self.previous is None:
            self.previous = current
            return current

        prev = self.previous
        t = 1.0 - self.smoothing_factor
        basis = orthonormal_basis(prev.right.lerp(current.right, t),
                                  prev.forward.lerp(current.forward, t))
        if basis is None:
            # opposite orientations cancel out; jump to the new pose
            self.previous = current
            return current

        right, up, forward = basis
        smoothed = RigidTransform(
            position=prev.position.lerp(current.position, t),
            right=right,
            up=up,
            forward=forward,
            scale=prev.scale + (current.scale - prev.scale) * t,
        )
        self.previous = smoothed
        return smoothed

    def reset(self):
        """Forget the previous transform."""
        self.previous = None
