"""
Geometry module initialization.

Small immutable vector/matrix types shared by the pose estimator, the
overlay projector and the render targets.
"""

from .vector import Vec3, Mat3

__all__ = [
    'Vec3',
    'Mat3'
]
