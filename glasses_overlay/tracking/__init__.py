"""
Tracking module initialization.

This module provides the landmark data model, landmark frame sources
(MediaPipe FaceLandmarker) and the rigid head pose estimator with optional
temporal smoothing.
"""

from .landmarks import (
    LandmarkPoint, LandmarkSet, AnchorIndices,
    LandmarkFrameSource, MediaPipeLandmarkSource
)
from .pose_estimator import PoseEstimator, PoseEstimate, RigidTransform, orthonormal_basis
from .smoothing import TransformSmoother

__all__ = [
    'LandmarkPoint',
    'LandmarkSet',
    'AnchorIndices',
    'LandmarkFrameSource',
    'MediaPipeLandmarkSource',
    'PoseEstimator',
    'PoseEstimate',
    'RigidTransform',
    'orthonormal_basis',
    'TransformSmoother'
]
