"""
Overlay module initialization.

Render mode state machine and the projector that turns pose estimates into
render target commands.
"""

from .mode import RenderMode, ModeController
from .projector import Affine2D, Transform3D, OverlayCommand, OverlayProjector

__all__ = [
    'RenderMode',
    'ModeController',
    'Affine2D',
    'Transform3D',
    'OverlayCommand',
    'OverlayProjector'
]
