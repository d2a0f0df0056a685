"""
Render target module initialization.

This module provides the two accessory surfaces driven by the frame loop:
an OpenCV sprite target for the image-plane overlay and a trimesh-backed
model target for the 3D overlay.
"""

from .base import RenderTarget
from .sprite import SpriteRenderTarget, load_sprite, affine_matrix
from .model3d import ModelRenderTarget, load_model, prepare_mesh, euler_xyz_matrix

__all__ = [
    'RenderTarget',
    'SpriteRenderTarget',
    'load_sprite',
    'affine_matrix',
    'ModelRenderTarget',
    'load_model',
    'prepare_mesh',
    'euler_xyz_matrix'
]
