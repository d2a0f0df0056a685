"""
2D sprite render target.

Draws a fixed RGBA glasses image under an affine transform (translate,
rotate, scale) into a transparent layer with OpenCV, then alpha-blends the
layer over display frames.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from ..overlay.projector import Affine2D
from ..utils.exceptions import AssetLoadError
from .base import RenderTarget

logger = logging.getLogger(__name__)


def load_sprite(path: Union[str, Path]) -> np.ndarray:
    """
    Load a sprite image as BGRA.

    Images without an alpha channel are treated as fully opaque.
    """
    path = Path(path)
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise AssetLoadError("sprite", str(path))
    return ensure_bgra(image)


def ensure_bgra(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    elif image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    if image.dtype != np.uint8:
        raise AssetLoadError("sprite", cause=ValueError(f"unsupported dtype {image.dtype}"))
    return image


def affine_matrix(command: Affine2D, sprite_size: Tuple[int, int]) -> np.ndarray:
    """
    2x3 matrix mapping sprite pixels onto the command's rotated rectangle.

    The sprite center lands on ``command.translation``.
    """
    sw, sh = sprite_size
    sx = command.width / sw
    sy = command.height / sh
    c = math.cos(command.rotation_radians)
    s = math.sin(command.rotation_radians)
    cx, cy = command.translation

    half_w, half_h = sw / 2.0, sh / 2.0
    return np.array([
        [c * sx, -s * sy, cx - c * sx * half_w + s * sy * half_h],
        [s * sx, c * sy, cy - s * sx * half_w - c * sy * half_h],
    ], dtype=np.float64)


class SpriteRenderTarget(RenderTarget):
    """
    Image-plane render target for the 2D overlay mode.
    """

    def __init__(self, sprite: np.ndarray, frame_size: Tuple[int, int]):
        """
        Initialize the sprite target.

        Args:
            sprite: Glasses image (BGR or BGRA, uint8)
            frame_size: Display size in pixels (width, height)
        """
        super().__init__(frame_size)
        self.sprite = ensure_bgra(sprite)
        self.layer: Optional[np.ndarray] = None
        self.command: Optional[Affine2D] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], frame_size: Tuple[int, int]) -> "SpriteRenderTarget":
        sprite = load_sprite(path)
        logger.info(f"Loaded sprite {Path(path).name} ({sprite.shape[1]}x{sprite.shape[0]})")
        return cls(sprite, frame_size)

    def name(self) -> str:
        return "sprite_2d"

    def is_ready(self) -> bool:
        return self.sprite.size > 0

    def has_content(self) -> bool:
        return self.layer is not None

    def apply(self, command: Affine2D) -> None:
        if not isinstance(command, Affine2D):
            raise TypeError(f"{self.name()} expects Affine2D, got {type(command).__name__}")

        self.command = command
        if command.width <= 0 or command.height <= 0:
            self.layer = None
            return

        width, height = self.frame_size
        sprite_size = (self.sprite.shape[1], self.sprite.shape[0])
        self.layer = cv2.warpAffine(
            self.sprite, affine_matrix(command, sprite_size), (width, height),
            flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0))

    def clear(self) -> None:
        self.layer = None
        self.command = None

    def draw(self, frame: np.ndarray) -> np.ndarray:
        if frame.shape[:2] != self.layer.shape[:2]:
            raise ValueError(
                f"Frame shape {frame.shape[:2]} does not match layer {self.layer.shape[:2]}")

        alpha = self.layer[..., 3:4].astype(np.float32) / 255.0
        blended = (frame.astype(np.float32) * (1.0 - alpha) +
                   self.layer[..., :3].astype(np.float32) * alpha)
        return blended.round().astype(np.uint8)
