"""
Render target interface.

A render target receives overlay commands from the frame loop and draws
its accessory onto display frames. Targets keep their last applied state
until they are cleared, so a frame without a detected face simply shows
the previous placement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np


class RenderTarget(ABC):
    """
    Base class for the 2D and 3D accessory surfaces.
    """

    def __init__(self, frame_size: Tuple[int, int]):
        self.frame_size = (int(frame_size[0]), int(frame_size[1]))
        self.visible = False

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def is_ready(self) -> bool: ...

    @abstractmethod
    def apply(self, command) -> None:
        """Store the placement from an overlay command."""

    @abstractmethod
    def clear(self) -> None:
        """Drop the current placement so nothing is drawn."""

    @abstractmethod
    def has_content(self) -> bool: ...

    @abstractmethod
    def draw(self, frame: np.ndarray) -> np.ndarray:
        """Draw the accessory onto ``frame`` (BGR, display orientation)."""

    def set_visible(self, visible: bool) -> None:
        self.visible = bool(visible)

    def compose(self, frame: np.ndarray) -> np.ndarray:
        """Draw onto ``frame`` if visible and placed, otherwise return it unchanged."""
        if not self.visible or not self.has_content():
            return frame
        return self.draw(frame)
