"""
Render mode state machine.

Two states, TWO_D (initial) and THREE_D, switched only by explicit
commands. Target visibility is derived from the state, so exactly one
render target is visible at any time.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)


class RenderMode(Enum):
    """Active overlay rendering mode."""

    TWO_D = "2d"
    THREE_D = "3d"

    @classmethod
    def parse(cls, value) -> "RenderMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown render mode: {value!r} (expected '2d' or '3d')")


ModeListener = Callable[[RenderMode, RenderMode], None]


class ModeController:
    """
    Holds the current render mode and which target surface is visible.
    """

    def __init__(self, initial_mode: RenderMode = RenderMode.TWO_D):
        self._mode = RenderMode.parse(initial_mode)
        self._listeners: List[ModeListener] = []

    @property
    def mode(self) -> RenderMode:
        return self._mode

    @property
    def visible_targets(self) -> Tuple[RenderMode, ...]:
        return (self._mode,)

    def is_visible(self, target: RenderMode) -> bool:
        return target is self._mode

    def add_listener(self, listener: ModeListener) -> None:
        """Register ``listener(old, new)``, called on real transitions only."""
        self._listeners.append(listener)

    def activate(self, mode: RenderMode) -> bool:
        """
        Switch to ``mode``.

        Returns:
            True if the mode changed, False if it was already active
        """
        mode = RenderMode.parse(mode)
        if mode is self._mode:
            return False

        previous, self._mode = self._mode, mode
        logger.info(f"Render mode {previous.value} -> {mode.value}")
        for listener in self._listeners:
            listener(previous, mode)
        return True

    def activate_two_d(self) -> bool:
        return self.activate(RenderMode.TWO_D)

    def activate_three_d(self) -> bool:
        return self.activate(RenderMode.THREE_D)
