"""
Per-frame driver of the overlay pipeline.

The frame loop is ticked once per displayed frame from a single thread.
Each tick pulls landmarks for a new video frame, estimates the head pose,
projects it for the active render mode and hands the command to the
matching render target. A tick never raises because of a bad frame: no
face, degenerate geometry and stale frames all end the tick early and
leave the render targets as they were.
"""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..overlay.mode import ModeController, RenderMode
from ..overlay.projector import OverlayProjector
from ..render.base import RenderTarget
from ..tracking.landmarks import LandmarkFrameSource
from ..tracking.pose_estimator import PoseEstimator
from ..tracking.smoothing import TransformSmoother
from ..utils.exceptions import EngineError, EngineNotReadyError, UnstablePoseError

logger = logging.getLogger(__name__)


class TickResult(Enum):
    """Outcome of a single frame loop tick."""

    STALE_FRAME = "stale_frame"
    NO_FACE = "no_face"
    UNSTABLE = "unstable"
    RENDERED = "rendered"


@dataclass
class EngineContext:
    """
    Everything the frame loop works with, passed explicitly.

    Target visibility follows the mode controller from construction on.
    """

    source: LandmarkFrameSource
    sprite_target: RenderTarget
    model_target: RenderTarget
    estimator: PoseEstimator = field(default_factory=PoseEstimator)
    projector: OverlayProjector = field(default_factory=OverlayProjector)
    mode_controller: ModeController = field(default_factory=ModeController)
    smoother: TransformSmoother = field(default_factory=TransformSmoother)

    def __post_init__(self):
        self.mode_controller.add_listener(lambda _old, _new: self.sync_visibility())
        self.sync_visibility()

    @property
    def targets(self) -> Dict[RenderMode, RenderTarget]:
        return {RenderMode.TWO_D: self.sprite_target, RenderMode.THREE_D: self.model_target}

    def target_for(self, mode: RenderMode) -> RenderTarget:
        return self.targets[mode]

    def sync_visibility(self) -> None:
        for mode, target in self.targets.items():
            target.set_visible(self.mode_controller.is_visible(mode))

    def pending_collaborators(self) -> List[str]:
        """Names of collaborators that are not ready yet."""
        pending = []
        if not self.source.is_ready():
            pending.append("landmark_source")
        for target in self.targets.values():
            if not target.is_ready():
                pending.append(target.name())
        return pending

    def close(self) -> None:
        self.source.close()


class FrameLoop:
    """
    Cooperative, single-threaded pipeline driver.
    """

    def __init__(self, context: EngineContext):
        self.context = context
        self.running = False
        self.last_timestamp_ms: Optional[float] = None
        self.last_mode: Optional[RenderMode] = None
        self.stats: Counter = Counter()

    def start(self) -> None:
        """
        Allow ticking.

        Raises:
            EngineNotReadyError: if a collaborator is not ready
        """
        pending = self.context.pending_collaborators()
        if pending:
            raise EngineNotReadyError(pending)
        self.running = True
        logger.info(f"Frame loop started in {self.context.mode_controller.mode.value} mode")

    def stop(self) -> None:
        if self.running:
            logger.info(f"Frame loop stopped: {dict(self.stats)}")
        self.running = False

    def _handle_mode_change(self, mode: RenderMode) -> None:
        if self.last_mode is not None and mode is not self.last_mode:
            for target in self.context.targets.values():
                target.clear()
            self.context.smoother.reset()
            logger.debug(f"Cleared render targets after switch to {mode.value}")
        self.last_mode = mode

    def tick(self, timestamp_ms: float) -> TickResult:
        """
        Run the pipeline for the video frame with marker ``timestamp_ms``.

        Markers must increase for every new video frame; a marker that is
        not newer than the last one means the frame was already processed
        and the landmark source is not queried.
        """
        if not self.running:
            raise EngineError("Frame loop ticked before start()")

        ctx = self.context
        mode = ctx.mode_controller.mode
        self._handle_mode_change(mode)

        result = self._process(timestamp_ms, mode)
        self.stats[result.value] += 1
        return result

    def _process(self, timestamp_ms: float, mode: RenderMode) -> TickResult:
        if self.last_timestamp_ms is not None and timestamp_ms <= self.last_timestamp_ms:
            return TickResult.STALE_FRAME
        self.last_timestamp_ms = timestamp_ms

        ctx = self.context
        landmarks = ctx.source.try_get_landmarks(timestamp_ms)
        if landmarks is None:
            return TickResult.NO_FACE

        estimate = ctx.estimator.estimate(landmarks)
        if not estimate.stable:
            logger.debug(f"Skipping unstable pose at {timestamp_ms:.1f} ms")
            return TickResult.UNSTABLE

        if ctx.smoother.enabled:
            estimate = dataclasses.replace(
                estimate, transform=ctx.smoother.update(estimate.transform))

        try:
            command = ctx.projector.project(estimate, mode)
        except UnstablePoseError:
            logger.debug(f"Skipping degenerate {mode.value} placement at {timestamp_ms:.1f} ms")
            return TickResult.UNSTABLE
        ctx.target_for(mode).apply(command)
        return TickResult.RENDERED

    def run(self, next_timestamp: Callable[[], Optional[float]],
            on_tick: Optional[Callable[[TickResult], None]] = None) -> None:
        """
        Tick until stopped or until ``next_timestamp`` returns None.

        Args:
            next_timestamp: Called once per display refresh; returns the
                marker of the current video frame
            on_tick: Called with each tick result
        """
        self.start()
        try:
            while self.running:
                timestamp_ms = next_timestamp()
                if timestamp_ms is None:
                    break
                result = self.tick(timestamp_ms)
                if on_tick is not None:
                    on_tick(result)
        finally:
            self.stop()
