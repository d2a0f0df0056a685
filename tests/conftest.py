from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import pytest
import trimesh

from glasses_overlay.engine import EngineContext, FrameLoop
from glasses_overlay.overlay import ModeController, OverlayProjector
from glasses_overlay.render import ModelRenderTarget, SpriteRenderTarget, prepare_mesh
from glasses_overlay.tracking import (
    AnchorIndices, LandmarkFrameSource, LandmarkPoint, LandmarkSet, PoseEstimator
)

FRAME_SIZE = (640, 480)


def make_landmarks(left=(0.3, 0.5, 0.0), right=(0.7, 0.5, 0.0),
                   nose=(0.5, 0.6, -0.05), forehead=(0.5, 0.4, 0.0),
                   size: int = 478, indices: AnchorIndices = AnchorIndices()) -> LandmarkSet:
    """Synthetic face: every point at the image center except the anchors."""
    points: List[LandmarkPoint] = [LandmarkPoint(0.5, 0.5, 0.0)] * size
    points[indices.left_eye_outer] = LandmarkPoint(*left)
    points[indices.right_eye_outer] = LandmarkPoint(*right)
    points[indices.nose_tip] = LandmarkPoint(*nose)
    points[indices.forehead_center] = LandmarkPoint(*forehead)
    return LandmarkSet(points)


class ScriptedLandmarkSource(LandmarkFrameSource):
    """Returns queued landmark sets (or None) and counts queries."""

    def __init__(self, frames: Sequence[Optional[LandmarkSet]] = (), default=None, ready=True):
        self.frames = list(frames)
        self.default = default
        self.ready = ready
        self.calls: List[float] = []
        self.closed = False

    def try_get_landmarks(self, timestamp_ms):
        self.calls.append(timestamp_ms)
        if self.frames:
            return self.frames.pop(0)
        return self.default

    def is_ready(self):
        return self.ready

    def close(self):
        self.closed = True


@pytest.fixture
def landmarks() -> LandmarkSet:
    return make_landmarks()


@pytest.fixture
def estimator() -> PoseEstimator:
    return PoseEstimator()


@pytest.fixture
def projector() -> OverlayProjector:
    return OverlayProjector(frame_size=FRAME_SIZE)


@pytest.fixture
def sprite() -> np.ndarray:
    image = np.zeros((8, 20, 4), dtype=np.uint8)
    image[..., 2] = 255  # red
    image[..., 3] = 255
    return image


@pytest.fixture
def box_mesh():
    mesh = trimesh.creation.box(extents=(1.0, 0.4, 0.2))
    return np.asarray(mesh.vertices), np.asarray(mesh.faces)


@pytest.fixture
def sprite_target(sprite) -> SpriteRenderTarget:
    return SpriteRenderTarget(sprite, FRAME_SIZE)


@pytest.fixture
def model_target(box_mesh) -> ModelRenderTarget:
    vertices, faces = box_mesh
    return ModelRenderTarget(prepare_mesh(vertices, extent=1.0), faces, FRAME_SIZE,
                             mirror_output=False)


@pytest.fixture
def make_loop(sprite_target, model_target, projector):
    def _make(source: LandmarkFrameSource, smoother=None) -> FrameLoop:
        kwargs = {}
        if smoother is not None:
            kwargs["smoother"] = smoother
        context = EngineContext(
            source=source,
            sprite_target=sprite_target,
            model_target=model_target,
            projector=projector,
            mode_controller=ModeController(),
            **kwargs,
        )
        return FrameLoop(context)
    return _make
