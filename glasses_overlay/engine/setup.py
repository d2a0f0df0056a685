"""
One-time engine setup.

Loads the accessory assets and the landmark detector, wires them into an
``EngineContext`` and returns a frame loop that can be started right away.
Any failure surfaces here, before the first tick is scheduled.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from ..overlay.mode import ModeController, RenderMode
from ..overlay.projector import OverlayProjector
from ..render.model3d import ModelRenderTarget
from ..render.sprite import SpriteRenderTarget
from ..tracking.landmarks import LandmarkFrameSource, MediaPipeLandmarkSource
from ..tracking.pose_estimator import PoseEstimator
from ..tracking.smoothing import TransformSmoother
from ..utils import load_config
from ..utils.logging_utils import log_execution_time
from .frame_loop import EngineContext, FrameLoop

logger = logging.getLogger(__name__)


def create_landmark_source(detector_config: Dict[str, Any],
                           frame_provider: Callable[[], Optional[np.ndarray]]) -> LandmarkFrameSource:
    """Create the MediaPipe landmark source from the detector section."""
    return MediaPipeLandmarkSource(
        frame_provider,
        model_path=detector_config["model_path"],
        num_faces=detector_config.get("num_faces", 1),
        delegate=detector_config.get("delegate", "CPU"),
        min_face_detection_confidence=detector_config.get("min_face_detection_confidence", 0.5),
        min_face_presence_confidence=detector_config.get("min_face_presence_confidence", 0.5),
        min_tracking_confidence=detector_config.get("min_tracking_confidence", 0.5),
        model_url=detector_config.get("model_url"),
    )


def create_model_target(render_config: Dict[str, Any], model_path,
                        frame_size: Tuple[int, int]) -> ModelRenderTarget:
    return ModelRenderTarget.from_file(
        model_path, frame_size,
        model_rotation=render_config.get("model_rotation", (0.0, 0.0, 0.0)),
        model_extent=render_config.get("model_extent", 1.0),
        camera_z=render_config.get("camera_z", 3.0),
        near=render_config.get("near", 0.1),
        far=render_config.get("far", 10.0),
        ambient_intensity=render_config.get("ambient_intensity", 0.6),
        light_direction=render_config.get("light_direction", (5.0, 5.0, 5.0)),
        color=tuple(render_config.get("color", (40, 40, 40))),
        mirror_output=render_config.get("mirror_output", True),
    )


@log_execution_time()
def build_engine(frame_provider: Callable[[], Optional[np.ndarray]],
                 frame_size: Tuple[int, int],
                 config: Optional[Dict[str, Any]] = None,
                 source: Optional[LandmarkFrameSource] = None) -> FrameLoop:
    """
    Build a ready-to-start frame loop.

    Args:
        frame_provider: Returns the current BGR video frame
        frame_size: Display size in pixels (width, height)
        config: Nested configuration (defaults from ``load_config()``)
        source: Landmark source to use instead of the MediaPipe one

    Returns:
        Frame loop over a fully initialized context
    """
    config = config or load_config()
    assets = config["assets"]

    sprite_target = SpriteRenderTarget.from_file(Path(assets["sprite"]), frame_size)
    model_target = create_model_target(config["render_3d"], Path(assets["model"]), frame_size)

    if source is None:
        source = create_landmark_source(config["detector"], frame_provider)

    context = EngineContext(
        source=source,
        sprite_target=sprite_target,
        model_target=model_target,
        estimator=PoseEstimator.from_config(config["pose"], config.get("landmarks")),
        projector=OverlayProjector.from_config(config["overlay"], frame_size),
        mode_controller=ModeController(
            RenderMode.parse(config["realtime"].get("initial_mode", "2d"))),
        smoother=TransformSmoother(config["pose"].get("smoothing_factor", 0.0)),
    )
    logger.info(f"Engine ready for {frame_size[0]}x{frame_size[1]} frames")
    return FrameLoop(context)
