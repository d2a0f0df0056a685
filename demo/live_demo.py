"""
Live demo application for the real-time glasses overlay.

This script opens a webcam (or a video file), tracks the face with the
MediaPipe FaceLandmarker and draws virtual glasses on it, either as a flat
sprite or as a 3D model following head pose. Press 2/3 to switch modes.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.append(str(PROJECT_ROOT))

from glasses_overlay.engine import FrameLoop, TickResult, build_engine
from glasses_overlay.tracking import LandmarkFrameSource, LandmarkSet
from glasses_overlay.utils import FPSCounter, draw_keypoints, load_config, setup_logging
from glasses_overlay.utils.exceptions import CameraError, OverlayBaseError

logger = logging.getLogger("glasses_overlay.demo")


class RecordingLandmarkSource(LandmarkFrameSource):
    """Wraps a source and remembers the last landmark set for debug drawing."""

    def __init__(self, inner: LandmarkFrameSource):
        self.inner = inner
        self.last: Optional[LandmarkSet] = None

    def try_get_landmarks(self, timestamp_ms: float) -> Optional[LandmarkSet]:
        self.last = self.inner.try_get_landmarks(timestamp_ms)
        return self.last

    def is_ready(self) -> bool:
        return self.inner.is_ready()

    def close(self) -> None:
        self.inner.close()


class LiveDemo:
    """
    Webcam demonstration of the glasses overlay engine.
    """

    def __init__(self, config: dict, video_path: Optional[str] = None):
        """
        Initialize live demo system.

        Args:
            config: Nested configuration (see ``load_config``)
            video_path: Play a video file instead of opening the camera
        """
        self.config = config
        self.camera_config = config["realtime"]["camera"]
        self.video_path = video_path
        self.mirror = config["overlay"].get("mirror", True)

        self.current_frame: Optional[np.ndarray] = None
        self.frame_index = 0
        self.fps_counter = FPSCounter()
        self.show_fps = True
        self.show_anchors = False
        self.last_result: Optional[TickResult] = None

        self.cap = self._open_capture()
        width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.camera_config["width"]
        height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.camera_config["height"]
        self.frame_size = (width, height)
        logger.info(f"Capture opened at {width}x{height}")

        try:
            self.loop: FrameLoop = build_engine(lambda: self.current_frame, self.frame_size, config)
        except OverlayBaseError:
            self.cap.release()
            raise
        self.recorder = RecordingLandmarkSource(self.loop.context.source)
        self.loop.context.source = self.recorder
        self.loop.context.mode_controller.add_listener(
            lambda old, new: logger.info(f"Switched to {new.value.upper()} overlay"))

    def _open_capture(self) -> cv2.VideoCapture:
        if self.video_path:
            cap = cv2.VideoCapture(self.video_path)
            if not cap.isOpened():
                raise CameraError(-1, operation=f"open video '{self.video_path}' with")
            return cap

        device_id = self.camera_config["device_id"]
        cap = cv2.VideoCapture(device_id)
        if not cap.isOpened():
            raise CameraError(device_id, operation="open")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.camera_config["width"])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.camera_config["height"])
        cap.set(cv2.CAP_PROP_FPS, self.camera_config["fps"])
        return cap

    def _frame_timestamp_ms(self) -> float:
        if self.video_path:
            fps = self.cap.get(cv2.CAP_PROP_FPS) or self.camera_config["fps"]
            return self.frame_index * 1000.0 / fps
        return time.perf_counter() * 1000.0

    def next_timestamp(self) -> Optional[float]:
        """Grab the next video frame; None ends the loop."""
        ret, frame = self.cap.read()
        if not ret:
            logger.info("No more frames from capture")
            return None
        self.current_frame = frame
        self.frame_index += 1
        return self._frame_timestamp_ms()

    def render(self) -> np.ndarray:
        """Compose the display frame from the video and the visible target."""
        frame = self.current_frame
        display = cv2.flip(frame, 1) if self.mirror else frame.copy()

        ctx = self.loop.context
        for target in ctx.targets.values():
            display = target.compose(display)

        if self.show_anchors and self.recorder.last is not None:
            indices = ctx.estimator.indices
            anchors = self.recorder.last.anchors(indices)
            draw_keypoints(display, [ctx.projector.to_pixels(p) for p in anchors],
                           color=(0, 255, 255))

        if self.show_fps:
            fps = self.fps_counter.update()
            cv2.putText(display, f"FPS: {fps:.1f}", (10, 30),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2)

        mode_text = f"Mode: {ctx.mode_controller.mode.value.upper()}"
        if self.last_result is not None and self.last_result is not TickResult.RENDERED:
            mode_text += f" ({self.last_result.value.replace('_', ' ')})"
        cv2.putText(display, mode_text, (10, 60),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)

        controls_text = "Controls: 2-2D, 3-3D, A-Anchors, F-FPS, Q-Quit"
        cv2.putText(display, controls_text, (10, display.shape[0] - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)
        return display

    def handle_key_input(self, key: int) -> bool:
        """
        Handle keyboard input for demo control.

        Args:
            key: Key code

        Returns:
            False if should exit, True otherwise
        """
        key &= 0xFF
        controller = self.loop.context.mode_controller
        if key in (ord('q'), 27):
            return False
        elif key == ord('2'):
            controller.activate_two_d()
        elif key == ord('3'):
            controller.activate_three_d()
        elif key == ord('a'):
            self.show_anchors = not self.show_anchors
        elif key == ord('f'):
            self.show_fps = not self.show_fps
        return True

    def on_tick(self, result: TickResult) -> None:
        self.last_result = result
        cv2.imshow('Glasses Overlay', self.render())
        if not self.handle_key_input(cv2.waitKey(1)):
            self.loop.stop()

    def run(self):
        """
        Run the live demo.
        """
        logger.info("Starting live demo. Press 'q' to quit.")
        try:
            self.loop.run(self.next_timestamp, on_tick=self.on_tick)
        except KeyboardInterrupt:
            logger.info("Demo interrupted by user")
        finally:
            self.cap.release()
            self.loop.context.close()
            cv2.destroyAllWindows()


def main():
    """Main entry point for the demo application."""
    parser = argparse.ArgumentParser(description='Live Glasses Overlay Demo')

    parser.add_argument('--camera', type=int, default=None,
                        help='Camera device ID (default: from config)')
    parser.add_argument('--video', type=str, default=None,
                        help='Play a video file instead of the camera')
    parser.add_argument('--mode', type=str, default=None, choices=['2d', '3d'],
                        help='Initial render mode (default: from config)')
    parser.add_argument('--sprite', type=str, default=None,
                        help='Glasses PNG for the 2D overlay')
    parser.add_argument('--model', type=str, default=None,
                        help='Glasses model (GLB/OBJ) for the 3D overlay')
    parser.add_argument('--landmarker', type=str, default=None,
                        help='Path to the MediaPipe face_landmarker.task model')
    parser.add_argument('--smoothing', type=float, default=None,
                        help='Temporal smoothing factor in [0, 1) (default: from config)')
    parser.add_argument('--no-mirror', action='store_true',
                        help='Show the camera feed unmirrored')
    parser.add_argument('--show-anchors', action='store_true',
                        help='Draw the anchor landmarks')
    parser.add_argument('--config', type=str, default=None,
                        help='JSON file with configuration overrides')
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: from config)')
    parser.add_argument('--log-file', action='store_true',
                        help='Also write a timestamped log file')

    args = parser.parse_args()

    config = load_config(args.config)
    log_config = config["logging"]
    setup_logging(args.log_level or log_config["level"],
                  log_file_dir=log_config.get("log_dir"),
                  enable_file_logging=args.log_file or log_config.get("enable_file_logging", False),
                  log_format=log_config.get("format"))

    if args.camera is not None:
        config["realtime"]["camera"]["device_id"] = args.camera
    if args.mode is not None:
        config["realtime"]["initial_mode"] = args.mode
    if args.sprite is not None:
        config["assets"]["sprite"] = args.sprite
    if args.model is not None:
        config["assets"]["model"] = args.model
    if args.landmarker is not None:
        config["detector"]["model_path"] = args.landmarker
    if args.smoothing is not None:
        config["pose"]["smoothing_factor"] = args.smoothing
    if args.no_mirror:
        config["overlay"]["mirror"] = False
        config["render_3d"]["mirror_output"] = False

    try:
        demo = LiveDemo(config, video_path=args.video)
    except OverlayBaseError as e:
        logger.error(str(e))
        sys.exit(1)

    demo.show_anchors = args.show_anchors
    demo.run()


if __name__ == "__main__":
    main()
