"""
Render the glasses overlay for a synthetic face in both modes and save the
results side by side. Handy for checking new assets or calibration values
without a camera.
"""

import argparse
import sys
from pathlib import Path

import cv2
import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from glasses_overlay.engine import build_engine
from glasses_overlay.tracking import AnchorIndices, LandmarkFrameSource, LandmarkPoint, LandmarkSet
from glasses_overlay.utils import draw_keypoints, load_config, setup_logging


class StaticFaceSource(LandmarkFrameSource):
    """Returns the same synthetic face for every frame."""

    def __init__(self, landmarks: LandmarkSet):
        self.landmarks = landmarks

    def try_get_landmarks(self, timestamp_ms):
        return self.landmarks


def synthetic_face(indices: AnchorIndices, tilt: float = 0.0, eye_gap: float = 0.16) -> LandmarkSet:
    """Camera-space landmarks for a face centered in the frame."""
    points = [LandmarkPoint(0.5, 0.5, 0.0)] * max(478, indices.required_size())
    points[indices.left_eye_outer] = LandmarkPoint(0.5 - eye_gap, 0.45 - tilt, 0.0)
    points[indices.right_eye_outer] = LandmarkPoint(0.5 + eye_gap, 0.45 + tilt, 0.0)
    points[indices.nose_tip] = LandmarkPoint(0.5, 0.55, -0.05)
    points[indices.forehead_center] = LandmarkPoint(0.5, 0.35, 0.0)
    return LandmarkSet(points)


def render_mode(loop, mode: str, frame: np.ndarray, timestamp_ms: float) -> np.ndarray:
    ctx = loop.context
    ctx.mode_controller.activate(mode)
    loop.tick(timestamp_ms)
    out = frame.copy()
    for target in ctx.targets.values():
        out = target.compose(out)
    cv2.putText(out, f"Mode: {mode.upper()}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2)
    return out


def main():
    parser = argparse.ArgumentParser(description="Offline glasses overlay preview")
    parser.add_argument("--config", type=str, default=None, help="JSON configuration overrides")
    parser.add_argument("--tilt", type=float, default=0.03, help="Vertical eye offset (normalized)")
    parser.add_argument("--output", type=str, default="overlay_preview.png", help="Output image")
    parser.add_argument("--show", action="store_true", help="Display the result in a window")
    args = parser.parse_args()

    setup_logging("INFO")
    config = load_config(args.config)
    cam = config["realtime"]["camera"]
    frame_size = (cam["width"], cam["height"])

    indices = AnchorIndices.from_config(config["landmarks"])
    landmarks = synthetic_face(indices, tilt=args.tilt)
    frame = np.full((frame_size[1], frame_size[0], 3), 200, dtype=np.uint8)

    loop = build_engine(lambda: frame, frame_size, config, source=StaticFaceSource(landmarks))
    loop.start()

    anchors = [loop.context.projector.to_pixels(p) for p in landmarks.anchors(indices)]
    frame = draw_keypoints(frame, anchors, color=(0, 0, 255))

    panels = [render_mode(loop, mode, frame, float(i + 1)) for i, mode in enumerate(("2d", "3d"))]
    loop.stop()

    preview = np.hstack(panels)
    cv2.imwrite(args.output, preview)
    print(f"Saved preview to {args.output}")

    if args.show:
        cv2.imshow("Glasses Overlay Preview", preview)
        cv2.waitKey(0)
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
