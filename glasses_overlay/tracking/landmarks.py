"""
Facial landmark data types and landmark frame sources.

A landmark source is polled once per tick and returns either nothing (no
face in the current video frame) or a complete ``LandmarkSet`` for the
primary face. The MediaPipe implementation runs the FaceLandmarker task in
VIDEO mode on whatever frame the frame provider currently exposes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from ..utils.exceptions import DetectorError, InvalidLandmarkSetError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LandmarkPoint:
    """
    A single face landmark.

    x and y are normalized image coordinates in [0, 1]; z is a relative
    depth whose sign and scale are defined by the detector.
    """

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class AnchorIndices:
    """Indices of the anchor points inside a face mesh landmark set."""

    left_eye_outer: int = 33
    right_eye_outer: int = 263
    nose_tip: int = 1
    forehead_center: int = 168

    @classmethod
    def from_config(cls, config: dict) -> "AnchorIndices":
        return cls(**{k: int(v) for k, v in config.items()})

    def required_size(self) -> int:
        return max(self.left_eye_outer, self.right_eye_outer,
                   self.nose_tip, self.forehead_center) + 1


class LandmarkSet(Sequence[LandmarkPoint]):
    """
    Immutable ordered landmarks of one detected face.

    Only constructed when a face was found, so it is never empty. Looking up
    an index the detector did not produce is a contract violation and raises
    ``InvalidLandmarkSetError``.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[LandmarkPoint]):
        self._points: Tuple[LandmarkPoint, ...] = tuple(points)
        if not self._points:
            raise InvalidLandmarkSetError("A landmark set needs at least one point", size=0)

    @classmethod
    def from_array(cls, array: Union[np.ndarray, Sequence[Sequence[float]]]) -> "LandmarkSet":
        """Build from an (N, 2) or (N, 3) array of normalized coordinates."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise InvalidLandmarkSetError(
                f"Expected an (N, 2) or (N, 3) array, got shape {arr.shape}")
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((arr.shape[0], 1))])
        return cls(LandmarkPoint(float(x), float(y), float(z)) for x, y, z in arr)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[LandmarkPoint]:
        return iter(self._points)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self._points[index]
        if not 0 <= index < len(self._points):
            raise InvalidLandmarkSetError(
                "Landmark index out of range", index=index, size=len(self._points))
        return self._points[index]

    def __repr__(self) -> str:
        return f"LandmarkSet(size={len(self._points)})"

    def anchors(self, indices: AnchorIndices) -> Tuple[LandmarkPoint, LandmarkPoint,
                                                       LandmarkPoint, LandmarkPoint]:
        """Return (left eye, right eye, nose tip, forehead) for the given indices."""
        return (
            self[indices.left_eye_outer],
            self[indices.right_eye_outer],
            self[indices.nose_tip],
            self[indices.forehead_center],
        )

    def to_array(self) -> np.ndarray:
        return np.array([(p.x, p.y, p.z) for p in self._points], dtype=np.float64)


class LandmarkFrameSource(ABC):
    """
    Pull-based landmark provider polled by the frame loop.
    """

    @abstractmethod
    def try_get_landmarks(self, timestamp_ms: float) -> Optional[LandmarkSet]:
        """Landmarks of the primary face in the current frame, or None."""

    def is_ready(self) -> bool:
        return True

    def close(self) -> None:
        pass


class MediaPipeLandmarkSource(LandmarkFrameSource):
    """
    MediaPipe FaceLandmarker source.

    Notes:
    - ``frame_provider`` returns the current BGR video frame (or None when
      no frame is available yet); it plays the role of the video element.
    - The landmarker runs in VIDEO mode, which requires strictly increasing
      integer timestamps. Markers that round to an already used millisecond
      are bumped past it.
    """

    def __init__(
        self,
        frame_provider: Callable[[], Optional[np.ndarray]],
        model_path: Union[str, Path],
        num_faces: int = 1,
        delegate: str = "CPU",
        min_face_detection_confidence: float = 0.5,
        min_face_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_url: Optional[str] = None,
    ) -> None:
        self.frame_provider = frame_provider
        self.model_path = Path(model_path)
        self._landmarker = None
        self._last_detector_ms: Optional[int] = None

        if not self.model_path.exists():
            hint = f" Download it from {model_url}" if model_url else ""
            raise DetectorError(
                f"FaceLandmarker model not found.{hint}",
                model_path=str(self.model_path),
            )

        try:
            import mediapipe as mp
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision
        except ImportError as e:
            raise DetectorError("MediaPipe is not installed", cause=e)

        self._mp = mp
        base_options = python.BaseOptions(
            model_asset_path=str(self.model_path),
            delegate=(python.BaseOptions.Delegate.GPU if delegate.upper() == "GPU"
                      else python.BaseOptions.Delegate.CPU),
        )
        options = vision.FaceLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_faces=int(num_faces),
            min_face_detection_confidence=float(min_face_detection_confidence),
            min_face_presence_confidence=float(min_face_presence_confidence),
            min_tracking_confidence=float(min_tracking_confidence),
        )
        try:
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise DetectorError("Could not create FaceLandmarker",
                                model_path=str(self.model_path), cause=e)

        logger.info(f"FaceLandmarker ready ({self.model_path.name}, delegate={delegate})")

    def is_ready(self) -> bool:
        return self._landmarker is not None

    def try_get_landmarks(self, timestamp_ms: float) -> Optional[LandmarkSet]:
        frame = self.frame_provider()
        if frame is None or self._landmarker is None:
            return None

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(mp_image, self._detector_timestamp(timestamp_ms))

        if not result or not result.face_landmarks:
            return None

        face = result.face_landmarks[0]
        return LandmarkSet(LandmarkPoint(float(p.x), float(p.y), float(p.z)) for p in face)

    def _detector_timestamp(self, timestamp_ms: float) -> int:
        ms = int(round(timestamp_ms))
        if self._last_detector_ms is not None and ms <= self._last_detector_ms:
            ms = self._last_detector_ms + 1
        self._last_detector_ms = ms
        return ms

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
