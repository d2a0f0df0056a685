"""
Utility functions for the glasses overlay engine
"""

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

from .exceptions import ConfigurationError
from .logging_utils import LoggerFactory, log_execution_time

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", log_file_dir: Optional[Union[str, Path]] = None,
                  enable_file_logging: bool = False,
                  log_format: Optional[str] = None) -> logging.Logger:
    """Setup logging configuration and return the package logger"""
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{log_level}'", config_key="level")

    LoggerFactory.setup(
        log_dir=Path(log_file_dir) if log_file_dir else None,
        level=level,
        enable_file_logging=enable_file_logging,
        log_format=log_format,
    )
    package_logger = LoggerFactory.get_logger("glasses_overlay")
    package_logger.setLevel(level)
    return package_logger


class FPSCounter:
    """
    Frame rate counter for real-time applications
    """

    def __init__(self, window_size: int = 30):
        """
        Initialize FPS counter

        Args:
            window_size: Number of frames to average over
        """
        self.window_size = window_size
        self.frame_times: List[float] = []
        self.last_time = time.perf_counter()

    def update(self) -> float:
        """
        Update FPS counter and return current FPS

        Returns:
            Current FPS
        """
        current_time = time.perf_counter()
        frame_time = current_time - self.last_time
        self.last_time = current_time

        self.frame_times.append(frame_time)
        if len(self.frame_times) > self.window_size:
            self.frame_times.pop(0)

        avg_frame_time = sum(self.frame_times) / len(self.frame_times)
        return 1.0 / avg_frame_time if avg_frame_time > 0 else 0.0

    def reset(self):
        """Reset FPS counter"""
        self.frame_times = []
        self.last_time = time.perf_counter()


def draw_keypoints(image: np.ndarray, keypoints: List[Tuple[float, float]],
                   color: Tuple[int, int, int] = (255, 0, 0),
                   radius: int = 3) -> np.ndarray:
    """
    Draw keypoints on image

    Args:
        image: Input image
        keypoints: List of (x, y) pixel coordinates
        color: Keypoint color in BGR format
        radius: Keypoint radius

    Returns:
        Image with keypoints drawn
    """
    for x, y in keypoints:
        cv2.circle(image, (int(round(x)), int(round(y))), radius, color, -1)

    return image


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any], path: str = "") -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        key_path = f"{path}.{key}" if path else key
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value, key_path)
        else:
            merged[key] = value
    return merged


def default_config() -> Dict[str, Any]:
    """Collect the module-level configuration dicts into one nested dict."""
    from config import config as defaults

    return copy.deepcopy({
        "landmarks": defaults.LANDMARK_INDICES,
        "pose": defaults.POSE_CONFIG,
        "overlay": defaults.OVERLAY_CONFIG,
        "render_3d": defaults.RENDER_3D_CONFIG,
        "detector": defaults.DETECTOR_CONFIG,
        "assets": defaults.ASSETS,
        "realtime": defaults.REALTIME_CONFIG,
        "logging": defaults.LOGGING_CONFIG,
    })


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration, merging an optional JSON override file onto the defaults

    Args:
        path: JSON file whose top-level keys are configuration sections

    Returns:
        Nested configuration dictionary
    """
    config = default_config()
    if path is None:
        return config

    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read configuration file '{path}'", cause=e)

    if not isinstance(overrides, dict):
        raise ConfigurationError("Configuration file must contain a JSON object")

    unknown = sorted(set(overrides) - set(config))
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration section(s): {', '.join(unknown)}",
            config_key=unknown[0],
        )

    logger.info(f"Loaded configuration overrides from {path}")
    return _deep_merge(config, overrides)


def save_config(config: Dict[str, Any], path: Union[str, Path]) -> Path:
    """
    Save configuration as JSON (paths are written as strings)

    Args:
        config: Nested configuration dictionary
        path: Output file path

    Returns:
        Path written
    """
    path = Path(path)
    ensure_directory(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, default=str)
    return path


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, create if it doesn't

    Args:
        path: Directory path

    Returns:
        Path object
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = [
    'setup_logging', 'log_execution_time', 'LoggerFactory', 'FPSCounter',
    'draw_keypoints', 'default_config', 'load_config', 'save_config', 'ensure_directory'
]
