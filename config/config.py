"""
Configuration file for the Real-Time Glasses Overlay engine
"""

import math
import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"
MODELS_DIR = PROJECT_ROOT / "models"
LOGS_DIR = PROJECT_ROOT / "logs"

# MediaPipe face mesh indices of the anchor points
LANDMARK_INDICES = {
    "left_eye_outer": 33,
    "right_eye_outer": 263,
    "nose_tip": 1,
    "forehead_center": 168,
}

# Pose reconstruction
POSE_CONFIG = {
    "depth_scale": 2.0,           # k in world(p)
    "scale_calibration": 0.015,   # eye distance -> model scale
    "min_vector_length": 1e-9,    # below this an axis is treated as degenerate
    "smoothing_factor": 0.0,      # 0 disables temporal smoothing
}

# Overlay projection
OVERLAY_CONFIG = {
    "mirror": True,               # the camera feed is shown as a mirror image
    "width_multiplier": 2.4,      # sprite width = eye distance * multiplier
    "aspect_ratio": 2.5,          # sprite width / height
    # engine frame (x right, y down, z into screen) -> renderer (y up, z to viewer)
    "axis_map": [
        [1.0, 0.0, 0.0],
        [0.0, -1.0, 0.0],
        [0.0, 0.0, -1.0],
    ],
    "min_eye_distance": 1e-9,    # pixels; closer eyes cannot place the sprite
}

# 3D render target
RENDER_3D_CONFIG = {
    "camera_z": 3.0,
    "near": 0.1,
    "far": 10.0,
    # XYZ euler applied once at load: model y-up/z-front into the head frame
    "model_rotation": (math.pi / 2, 0.0, 0.0),
    # largest model extent after normalization, multiplied by the per-frame scale
    "model_extent": 160.0,
    "ambient_intensity": 0.6,
    "light_direction": (5.0, 5.0, 5.0),
    "color": (40, 40, 40),        # BGR
    "mirror_output": True,
}

# Landmark detector
DETECTOR_CONFIG = {
    "model_path": MODELS_DIR / "face_landmarker.task",
    "model_url": (
        "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
        "face_landmarker/float16/1/face_landmarker.task"
    ),
    "num_faces": 1,
    "delegate": "GPU" if os.getenv("GLASSES_OVERLAY_GPU") else "CPU",
    "min_face_detection_confidence": 0.5,
    "min_face_presence_confidence": 0.5,
    "min_tracking_confidence": 0.5,
}

# Accessory assets
ASSETS = {
    "sprite": ASSETS_DIR / "glasses.png",
    "model": ASSETS_DIR / "sunglasses.glb",
}

# Real-time processing configurations
REALTIME_CONFIG = {
    "initial_mode": "2d",
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30
    },
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s",
    "log_dir": LOGS_DIR,
    "enable_file_logging": False,
}

# Export all configurations
__all__ = [
    "PROJECT_ROOT", "ASSETS_DIR", "MODELS_DIR", "LOGS_DIR",
    "LANDMARK_INDICES", "POSE_CONFIG", "OVERLAY_CONFIG", "RENDER_3D_CONFIG",
    "DETECTOR_CONFIG", "ASSETS", "REALTIME_CONFIG", "LOGGING_CONFIG"
]
