"""
Engine module initialization.

This module provides the frame loop that drives landmark tracking, pose
estimation and overlay projection once per displayed frame, and the setup
phase that builds it from configuration.
"""

from .frame_loop import EngineContext, FrameLoop, TickResult
from .setup import build_engine, create_landmark_source, create_model_target

__all__ = [
    'EngineContext',
    'FrameLoop',
    'TickResult',
    'build_engine',
    'create_landmark_source',
    'create_model_target'
]
