"""
Custom exception hierarchy for the glasses overlay engine.

Runtime conditions of a single frame (no face, degenerate anchor geometry,
stale video frame) are reported as values by the engine. The exceptions
below are reserved for contract violations and setup failures.
"""

from __future__ import annotations

from typing import Any, Optional


class OverlayBaseError(Exception):
    """
    Base exception for all overlay engine errors.

    Provides consistent error message formatting and optional
    context information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize the exception with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional context information
            cause: Original exception that caused this error
        """
        self.context = context or {}
        self.cause = cause

        full_message = message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            full_message = f"{message} [{context_str}]"

        if cause:
            full_message = f"{full_message} (caused by: {cause})"

        super().__init__(full_message)


class LandmarkError(OverlayBaseError):
    """Errors related to landmark data."""
    pass


class InvalidLandmarkSetError(LandmarkError):
    """A landmark set does not honour the detector contract."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        size: Optional[int] = None
    ):
        super().__init__(
            message,
            context={"index": index, "size": size}
        )


class PoseError(OverlayBaseError):
    """Errors related to pose estimation and projection."""
    pass


class UnstablePoseError(PoseError):
    """An unstable pose estimate was handed to a consumer that needs a transform."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation} an unstable pose estimate",
            context={"operation": operation}
        )


class EngineError(OverlayBaseError):
    """Errors related to the frame loop lifecycle."""
    pass


class EngineNotReadyError(EngineError):
    """The frame loop was started before every collaborator reported ready."""

    def __init__(self, pending: list[str]):
        super().__init__(
            "Frame loop cannot start before all collaborators are ready",
            context={"pending": ", ".join(pending)}
        )


class AssetLoadError(OverlayBaseError):
    """Failed to load an accessory asset (sprite image or 3D model)."""

    def __init__(
        self,
        asset: str,
        path: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Failed to load asset '{asset}'",
            context={"asset": asset, "path": path},
            cause=cause
        )


class DetectorError(OverlayBaseError):
    """Errors raised while creating or running the landmark detector."""

    def __init__(
        self,
        message: str,
        model_path: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message,
            context={"model_path": model_path},
            cause=cause
        )


class CameraError(OverlayBaseError):
    """Camera-related errors."""

    def __init__(
        self,
        camera_id: int,
        operation: str = "access",
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Camera error: failed to {operation} camera {camera_id}",
            context={"camera_id": camera_id, "operation": operation},
            cause=cause
        )


class ConfigurationError(OverlayBaseError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message,
            context={"config_key": config_key},
            cause=cause
        )
