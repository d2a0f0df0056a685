"""
3D model render target.

Loads the glasses model with trimesh, normalizes it once at load time and
rasterizes it per frame through a simple perspective camera with OpenCV.

Renderer axes: x right, y up, z toward the viewer. The camera sits at
(0, 0, camera_z) looking down -z, and its focal lengths are chosen so the
z = 0 plane spans the frame exactly ([-1, 1] on both axes), which is where
the pose estimator places the face.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np
import trimesh

from ..overlay.projector import Transform3D
from ..utils.exceptions import AssetLoadError
from .base import RenderTarget

logger = logging.getLogger(__name__)


def euler_xyz_matrix(angles: Sequence[float]) -> np.ndarray:
    """Rotation matrix Rx @ Ry @ Rz for XYZ euler angles in radians."""
    ax, ay, az = (float(a) for a in angles)
    cx, sx = np.cos(ax), np.sin(ax)
    cy, sy = np.cos(ay), np.sin(ay)
    cz, sz = np.cos(az), np.sin(az)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return rx @ ry @ rz


def prepare_mesh(vertices: np.ndarray, rotation: Sequence[float] = (0.0, 0.0, 0.0),
                 extent: float = 1.0) -> np.ndarray:
    """
    Center vertices on their bounding box, scale so the largest extent
    equals ``extent``, then apply the XYZ euler ``rotation``.
    """
    V = np.asarray(vertices, dtype=np.float64)
    min_bounds = V.min(axis=0)
    max_bounds = V.max(axis=0)
    center = (min_bounds + max_bounds) / 2
    largest = float(np.max(max_bounds - min_bounds))
    if largest <= 0:
        raise AssetLoadError("model", cause=ValueError("model has zero extent"))

    V = (V - center) / largest * extent
    return V @ euler_xyz_matrix(rotation).T


def load_model(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """Load a mesh file and return (vertices, faces), concatenating scenes."""
    path = Path(path)
    try:
        scene_or_mesh = trimesh.load(str(path), force="scene")
    except (OSError, ValueError) as e:
        raise AssetLoadError("model", str(path), cause=e)

    if isinstance(scene_or_mesh, trimesh.Scene):
        if not scene_or_mesh.geometry:
            raise AssetLoadError("model", str(path), cause=ValueError("empty scene"))
        mesh = trimesh.util.concatenate(scene_or_mesh.dump())
    else:
        mesh = scene_or_mesh

    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64)
    if len(vertices) == 0 or len(faces) == 0:
        raise AssetLoadError("model", str(path), cause=ValueError("mesh has no faces"))
    return vertices, faces


class ModelRenderTarget(RenderTarget):
    """
    Scene-object render target for the 3D overlay mode.
    """

    def __init__(self, vertices: np.ndarray, faces: np.ndarray, frame_size: Tuple[int, int],
                 camera_z: float = 3.0, near: float = 0.1, far: float = 10.0,
                 ambient_intensity: float = 0.6,
                 light_direction: Sequence[float] = (5.0, 5.0, 5.0),
                 color: Tuple[int, int, int] = (40, 40, 40),
                 mirror_output: bool = True):
        """
        Initialize the model target.

        Args:
            vertices: Model-space vertices (N, 3), already normalized
            faces: Triangle vertex indices (M, 3)
            frame_size: Display size in pixels (width, height)
            camera_z: Camera distance from the face plane
            near: Near clipping distance
            far: Far clipping distance
            ambient_intensity: Ambient light share in [0, 1]
            light_direction: Direction towards the directional light
            color: Base BGR color of the model
            mirror_output: Flip the rendering to match a mirrored display
        """
        super().__init__(frame_size)
        self.vertices = np.asarray(vertices, dtype=np.float64)
        self.faces = np.asarray(faces, dtype=np.int64)
        self.camera_z = float(camera_z)
        self.near = float(near)
        self.far = float(far)
        self.ambient_intensity = float(ambient_intensity)
        light = np.asarray(light_direction, dtype=np.float64)
        self.light_direction = light / np.linalg.norm(light)
        self.color = np.asarray(color, dtype=np.float64)
        self.mirror_output = bool(mirror_output)

        self.command: Optional[Transform3D] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], frame_size: Tuple[int, int],
                  model_rotation: Sequence[float] = (0.0, 0.0, 0.0),
                  model_extent: float = 1.0, **kwargs) -> "ModelRenderTarget":
        vertices, faces = load_model(path)
        vertices = prepare_mesh(vertices, model_rotation, model_extent)
        logger.info(f"Loaded model {Path(path).name} ({len(vertices)} vertices, {len(faces)} faces)")
        return cls(vertices, faces, frame_size, **kwargs)

    def name(self) -> str:
        return "model_3d"

    def is_ready(self) -> bool:
        return len(self.vertices) > 0 and len(self.faces) > 0

    def has_content(self) -> bool:
        return self.command is not None

    def apply(self, command: Transform3D) -> None:
        if not isinstance(command, Transform3D):
            raise TypeError(f"{self.name()} expects Transform3D, got {type(command).__name__}")
        self.command = command

    def clear(self) -> None:
        self.command = None

    def world_vertices(self) -> np.ndarray:
        """Model vertices placed by the current root-node transform."""
        cmd = self.command
        basis = cmd.basis.as_array()
        return (self.vertices * cmd.scale) @ basis.T + cmd.position.as_array()

    def project_points(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Project renderer-space points to pixels.

        Returns:
            (pixels (N, 2), depth along the view axis (N,))
        """
        width, height = self.frame_size
        depth = self.camera_z - points[:, 2]
        safe = np.where(np.abs(depth) < 1e-12, 1e-12, depth)
        factor = self.camera_z / safe
        u = width / 2.0 * (1.0 + points[:, 0] * factor)
        v = height / 2.0 * (1.0 - points[:, 1] * factor)
        return np.stack([u, v], axis=1), depth

    def _shade(self, world: np.ndarray) -> np.ndarray:
        tri = world[self.faces]
        normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        normals = normals / np.where(lengths == 0, 1.0, lengths)
        # two-sided lighting, thin frames have no reliable winding
        diffuse = np.abs(normals @ self.light_direction)
        return self.ambient_intensity + (1.0 - self.ambient_intensity) * diffuse

    def render_layer(self) -> Tuple[np.ndarray, np.ndarray]:
        """Rasterize the model into a (BGR layer, mask) pair in camera orientation."""
        width, height = self.frame_size
        layer = np.zeros((height, width, 3), dtype=np.uint8)
        mask = np.zeros((height, width), dtype=np.uint8)

        world = self.world_vertices()
        pixels, depth = self.project_points(world)
        intensity = self._shade(world)

        face_depth = depth[self.faces].mean(axis=1)
        in_range = np.all((depth[self.faces] > self.near) & (depth[self.faces] < self.far), axis=1)

        # painter's algorithm, far faces first
        for i in np.argsort(-face_depth):
            if not in_range[i]:
                continue
            pts = np.round(pixels[self.faces[i]]).astype(np.int32)
            if (pts[:, 0].max() < 0 or pts[:, 1].max() < 0 or
                    pts[:, 0].min() >= width or pts[:, 1].min() >= height):
                continue
            color = tuple(int(c) for c in np.clip(self.color * intensity[i], 0, 255))
            cv2.fillPoly(layer, [pts], color, lineType=cv2.LINE_AA)
            cv2.fillPoly(mask, [pts], 255)

        if self.mirror_output:
            layer = cv2.flip(layer, 1)
            mask = cv2.flip(mask, 1)
        return layer, mask

    def draw(self, frame: np.ndarray) -> np.ndarray:
        layer, mask = self.render_layer()
        if frame.shape[:2] != mask.shape:
            raise ValueError(f"Frame shape {frame.shape[:2]} does not match layer {mask.shape}")

        out = frame.copy()
        out[mask > 0] = layer[mask > 0]
        return out
