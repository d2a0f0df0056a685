"""
Tests for head pose estimation from anchor landmarks.
"""

import itertools
import math
import random

import pytest

from glasses_overlay.geometry import Vec3
from glasses_overlay.tracking import LandmarkPoint, LandmarkSet, PoseEstimator, orthonormal_basis
from glasses_overlay.utils.exceptions import InvalidLandmarkSetError, UnstablePoseError

from conftest import make_landmarks


def assert_orthonormal(transform, tol=1e-6):
    axes = (transform.right, transform.up, transform.forward)
    for axis in axes:
        assert abs(axis.length() - 1.0) < tol
    for a, b in itertools.combinations(axes, 2):
        assert abs(a.dot(b)) < tol


def random_face(rng):
    cx, cy = rng.uniform(0.3, 0.7), rng.uniform(0.3, 0.7)
    half = rng.uniform(0.02, 0.2)
    tilt = rng.uniform(-0.1, 0.1)
    return make_landmarks(
        left=(cx - half, cy - tilt, rng.uniform(-0.05, 0.05)),
        right=(cx + half, cy + tilt, rng.uniform(-0.05, 0.05)),
        nose=(cx + rng.uniform(-0.05, 0.05), cy + rng.uniform(0.05, 0.15), rng.uniform(-0.1, 0.0)),
        forehead=(cx + rng.uniform(-0.05, 0.05), cy - rng.uniform(0.05, 0.15), rng.uniform(0.0, 0.05)),
    )


class TestWorldMapping:

    def test_center_maps_to_origin(self, estimator):
        assert estimator.to_world(LandmarkPoint(0.5, 0.5, 0.0)) == Vec3(0.0, 0.0, 0.0)

    def test_depth_scale_applied(self):
        estimator = PoseEstimator(depth_scale=4.0)
        assert estimator.to_world(LandmarkPoint(0.5, 0.5, 0.25)).z == 1.0

    def test_corners(self, estimator):
        w = estimator.to_world(LandmarkPoint(0.0, 1.0, 0.0))
        assert w.x == pytest.approx(-1.0)
        assert w.y == pytest.approx(1.0)


class TestPoseEstimator:

    def test_symmetric_face(self, estimator, landmarks):
        estimate = estimator.estimate(landmarks)
        assert estimate.stable
        t = estimate.transform

        assert t.position.x == pytest.approx(0.0, abs=1e-12)
        assert t.position.y == pytest.approx(0.0, abs=1e-12)
        assert t.scale == pytest.approx(0.8 * 0.015)
        assert t.right.x == pytest.approx(1.0)

        # forward follows nose -> forehead, corrected to be perpendicular to right
        n = math.hypot(0.4, 0.1)
        assert t.forward.y == pytest.approx(-0.4 / n)
        assert t.forward.z == pytest.approx(0.1 / n)
        assert t.up.y == pytest.approx(0.1 / n)
        assert t.up.z == pytest.approx(0.4 / n)

    def test_raw_eyes_kept(self, estimator, landmarks):
        estimate = estimator.estimate(landmarks)
        assert estimate.left_eye == landmarks[33]
        assert estimate.right_eye == landmarks[263]

    def test_right_axis_never_adjusted(self, estimator):
        lm = make_landmarks(left=(0.3, 0.45, 0.02), right=(0.7, 0.55, -0.02))
        t = estimator.estimate(lm).transform
        expected = (estimator.to_world(lm[263]) - estimator.to_world(lm[33])).normalized()
        assert t.right == expected

    def test_orthonormal_for_random_faces(self, estimator):
        rng = random.Random(7)
        for _ in range(200):
            estimate = estimator.estimate(random_face(rng))
            assert estimate.stable
            assert_orthonormal(estimate.transform)

    def test_basis_is_right_handed(self, estimator, landmarks):
        t = estimator.estimate(landmarks).transform
        assert t.right.cross(t.up).dot(t.forward) == pytest.approx(1.0)

    def test_determinism(self, estimator):
        rng = random.Random(3)
        face = random_face(rng)
        first = estimator.estimate(face)
        for _ in range(5):
            assert estimator.estimate(face) == first

    def test_scale_increases_with_eye_distance(self, estimator):
        scales = []
        for half in (0.05, 0.1, 0.15, 0.2, 0.25):
            lm = make_landmarks(left=(0.5 - half, 0.5, 0.0), right=(0.5 + half, 0.5, 0.0))
            scales.append(estimator.estimate(lm).transform.scale)
        assert all(b > a for a, b in zip(scales, scales[1:]))

    def test_scale_calibration_must_be_positive(self):
        with pytest.raises(ValueError):
            PoseEstimator(scale_calibration=0.0)

    def test_from_config(self):
        estimator = PoseEstimator.from_config(
            {"depth_scale": 3.0, "scale_calibration": 0.02},
            {"left_eye_outer": 2, "right_eye_outer": 3, "nose_tip": 0, "forehead_center": 1})
        assert estimator.depth_scale == 3.0
        assert estimator.indices.right_eye_outer == 3


class TestDegenerateInput:

    def test_identical_eyes_unstable(self, estimator):
        lm = make_landmarks(left=(0.5, 0.5, 0.0), right=(0.5, 0.5, 0.0))
        estimate = estimator.estimate(lm)
        assert not estimate.stable
        assert estimate.transform is None

    def test_identical_nose_and_forehead_unstable(self, estimator):
        lm = make_landmarks(nose=(0.5, 0.5, 0.0), forehead=(0.5, 0.5, 0.0))
        assert not estimator.estimate(lm).stable

    def test_forward_parallel_to_right_unstable(self, estimator):
        lm = make_landmarks(nose=(0.4, 0.5, 0.0), forehead=(0.6, 0.5, 0.0))
        assert not estimator.estimate(lm).stable

    def test_nan_coordinates_unstable(self, estimator):
        lm = make_landmarks(left=(float("nan"), 0.5, 0.0))
        assert not estimator.estimate(lm).stable

    def test_require_transform_raises(self, estimator):
        lm = make_landmarks(left=(0.5, 0.5, 0.0), right=(0.5, 0.5, 0.0))
        with pytest.raises(UnstablePoseError):
            estimator.estimate(lm).require_transform()

    def test_missing_anchor_propagates(self, estimator):
        with pytest.raises(InvalidLandmarkSetError):
            estimator.estimate(LandmarkSet(list(make_landmarks())[:200]))


class TestOrthonormalBasis:

    def test_zero_vectors(self):
        assert orthonormal_basis(Vec3(0, 0, 0), Vec3(0, 1, 0)) is None
        assert orthonormal_basis(Vec3(1, 0, 0), Vec3(0, 0, 0)) is None

    def test_already_orthonormal_input_unchanged(self):
        right, up, forward = orthonormal_basis(Vec3(1, 0, 0), Vec3(0, 0, 1))
        assert right == Vec3(1, 0, 0)
        assert forward == Vec3(0, 0, 1)
        assert up == Vec3(0, 1, 0)
