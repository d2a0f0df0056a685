"""
Tests for temporal smoothing of head transforms.
"""

import itertools

import pytest

from glasses_overlay.geometry import Vec3
from glasses_overlay.tracking import RigidTransform, TransformSmoother


def transform(x=0.0, scale=0.01, right=Vec3(1, 0, 0)):
    forward = Vec3(0, 0, 1)
    up = forward.cross(right)
    return RigidTransform(position=Vec3(x, 0.0, 0.0), right=right, up=up,
                          forward=right.cross(up), scale=scale)


class TestTransformSmoother:

    def test_disabled_passes_through(self):
        smoother = TransformSmoother()
        assert not smoother.enabled
        a, b = transform(0.0), transform(1.0)
        assert smoother.update(a) is a
        assert smoother.update(b) is b

    def test_first_update_is_unchanged(self):
        smoother = TransformSmoother(0.5)
        current = transform(0.4)
        assert smoother.update(current) is current

    def test_blends_position_and_scale(self):
        smoother = TransformSmoother(0.5)
        smoother.update(transform(0.0, scale=0.01))
        smoothed = smoother.update(transform(1.0, scale=0.03))
        assert smoothed.position.x == pytest.approx(0.5)
        assert smoothed.scale == pytest.approx(0.02)

    def test_blended_basis_stays_orthonormal(self):
        smoother = TransformSmoother(0.7)
        smoother.update(transform(right=Vec3(1, 0, 0)))
        smoothed = smoother.update(transform(right=Vec3(0.8, 0.6, 0)))
        axes = (smoothed.right, smoothed.up, smoothed.forward)
        for axis in axes:
            assert axis.length() == pytest.approx(1.0)
        for a, b in itertools.combinations(axes, 2):
            assert a.dot(b) == pytest.approx(0.0, abs=1e-9)

    def test_opposite_orientation_jumps(self):
        smoother = TransformSmoother(0.5)
        smoother.update(transform(right=Vec3(1, 0, 0)))
        flipped = transform(right=Vec3(-1, 0, 0))
        assert smoother.update(flipped) is flipped

    def test_reset(self):
        smoother = TransformSmoother(0.5)
        smoother.update(transform(0.0))
        smoother.reset()
        current = transform(1.0)
        assert smoother.update(current) is current

    @pytest.mark.parametrize("factor", [-0.1, 1.0, 2.0])
    def test_invalid_factor(self, factor):
        with pytest.raises(ValueError):
            TransformSmoother(factor)
