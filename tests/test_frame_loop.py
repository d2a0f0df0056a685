"""
Tests for the per-frame pipeline driver and engine setup.
"""

import json

import cv2
import numpy as np
import pytest
import trimesh

from glasses_overlay.engine import FrameLoop, TickResult, build_engine
from glasses_overlay.overlay import Affine2D, RenderMode, Transform3D
from glasses_overlay.tracking import TransformSmoother
from glasses_overlay.utils import load_config
from glasses_overlay.utils.exceptions import AssetLoadError, EngineError, EngineNotReadyError

from conftest import FRAME_SIZE, ScriptedLandmarkSource, make_landmarks

DEGENERATE = dict(left=(0.5, 0.5, 0.0), right=(0.5, 0.5, 0.0))
DEPTH_ONLY_EYES = dict(left=(0.5, 0.5, 0.0), right=(0.5, 0.5, 0.1))


class TestFrameSkipping:

    def test_unchanged_timestamp_skips_source(self, make_loop, landmarks):
        source = ScriptedLandmarkSource(default=landmarks)
        loop = make_loop(source)
        loop.start()

        assert loop.tick(100.0) is TickResult.RENDERED
        assert loop.tick(100.0) is TickResult.STALE_FRAME
        assert source.calls == [100.0]

    def test_older_timestamp_is_stale(self, make_loop, landmarks):
        source = ScriptedLandmarkSource(default=landmarks)
        loop = make_loop(source)
        loop.start()

        loop.tick(100.0)
        assert loop.tick(50.0) is TickResult.STALE_FRAME
        assert loop.tick(101.0) is TickResult.RENDERED
        assert source.calls == [100.0, 101.0]


class TestTickOutcomes:

    def test_renders_to_sprite_in_two_d(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource(default=landmarks))
        loop.start()
        loop.tick(1.0)

        ctx = loop.context
        assert isinstance(ctx.sprite_target.command, Affine2D)
        assert ctx.sprite_target.has_content()
        assert not ctx.model_target.has_content()

    def test_no_face_leaves_targets_untouched(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, None]))
        loop.start()
        loop.tick(1.0)
        command = loop.context.sprite_target.command

        assert loop.tick(2.0) is TickResult.NO_FACE
        assert loop.context.sprite_target.command is command
        assert loop.context.sprite_target.has_content()

    def test_unstable_pose_skips_dispatch(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, make_landmarks(**DEGENERATE)]))
        loop.start()
        loop.tick(1.0)
        command = loop.context.sprite_target.command

        assert loop.tick(2.0) is TickResult.UNSTABLE
        assert loop.context.sprite_target.command is command

    def test_eyes_coinciding_on_screen_skip_sprite(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, make_landmarks(**DEPTH_ONLY_EYES)]))
        loop.start()
        loop.tick(1.0)
        command = loop.context.sprite_target.command

        assert loop.tick(2.0) is TickResult.UNSTABLE
        assert loop.context.sprite_target.command is command
        assert loop.context.sprite_target.has_content()

    def test_eyes_coinciding_on_screen_still_place_model(self, make_loop):
        loop = make_loop(ScriptedLandmarkSource(default=make_landmarks(**DEPTH_ONLY_EYES)))
        loop.context.mode_controller.activate_three_d()
        loop.start()
        assert loop.tick(1.0) is TickResult.RENDERED
        assert isinstance(loop.context.model_target.command, Transform3D)

    def test_unstable_first_frame_renders_nothing(self, make_loop):
        loop = make_loop(ScriptedLandmarkSource(default=make_landmarks(**DEGENERATE)))
        loop.start()
        assert loop.tick(1.0) is TickResult.UNSTABLE
        assert not loop.context.sprite_target.has_content()
        assert not loop.context.model_target.has_content()

    def test_malformed_landmarks_propagate(self, make_loop):
        from glasses_overlay.tracking import LandmarkSet
        from glasses_overlay.utils.exceptions import InvalidLandmarkSetError

        short = LandmarkSet(list(make_landmarks())[:100])
        loop = make_loop(ScriptedLandmarkSource(default=short))
        loop.start()
        with pytest.raises(InvalidLandmarkSetError):
            loop.tick(1.0)

    def test_stats_counted(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, None]))
        loop.start()
        loop.tick(1.0)
        loop.tick(1.0)
        loop.tick(2.0)
        assert loop.stats == {"rendered": 1, "stale_frame": 1, "no_face": 1}


class TestModeSwitching:

    def test_visibility_follows_mode_immediately(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource(default=landmarks))
        ctx = loop.context
        assert ctx.sprite_target.visible and not ctx.model_target.visible

        ctx.mode_controller.activate_three_d()
        assert ctx.model_target.visible and not ctx.sprite_target.visible

    def test_switch_clears_previous_target(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, None, landmarks]))
        ctx = loop.context
        loop.start()
        loop.tick(1.0)
        assert ctx.sprite_target.has_content()

        ctx.mode_controller.activate_three_d()
        assert loop.tick(2.0) is TickResult.NO_FACE
        assert not ctx.sprite_target.has_content()
        assert not ctx.model_target.has_content()

        assert loop.tick(3.0) is TickResult.RENDERED
        assert isinstance(ctx.model_target.command, Transform3D)

    def test_switch_back_does_not_reuse_old_placement(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, landmarks, None]))
        ctx = loop.context
        loop.start()
        loop.tick(1.0)
        ctx.mode_controller.activate_three_d()
        loop.tick(2.0)
        ctx.mode_controller.activate_two_d()
        loop.tick(3.0)
        assert not ctx.sprite_target.has_content()
        assert not ctx.model_target.has_content()

    def test_repeated_activation_keeps_content(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource([landmarks, None]))
        ctx = loop.context
        loop.start()
        loop.tick(1.0)
        ctx.mode_controller.activate_two_d()
        loop.tick(2.0)
        assert ctx.sprite_target.has_content()
        assert ctx.mode_controller.mode is RenderMode.TWO_D

    def test_switch_resets_smoother(self, make_loop, landmarks):
        smoother = TransformSmoother(0.5)
        loop = make_loop(ScriptedLandmarkSource(default=landmarks), smoother=smoother)
        loop.start()
        loop.tick(1.0)
        assert smoother.previous is not None

        loop.context.mode_controller.activate_three_d()
        loop.context.source.default = None
        loop.tick(2.0)
        assert smoother.previous is None


class TestLifecycle:

    def test_start_requires_ready_collaborators(self, make_loop):
        loop = make_loop(ScriptedLandmarkSource(ready=False))
        with pytest.raises(EngineNotReadyError) as excinfo:
            loop.start()
        assert "landmark_source" in str(excinfo.value)
        assert not loop.running

    def test_tick_before_start(self, make_loop):
        loop = make_loop(ScriptedLandmarkSource())
        with pytest.raises(EngineError):
            loop.tick(1.0)

    def test_run_until_clock_ends(self, make_loop, landmarks):
        source = ScriptedLandmarkSource(default=landmarks)
        loop = make_loop(source)
        clock = iter([1.0, 2.0, 2.0, 3.0])
        results = []

        loop.run(lambda: next(clock, None), on_tick=results.append)

        assert results == [TickResult.RENDERED, TickResult.RENDERED,
                           TickResult.STALE_FRAME, TickResult.RENDERED]
        assert source.calls == [1.0, 2.0, 3.0]
        assert not loop.running

    def test_stop_from_callback(self, make_loop, landmarks):
        loop = make_loop(ScriptedLandmarkSource(default=landmarks))
        timestamps = iter(range(1, 100))
        results = []

        def on_tick(result):
            results.append(result)
            if len(results) == 3:
                loop.stop()

        loop.run(lambda: float(next(timestamps)), on_tick=on_tick)
        assert len(results) == 3


class TestBuildEngine:

    @pytest.fixture
    def assets(self, tmp_path):
        sprite = np.zeros((20, 50, 4), dtype=np.uint8)
        sprite[..., 3] = 255
        sprite_path = tmp_path / "glasses.png"
        cv2.imwrite(str(sprite_path), sprite)

        model_path = tmp_path / "glasses.obj"
        trimesh.creation.box(extents=(1.0, 0.3, 0.1)).export(str(model_path))
        return sprite_path, model_path

    def test_builds_ready_loop(self, assets, landmarks):
        sprite_path, model_path = assets
        config = load_config()
        config["assets"] = {"sprite": str(sprite_path), "model": str(model_path)}
        config["realtime"]["initial_mode"] = "3d"

        loop = build_engine(lambda: None, FRAME_SIZE, config,
                            source=ScriptedLandmarkSource(default=landmarks))
        assert isinstance(loop, FrameLoop)
        loop.start()
        assert loop.context.mode_controller.mode is RenderMode.THREE_D
        assert loop.context.model_target.visible
        assert loop.tick(1.0) is TickResult.RENDERED

    def test_missing_sprite(self, assets, tmp_path, landmarks):
        _, model_path = assets
        config = load_config()
        config["assets"] = {"sprite": str(tmp_path / "nope.png"), "model": str(model_path)}
        with pytest.raises(AssetLoadError):
            build_engine(lambda: None, FRAME_SIZE, config,
                         source=ScriptedLandmarkSource(default=landmarks))

    def test_config_file_overrides(self, assets, tmp_path, landmarks):
        sprite_path, model_path = assets
        overrides = tmp_path / "overrides.json"
        overrides.write_text(json.dumps({
            "assets": {"sprite": str(sprite_path), "model": str(model_path)},
            "overlay": {"width_multiplier": 3.0},
        }))
        loop = build_engine(lambda: None, FRAME_SIZE, load_config(overrides),
                            source=ScriptedLandmarkSource(default=landmarks))
        assert loop.context.projector.width_multiplier == 3.0
        assert loop.context.projector.aspect_ratio == 2.5
