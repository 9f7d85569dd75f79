"""
Geometry resolver: eye landmarks -> overlay placement.

Run with: python -m pytest tests/test_geometry_resolver.py -v
"""
import math

import pytest

from frame_tryon.core.geometry_resolver import (
    GeometryResolver,
    eye_distance_px,
    is_degenerate,
    resolve_placement,
)
from frame_tryon.models.landmark_models import EyePoint, LandmarkPair, OverlayAsset
from frame_tryon.utils.exceptions import DegenerateGeometryError, DetectionError

from conftest import LEVEL_EYES, TILTED_EYES


class TestResolvePlacement:

    def test_level_eyes_scenario(self):
        t = resolve_placement(EyePoint(0.35, 0.5), EyePoint(0.65, 0.5), 1000, 1000, 140, 300)

        assert t.x == pytest.approx(500.0)
        assert t.y == pytest.approx(500.0)
        assert t.rotation == 0.0
        ipd = eye_distance_px(EyePoint(0.35, 0.5), EyePoint(0.65, 0.5), 1000, 1000)
        assert ipd == pytest.approx(300.0)
        pixels_per_mm = ipd / 63.0
        assert pixels_per_mm == pytest.approx(4.762, abs=1e-3)
        assert t.rendered_width(300) == pytest.approx(666.67, abs=1e-2)
        assert t.scale == pytest.approx(2.2222, abs=1e-4)

    def test_tilted_eyes_scenario(self):
        t = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 800, 600)

        assert (t.x, t.y) == (pytest.approx(400.0), pytest.approx(300.0))
        assert t.rotation == pytest.approx(math.degrees(math.atan2(60, 320)))
        assert t.rotation == pytest.approx(10.62, abs=0.01)
        assert eye_distance_px(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 800, 600) == \
            pytest.approx(325.58, abs=0.01)
        assert t.scale == pytest.approx(140 * (math.hypot(320, 60) / 63) / 300)

    def test_right_eye_lower_is_clockwise(self):
        t = resolve_placement(EyePoint(0.4, 0.4), EyePoint(0.6, 0.5), 500, 500)
        assert t.rotation > 0

    @pytest.mark.parametrize("left,right", [
        ((0.1, 0.2), (0.9, 0.3)),
        ((0.5, 0.5), (0.52, 0.49)),
        ((0.7, 0.3), (0.2, 0.6)),
        ((0.4, 0.1), (0.4, 0.9)),
    ])
    def test_distinct_points_give_positive_scale_and_eye_angle(self, left, right):
        w, h = 640, 480
        t = resolve_placement(EyePoint(*left), EyePoint(*right), w, h)

        dx = (right[0] - left[0]) * w
        dy = (right[1] - left[1]) * h
        assert t.scale > 0
        assert t.rotation == pytest.approx(math.degrees(math.atan2(dy, dx)))

    def test_level_eyes_always_zero_rotation(self):
        for y in (0.1, 0.33, 0.5, 0.97):
            t = resolve_placement(EyePoint(0.2, y), EyePoint(0.8, y), 731, 389)
            assert t.rotation == 0.0

    def test_doubling_container_width(self):
        base = resolve_placement(LEVEL_EYES.left_eye, LEVEL_EYES.right_eye, 1000, 1000)
        wide = resolve_placement(LEVEL_EYES.left_eye, LEVEL_EYES.right_eye, 2000, 1000)

        assert wide.x == pytest.approx(2 * base.x)
        assert wide.y == pytest.approx(base.y)
        assert wide.rotation == base.rotation == 0.0
        # level eyes: the pixel eye distance doubles with the width
        assert wide.scale == pytest.approx(140 * (600 / 63) / 300)
        assert wide.scale == pytest.approx(2 * base.scale)

    def test_doubling_width_changes_tilted_angle_only_through_formula(self):
        wide = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 1600, 600)
        assert wide.rotation == pytest.approx(math.degrees(math.atan2(60, 640)))
        assert wide.scale == pytest.approx(140 * (math.hypot(640, 60) / 63) / 300)

    def test_uniform_container_scaling_keeps_rotation(self):
        base = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 800, 600)
        big = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 1600, 1200)
        assert big.rotation == pytest.approx(base.rotation)
        assert big.scale == pytest.approx(2 * base.scale)

    def test_double_physical_width_doubles_scale(self):
        narrow = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 800, 600, 130)
        wide = resolve_placement(TILTED_EYES.left_eye, TILTED_EYES.right_eye, 800, 600, 260)
        assert wide.scale == pytest.approx(2 * narrow.scale)
        assert (wide.x, wide.y, wide.rotation) == (narrow.x, narrow.y, narrow.rotation)

    def test_coincident_points_give_zero_scale(self):
        t = resolve_placement(EyePoint(0.5, 0.5), EyePoint(0.5, 0.5), 800, 600)
        assert t.scale == 0.0
        assert t.rotation == 0.0


class TestGeometryResolver:

    def test_resolve_uses_asset_width(self, config):
        resolver = GeometryResolver(config)
        asset = OverlayAsset(asset_id="a", physical_width_mm=280.0)

        t = resolver.resolve(LEVEL_EYES, 1000, 1000, asset)
        assert t.scale == pytest.approx(2 * 140 / 63)

    def test_missing_asset_width_defaults_to_140mm(self, config):
        resolver = GeometryResolver(config)
        assert resolver.physical_width_for(None) == 140.0
        assert resolver.physical_width_for(OverlayAsset(asset_id="x", physical_width_mm=0)) == 140.0

    def test_degenerate_points_raise(self, config):
        resolver = GeometryResolver(config)
        pair = LandmarkPair(EyePoint(0.4, 0.4), EyePoint(0.4, 0.4))

        assert is_degenerate(pair, 800, 600)
        with pytest.raises(DegenerateGeometryError):
            resolver.resolve(pair, 800, 600)

    def test_degenerate_is_a_detection_failure(self):
        assert issubclass(DegenerateGeometryError, DetectionError)

    def test_below_minimum_eye_distance_is_degenerate(self):
        pair = LandmarkPair(EyePoint(0.5, 0.5), EyePoint(0.5005, 0.5))
        assert is_degenerate(pair, 1000, 1000, min_eye_distance_px=1.0)
        assert not is_degenerate(pair, 1000, 1000)

    def test_zero_container_rejected(self, config):
        resolver = GeometryResolver(config)
        with pytest.raises(ValueError):
            resolver.resolve(LEVEL_EYES, 0, 600)

    def test_fusion_hints_are_normalized(self, config):
        resolver = GeometryResolver(config)
        hints = resolver.fusion_hints(TILTED_EYES, 800, 600)

        assert hints.center_x == pytest.approx(0.5)
        assert hints.center_y == pytest.approx(0.5)
        assert hints.rotation == pytest.approx(math.degrees(math.atan2(60, 320)))
