"""Tests for the pan/zoom viewport transform."""

import math

import pytest

from retouch.editor.models import Point
from retouch.editor.viewport import (
    DEFAULT_OFFSET,
    MAX_ZOOM,
    MIN_ZOOM,
    ViewportTransform,
    clamp_zoom,
)


def approx_point(point: Point, x: float, y: float) -> bool:
    return point.x == pytest.approx(x) and point.y == pytest.approx(y)


@pytest.fixture
def viewport() -> ViewportTransform:
    vp = ViewportTransform()
    vp.set_viewport_size(800, 600)
    return vp


class TestConversion:
    def test_initial_state(self):
        vp = ViewportTransform()
        assert vp.zoom == 1.0
        assert vp.offset == DEFAULT_OFFSET
        assert not vp.fitted

    def test_to_image_space(self, viewport):
        viewport.set_offset(20, 20)
        assert approx_point(viewport.to_image_space(Point(120, 220)), 100, 200)

    def test_screen_and_image_space_are_inverse(self, viewport):
        viewport.set_offset(-37.5, 12.25)
        viewport.zoom_at(1.7, Point(0, 0))
        for p in (Point(0, 0), Point(123.4, 56.7), Point(-10, 900)):
            back = viewport.to_image_space(viewport.to_screen_space(p))
            assert approx_point(back, p.x, p.y)


class TestZoom:
    def test_zoom_at_keeps_focal_point_fixed(self, viewport):
        viewport.set_offset(0, 0)
        viewport.zoom_at(2.0, Point(50, 50))
        assert viewport.zoom == 2.0
        assert approx_point(viewport.offset, -50, -50)
        assert approx_point(viewport.to_image_space(Point(50, 50)), 50, 50)

    def test_zoom_at_arbitrary_focal(self, viewport):
        viewport.set_offset(13, -7)
        focal = Point(321, 123)
        before = viewport.to_image_space(focal)
        viewport.zoom_at(3.3, focal)
        after = viewport.to_image_space(focal)
        assert approx_point(after, before.x, before.y)

    def test_zoom_at_defaults_to_viewport_centre(self, viewport):
        viewport.set_offset(0, 0)
        centre_before = viewport.to_image_space(Point(400, 300))
        viewport.zoom_at(2.0)
        centre_after = viewport.to_image_space(Point(400, 300))
        assert approx_point(centre_after, centre_before.x, centre_before.y)

    @pytest.mark.parametrize("requested,expected", [(10.0, MAX_ZOOM), (0.01, MIN_ZOOM)])
    def test_zoom_is_clamped(self, viewport, requested, expected):
        viewport.zoom_at(requested, Point(0, 0))
        assert viewport.zoom == expected

    def test_clamped_zoom_still_anchors_focal(self, viewport):
        viewport.set_offset(0, 0)
        viewport.zoom_at(50.0, Point(100, 100))
        assert viewport.zoom == MAX_ZOOM
        assert approx_point(viewport.to_image_space(Point(100, 100)), 100, 100)

    def test_clamp_zoom(self):
        assert clamp_zoom(1.0) == 1.0
        assert clamp_zoom(0) == MIN_ZOOM
        assert clamp_zoom(99) == MAX_ZOOM

    def test_zoom_in_and_out(self, viewport):
        viewport.zoom_in()
        assert viewport.zoom == pytest.approx(1.25)
        viewport.zoom_out()
        assert viewport.zoom == pytest.approx(1.0)


class TestWheelZoom:
    def test_ignored_without_modifier(self, viewport):
        assert viewport.wheel_zoom(-100, Point(10, 10), modifier_held=False) is False
        assert viewport.zoom == 1.0

    def test_negative_delta_zooms_in(self, viewport):
        assert viewport.wheel_zoom(-100, Point(10, 10), modifier_held=True) is True
        assert viewport.zoom == pytest.approx(math.exp(0.15))

    def test_positive_delta_zooms_out(self, viewport):
        viewport.wheel_zoom(100, Point(10, 10), modifier_held=True)
        assert viewport.zoom == pytest.approx(math.exp(-0.15))

    def test_wheel_zoom_anchored_at_pointer(self, viewport):
        pointer = Point(250, 175)
        before = viewport.to_image_space(pointer)
        viewport.wheel_zoom(-240, pointer, modifier_held=True)
        after = viewport.to_image_space(pointer)
        assert approx_point(after, before.x, before.y)

    def test_custom_rate(self):
        vp = ViewportTransform(wheel_zoom_rate=0.01)
        vp.wheel_zoom(-10, Point(0, 0), modifier_held=True)
        assert vp.zoom == pytest.approx(math.exp(0.1))


class TestPan:
    def test_pan_by_is_unconstrained(self, viewport):
        viewport.set_offset(0, 0)
        viewport.pan_by(-5000, 7000)
        assert viewport.offset == Point(-5000, 7000)


class TestFit:
    def test_fit_wide_image(self, viewport):
        viewport.fit_to_viewport(1000, 500, 500, 500)
        assert viewport.zoom == pytest.approx(0.5)
        assert approx_point(viewport.offset, 0, 125)

    def test_fit_small_image_is_clamped(self, viewport):
        viewport.fit_to_viewport(10, 10, 1000, 1000)
        assert viewport.zoom == MAX_ZOOM
        assert approx_point(viewport.offset, 475, 475)

    def test_fit_rejects_zero_dimensions(self, viewport):
        with pytest.raises(ValueError):
            viewport.fit_to_viewport(1000, 0, 500, 500)

    def test_ensure_fitted_runs_once(self):
        vp = ViewportTransform()
        assert vp.ensure_fitted(1000, 500, 500, 500) is True
        assert vp.fitted
        vp.zoom_at(2.0, Point(0, 0))
        assert vp.ensure_fitted(1000, 500, 800, 800) is False
        assert vp.zoom == 2.0

    def test_ensure_fitted_waits_for_usable_size(self):
        vp = ViewportTransform()
        assert vp.ensure_fitted(1000, 500, 0, 0) is False
        assert not vp.fitted
        assert vp.zoom == 1.0

    def test_reset_fit_rearms(self):
        vp = ViewportTransform()
        vp.ensure_fitted(1000, 500, 500, 500)
        vp.reset_fit()
        assert vp.ensure_fitted(200, 200, 400, 400) is True
        assert vp.zoom == pytest.approx(2.0)
