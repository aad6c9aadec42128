"""Tests for the overlay renderer."""

import pytest
from PySide6.QtGui import QColor, QImage

from conftest import make_stroke

from retouch.editor.models import Point
from retouch.editor.renderer import StrokeRenderer, outline_width


@pytest.fixture
def renderer(qapp) -> StrokeRenderer:
    return StrokeRenderer()


def alpha_at(image: QImage, x: int, y: int) -> int:
    return image.pixelColor(x, y).alpha()


def test_outline_width():
    assert outline_width(6) == 12
    assert outline_width(1) == 7


def test_overlay_is_image_sized_and_transparent(renderer):
    overlay = renderer.create_overlay(120, 80)
    assert overlay.width() == 120 and overlay.height() == 80
    assert alpha_at(overlay, 60, 40) == 0


def test_strokes_and_badge_are_drawn(renderer):
    overlay = renderer.create_overlay(200, 200)
    stroke = make_stroke("s", [(10, 100), (190, 100)], color="#ff0000", size=6)
    renderer.render(overlay, [stroke], {})

    on_stroke = overlay.pixelColor(30, 100)
    assert on_stroke.red() > 200 and on_stroke.alpha() == 255
    # Badge sits at the bbox centre, over the stroke
    assert overlay.pixelColor(100, 100) != QColor("#ff0000")
    assert alpha_at(overlay, 30, 150) == 0


def test_render_clears_previous_contents(renderer):
    overlay = renderer.create_overlay(200, 200)
    stroke = make_stroke("s", [(10, 100), (190, 100)])
    renderer.render(overlay, [stroke], {})
    renderer.render(overlay, [], {})
    assert alpha_at(overlay, 30, 100) == 0


def test_selection_outline_is_drawn_beneath(renderer):
    overlay = renderer.create_overlay(200, 200)
    stroke = make_stroke("s", [(10, 100), (190, 100)], color="#ff0000", size=6)
    renderer.render(overlay, [stroke], {}, selected_id="s")

    # The stroke itself keeps its color
    assert overlay.pixelColor(30, 100).red() > 200
    # The halo shows just outside the stroke width
    halo = overlay.pixelColor(30, 105)
    assert halo.alpha() > 0
    assert halo.blue() > halo.red()


def test_current_path_uses_pencil_style(renderer):
    overlay = renderer.create_overlay(200, 200)
    renderer.render(
        overlay, [], {},
        current_path=[Point(10, 50), Point(190, 50)],
        color="#00ff00",
        size=4,
    )
    pixel = overlay.pixelColor(100, 50)
    assert pixel.green() > 200 and pixel.alpha() == 255


def test_single_point_path_draws_nothing(renderer):
    overlay = renderer.create_overlay(50, 50)
    renderer.render(overlay, [], {}, current_path=[Point(25, 25)])
    assert alpha_at(overlay, 25, 25) == 0
