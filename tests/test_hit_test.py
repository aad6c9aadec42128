"""Tests for bounding-box hit testing."""

from conftest import make_stroke

from retouch.editor.hit_test import HIT_PADDING, hit_test
from retouch.editor.models import Point


def test_hit_inside_bbox():
    stroke = make_stroke("a", [(10, 10), (20, 20)])
    assert hit_test(Point(15, 15), [stroke]) == "a"


def test_hit_within_padding():
    stroke = make_stroke("a", [(10, 10), (20, 20)])
    assert hit_test(Point(10 - HIT_PADDING, 20 + HIT_PADDING), [stroke]) == "a"


def test_miss_outside_padding():
    stroke = make_stroke("a", [(10, 10), (20, 20)])
    assert hit_test(Point(25, 25), [stroke]) is None


def test_empty_list():
    assert hit_test(Point(0, 0), []) is None


def test_topmost_stroke_wins():
    older = make_stroke("a", [(0, 0), (100, 100)], created_at=1)
    newer = make_stroke("b", [(40, 40), (60, 60)], created_at=2)
    assert hit_test(Point(50, 50), [older, newer]) == "b"
    assert hit_test(Point(5, 5), [older, newer]) == "a"


def test_flat_stroke_is_hittable():
    stroke = make_stroke("flat", [(0, 50), (100, 50)])
    assert hit_test(Point(50, 53), [stroke]) == "flat"


def test_custom_padding():
    stroke = make_stroke("a", [(10, 10), (20, 20)])
    assert hit_test(Point(6, 6), [stroke], padding=0) is None
