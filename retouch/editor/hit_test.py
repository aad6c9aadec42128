"""
Hit-testing for markup strokes.

Strokes are tested against their bounding box rather than their path.
Thin or diagonal strokes have boxes that are easy to miss, so the box is
grown by a fixed padding in image space.
"""

from typing import Optional, Sequence

from retouch.editor.models import Point, Stroke


# Padding around each bounding box, in image pixels
HIT_PADDING = 4.0


def hit_test(
    point: Point,
    strokes: Sequence[Stroke],
    padding: float = HIT_PADDING,
) -> Optional[str]:
    """
    Find the topmost stroke whose padded bounding box contains a point.

    Args:
        point: The point to test (image coordinates).
        strokes: Strokes in creation order (oldest first).
        padding: Growth applied to every side of each box.

    Returns:
        The id of the most recently drawn matching stroke, or None.
    """
    # Test in reverse order (top-most first)
    for stroke in reversed(strokes):
        if stroke.bbox.contains(point, padding):
            return stroke.id
    return None
