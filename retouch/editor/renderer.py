"""
Overlay renderer for markup strokes.

The overlay is a transparent raster at the image's natural pixel size.
Every change triggers a full clear-and-repaint; there is no incremental
diffing. Back to front:

1. Every stroke polyline in its own color/width
2. A comment-count badge at each stroke's bounding-box centre
3. The selection outline, composited beneath what is already drawn so the
   stroke stays on top with a halo around it
4. The in-progress path in the active pencil style
"""

from typing import Dict, Optional, Sequence

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QFont, QImage, QPainter, QPainterPath, QPen

from retouch.editor.models import Point, Stroke


BADGE_RADIUS = 8
BADGE_FONT_PIXEL_SIZE = 10
DEFAULT_HIGHLIGHT_COLOR = "#06b6d4"
DEFAULT_BADGE_COLOR = "#0d8dea"


def outline_width(size: int) -> int:
    """Width of the selection outline drawn under a stroke of this size."""
    return max(2, (size or 6) + 6)


def _build_path(points: Sequence[Point]) -> QPainterPath:
    """Build a polyline QPainterPath from points."""
    path = QPainterPath()
    path.moveTo(QPointF(points[0].x, points[0].y))
    for point in points[1:]:
        path.lineTo(QPointF(point.x, point.y))
    return path


class StrokeRenderer:
    """Paints strokes, badges and the selection outline onto a QImage."""

    def __init__(
        self,
        highlight_color: str = DEFAULT_HIGHLIGHT_COLOR,
        badge_color: str = DEFAULT_BADGE_COLOR,
        badge_radius: float = BADGE_RADIUS,
    ) -> None:
        self._highlight_color = QColor(highlight_color)
        self._badge_color = QColor(badge_color)
        self._badge_radius = badge_radius

    def create_overlay(self, width: int, height: int) -> QImage:
        """Create a transparent overlay the size of the image."""
        overlay = QImage(max(1, width), max(1, height), QImage.Format.Format_ARGB32_Premultiplied)
        overlay.fill(Qt.GlobalColor.transparent)
        return overlay

    def render(
        self,
        overlay: QImage,
        strokes: Sequence[Stroke],
        comment_counts: Dict[str, int],
        selected_id: Optional[str] = None,
        current_path: Sequence[Point] = (),
        color: str = "#ff2d55",
        size: int = 6,
    ) -> None:
        """
        Clear the overlay and repaint everything.

        Args:
            overlay: Target image (natural image size).
            strokes: Merged strokes in render order.
            comment_counts: Number of comments per stroke id.
            selected_id: Stroke to outline, if any.
            current_path: Points of the stroke being drawn.
            color: Active pencil color for the in-progress path.
            size: Active pencil size for the in-progress path.
        """
        overlay.fill(Qt.GlobalColor.transparent)

        painter = QPainter(overlay)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        try:
            for stroke in strokes:
                self._draw_path(painter, stroke.path, QColor(stroke.color), stroke.size)
                self._draw_badge(painter, stroke, comment_counts.get(stroke.id, 0))

            selected = None
            if selected_id is not None:
                selected = next((s for s in strokes if s.id == selected_id), None)
            if selected is not None:
                painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_DestinationOver)
                self._draw_path(
                    painter, selected.path, self._highlight_color, outline_width(selected.size)
                )
                painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)

            self._draw_path(painter, current_path, QColor(color), size)
        finally:
            painter.end()

    def _draw_path(
        self,
        painter: QPainter,
        points: Sequence[Point],
        color: QColor,
        width: float,
    ) -> None:
        if len(points) < 2:
            return

        pen = QPen(color)
        pen.setWidthF(width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(_build_path(points))

    def _draw_badge(self, painter: QPainter, stroke: Stroke, count: int) -> None:
        """Draw the comment-count badge. The numeral is omitted for zero."""
        center = stroke.bbox.center
        r = self._badge_radius

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(self._badge_color)
        painter.drawEllipse(QPointF(center.x, center.y), r, r)

        if count > 0:
            font = QFont()
            font.setPixelSize(BADGE_FONT_PIXEL_SIZE)
            painter.setFont(font)
            painter.setPen(QColor(255, 255, 255))
            painter.drawText(
                QRectF(center.x - r, center.y - r, r * 2, r * 2),
                Qt.AlignmentFlag.AlignCenter,
                str(count),
            )
