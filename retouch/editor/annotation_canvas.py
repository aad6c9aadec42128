"""
Annotation canvas widget for Retouch.

The AnnotationCanvas is the drawing area that displays:
- The image under review, at its natural pixel size
- The markup overlay (strokes, badges, selection outline, in-progress path)

Both layers are painted under one translate(offset) · scale(zoom)
transform taken from the session's viewport, so the overlay is never
re-rasterized for a zoom change.

Supports:
- Ctrl/Cmd+wheel zoom anchored at the pointer
- Tool-based pointer interaction (delegated to the session's active tool)
- Single-key tool shortcuts and Delete for the current selection
"""

from typing import Optional

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QKeyEvent, QMouseEvent, QPainter, QWheelEvent
from PySide6.QtWidgets import (
    QAbstractButton,
    QAbstractSlider,
    QAbstractSpinBox,
    QComboBox,
    QLineEdit,
    QPlainTextEdit,
    QTextEdit,
    QWidget,
)

from retouch.editor.models import Point
from retouch.editor.renderer import StrokeRenderer
from retouch.editor.session import AnnotationSession
from retouch.editor.tools import ToolType
from retouch.services.config_service import ConfigService
from retouch.services.logging_service import get_logger


# Widgets that keep their own pointer events; a press on them never starts
# a canvas gesture
_FORM_CONTROLS = (
    QAbstractButton,
    QAbstractSlider,
    QAbstractSpinBox,
    QComboBox,
    QLineEdit,
    QPlainTextEdit,
    QTextEdit,
)


class AnnotationCanvas(QWidget):
    """
    Canvas widget for viewing an image and drawing markups on it.

    Signals:
        cursor_moved: Pointer position in image coordinates.
        delete_requested: Delete/Backspace pressed with something selected.
        palette_toggle_requested: The palette toggle shortcut was pressed.
    """

    cursor_moved = Signal(int, int)
    delete_requested = Signal()
    palette_toggle_requested = Signal()

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        self._session: Optional[AnnotationSession] = None
        self._image: Optional[QImage] = None
        self._overlay: Optional[QImage] = None
        self._overlay_dirty: bool = True
        self._palette: Optional[QWidget] = None

        # A gesture is only forwarded if its press was accepted
        self._gesture_active: bool = False

        if config_service is not None:
            self._renderer = StrokeRenderer(
                highlight_color=config_service.highlight_color,
                badge_color=config_service.badge_color,
            )
        else:
            self._renderer = StrokeRenderer()

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 200)
        self.setStyleSheet("background-color: #1a1a1a;")

    # ─── Session Management ───────────────────────────────────────────────

    def set_session(self, session: Optional[AnnotationSession], image: Optional[QImage]) -> None:
        """
        Show a session and its image.

        Args:
            session: The engine for the image, or None to clear the canvas.
            image: The decoded image; its size must match the session's ImageRef.
        """
        if self._session is not None:
            self._session.overlay_changed.disconnect(self._invalidate_overlay)
            self._session.records_changed.disconnect(self._invalidate_overlay)
            self._session.viewport_changed.disconnect(self._on_viewport_changed)
            self._session.tool_changed.disconnect(self._on_tool_changed)

        self._session = session
        self._image = image
        self._gesture_active = False
        self._overlay = None

        if session is not None and image is not None:
            self._overlay = self._renderer.create_overlay(image.width(), image.height())
            session.overlay_changed.connect(self._invalidate_overlay)
            session.records_changed.connect(self._invalidate_overlay)
            session.viewport_changed.connect(self._on_viewport_changed)
            session.tool_changed.connect(self._on_tool_changed)
            session.resize_viewport(self.width(), self.height())
            self.setCursor(session.active_tool.cursor)
            self._logger.info(f"Canvas showing image: {image.width()}x{image.height()}")

        self._invalidate_overlay()

    @property
    def session(self) -> Optional[AnnotationSession]:
        return self._session

    def set_palette(self, palette: Optional[QWidget]) -> None:
        """Register the floating tool palette so presses on it are ignored."""
        self._palette = palette

    def _invalidate_overlay(self) -> None:
        self._overlay_dirty = True
        self.update()

    def _on_viewport_changed(self, zoom: float) -> None:
        self.update()

    def _on_tool_changed(self, tool_type: ToolType) -> None:
        if self._session is not None:
            self.setCursor(self._session.active_tool.cursor)

    # ─── Zoom ─────────────────────────────────────────────────────────────

    def zoom_in(self) -> None:
        if self._session is not None:
            self._session.viewport.zoom_in()
            self._session.view_changed()

    def zoom_out(self) -> None:
        if self._session is not None:
            self._session.viewport.zoom_out()
            self._session.view_changed()

    def zoom_to_fit(self) -> None:
        """Fit the whole image on demand (the automatic fit runs only once)."""
        if self._session is None or self._image is None:
            return
        if self.width() <= 0 or self.height() <= 0:
            return
        self._session.viewport.fit_to_viewport(
            self._image.width(), self._image.height(), self.width(), self.height()
        )
        self._session.view_changed()

    # ─── Rendering ────────────────────────────────────────────────────────

    def _refresh_overlay(self) -> None:
        """Repaint the overlay raster from the session state."""
        session = self._session
        if session is None or self._overlay is None:
            return

        self._renderer.render(
            self._overlay,
            session.strokes,
            session.comment_counts(),
            selected_id=session.selected_markup_id,
            current_path=session.current_path,
            color=session.color,
            size=session.brush_size,
        )
        self._overlay_dirty = False

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.fillRect(self.rect(), QColor(26, 26, 26))

        if self._session is None or self._image is None:
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            painter.end()
            return

        if self._overlay_dirty:
            self._refresh_overlay()

        viewport = self._session.viewport
        painter.translate(QPointF(viewport.offset.x, viewport.offset.y))
        painter.scale(viewport.zoom, viewport.zoom)

        painter.drawImage(0, 0, self._image)
        if self._overlay is not None:
            painter.drawImage(0, 0, self._overlay)

        painter.end()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def _is_palette_target(self, pos: QPointF) -> bool:
        """True if the point is over the tool palette or a form control."""
        child = self.childAt(pos.toPoint())
        if child is None:
            return False
        if self._palette is not None and (child is self._palette or self._palette.isAncestorOf(child)):
            return True
        return isinstance(child, _FORM_CONTROLS)

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if self._session is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        if self._is_palette_target(event.position()):
            event.ignore()
            return

        self.setFocus()
        self._gesture_active = True
        pos = event.position()
        self._session.pointer_press(Point(pos.x(), pos.y()))
        self.setCursor(self._session.active_tool.cursor)
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        if self._session is None:
            return

        pos = Point(event.position().x(), event.position().y())
        if self._gesture_active:
            self._session.pointer_move(pos)

        img_pos = self._session.viewport.to_image_space(pos)
        self.cursor_moved.emit(int(img_pos.x), int(img_pos.y))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if self._session is None or event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        if not self._gesture_active:
            return

        self._gesture_active = False
        pos = event.position()
        self._session.pointer_release(Point(pos.x(), pos.y()))
        self.setCursor(self._session.active_tool.cursor)

    def _cancel_gesture(self) -> None:
        if self._gesture_active and self._session is not None:
            self._gesture_active = False
            self._session.pointer_cancel()
            self.setCursor(self._session.active_tool.cursor)

    def focusOutEvent(self, event) -> None:
        """Losing focus mid-gesture ends the gesture with what was collected."""
        self._cancel_gesture()
        super().focusOutEvent(event)

    def hideEvent(self, event) -> None:
        self._cancel_gesture()
        super().hideEvent(event)

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Zoom with Ctrl (or Cmd) + wheel, anchored at the pointer."""
        if self._session is None:
            event.ignore()
            return

        modifiers = event.modifiers()
        held = bool(
            modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier)
        )
        pos = event.position()
        # Qt reports wheel-away as positive; the zoom formula expects it negative
        delta_y = -event.angleDelta().y()
        if self._session.wheel_zoom(delta_y, Point(pos.x(), pos.y()), held):
            event.accept()
        else:
            event.ignore()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle tool shortcuts, zoom keys and delete."""
        if self._session is None:
            super().keyPressEvent(event)
            return

        key = event.key()
        modifiers = event.modifiers()

        if modifiers & Qt.KeyboardModifier.ControlModifier:
            if key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
                self.zoom_in()
                return
            elif key == Qt.Key.Key_Minus:
                self.zoom_out()
                return
            elif key == Qt.Key.Key_0:
                self.zoom_to_fit()
                return
            super().keyPressEvent(event)
            return

        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            if self._session.selected_markup_id or self._session.selected_comment_id:
                self.delete_requested.emit()
            return

        text = event.text().lower()
        if text and self._config is not None:
            shortcuts = {
                self._config.shortcut("select"): ToolType.SELECT,
                self._config.shortcut("pan"): ToolType.PAN,
                self._config.shortcut("draw"): ToolType.DRAW,
            }
            toggle = self._config.shortcut("toggle_palette")
        else:
            shortcuts = {"v": ToolType.SELECT, "h": ToolType.PAN, "b": ToolType.DRAW}
            toggle = "t"

        if text in shortcuts:
            self._session.set_tool(shortcuts[text])
            return
        if text and text == toggle:
            self.palette_toggle_requested.emit()
            return

        super().keyPressEvent(event)

    def resizeEvent(self, event) -> None:
        """Track the viewport size; the first usable size fits the image."""
        super().resizeEvent(event)
        if self._session is not None:
            self._session.resize_viewport(self.width(), self.height())
