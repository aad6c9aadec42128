"""
Editor widget for Retouch - the main review UI component.

This widget composes the complete review interface:
- Center canvas for image display and markup
- Floating tool palette over the canvas (mode, pencil, zoom, delete)
- Right comment panel
- Bottom status bar with zoom, dimensions, mode and notices
"""

import hashlib
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QPoint, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QImage, QPainter, QPainterPath, QPen, QPixmap, QPolygon
from PySide6.QtWidgets import (
    QButtonGroup,
    QColorDialog,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSlider,
    QSpinBox,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from retouch.editor.annotation_canvas import AnnotationCanvas
from retouch.editor.comment_panel import CommentPanel
from retouch.editor.models import ImageRef
from retouch.editor.session import AnnotationSession
from retouch.editor.tools import ToolType
from retouch.editor.viewport import MAX_ZOOM, MIN_ZOOM
from retouch.services.config_service import ConfigService
from retouch.services.document_store import DocumentStore
from retouch.services.logging_service import get_logger


NOTICE_DURATION_MS = 2000

_MODE_LABELS = {
    ToolType.SELECT: "Select",
    ToolType.PAN: "Pan",
    ToolType.DRAW: "Pencil",
}


def image_ref_for(path: Union[str, Path], image: QImage) -> ImageRef:
    """
    Build the ImageRef for a decoded image file.

    The id is derived from the file contents so the same picture opened
    from another location shares its markups and comments.
    """
    path = Path(path)
    digest = hashlib.sha1(path.read_bytes()).hexdigest()[:16]
    return ImageRef(
        image_id=f"{path.stem}-{digest}",
        width=image.width(),
        height=image.height(),
        source=str(path),
    )


class ColorButton(QPushButton):
    """Button that shows a color and opens color picker on click."""

    color_changed = Signal(QColor)

    def __init__(self, color: QColor = QColor("#ff2d55"), parent=None):
        super().__init__(parent)
        self._color = color
        self.setFixedSize(28, 28)
        self.setToolTip("Pencil color")
        self.clicked.connect(self._on_click)
        self._update_style()

    @property
    def color(self) -> QColor:
        return self._color

    @color.setter
    def color(self, value: QColor) -> None:
        self._color = value
        self._update_style()

    def _update_style(self) -> None:
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color.name()};
                border: 2px solid #555;
                border-radius: 4px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
        """)

    def _on_click(self) -> None:
        color = QColorDialog.getColor(self._color, self, "Select Color")
        if color.isValid():
            self._color = color
            self._update_style()
            self.color_changed.emit(color)


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a palette icon programmatically."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(color)

    if shape == "select":
        # Arrow cursor shape
        painter.setBrush(color)
        points = [
            QPoint(6, 4),
            QPoint(6, 18),
            QPoint(10, 14),
            QPoint(14, 20),
            QPoint(16, 18),
            QPoint(12, 12),
            QPoint(18, 12),
        ]
        painter.drawPolygon(QPolygon(points))

    elif shape == "pan":
        # Four-way arrows
        painter.drawLine(12, 3, 12, 21)
        painter.drawLine(3, 12, 21, 12)
        painter.setBrush(color)
        painter.drawPolygon(QPolygon([QPoint(12, 2), QPoint(9, 6), QPoint(15, 6)]))
        painter.drawPolygon(QPolygon([QPoint(12, 22), QPoint(9, 18), QPoint(15, 18)]))
        painter.drawPolygon(QPolygon([QPoint(2, 12), QPoint(6, 9), QPoint(6, 15)]))
        painter.drawPolygon(QPolygon([QPoint(22, 12), QPoint(18, 9), QPoint(18, 15)]))

    elif shape == "draw":
        # Squiggly line
        painter.setBrush(Qt.BrushStyle.NoBrush)
        path = QPainterPath()
        path.moveTo(4, 12)
        path.cubicTo(8, 4, 12, 20, 16, 10)
        path.lineTo(20, 8)
        painter.drawPath(path)

    elif shape == "delete":
        # Trash can
        pen = QPen(color)
        pen.setWidthF(1.6)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawLine(4, 7, 20, 7)
        painter.drawRect(7, 7, 10, 13)
        painter.drawLine(10, 4, 14, 4)
        painter.drawLine(10, 10, 10, 17)
        painter.drawLine(14, 10, 14, 17)

    painter.end()
    return QIcon(pixmap)


class ToolPalette(QFrame):
    """
    Floating palette over the canvas.

    Holds the mode buttons, pencil size and color, a zoom slider and
    the delete button for the current selection.
    """

    tool_selected = Signal(object)
    brush_size_changed = Signal(int)
    color_changed = Signal(str)
    zoom_requested = Signal(float)
    delete_requested = Signal()

    def __init__(self, color: str = "#ff2d55", brush_size: int = 6, parent=None):
        super().__init__(parent)
        self._updating = False
        self._setup_ui(color, brush_size)

    def _setup_ui(self, color: str, brush_size: int) -> None:
        self.setObjectName("toolPalette")
        self.setStyleSheet("""
            QFrame#toolPalette {
                background-color: rgba(42, 42, 42, 0.92);
                border: 1px solid #3a3a3a;
                border-radius: 10px;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
            QToolButton {
                background-color: transparent;
                border: none;
                border-radius: 8px;
                padding: 4px;
                min-width: 28px;
                min-height: 28px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
            QSpinBox {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                padding: 2px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)
        layout.setSpacing(6)

        # Mode buttons
        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)

        tool_configs = [
            (ToolType.SELECT, "Select", "select", "V"),
            (ToolType.PAN, "Pan", "pan", "H"),
            (ToolType.DRAW, "Pencil", "draw", "B"),
        ]

        for tool_type, tooltip, icon_shape, shortcut in tool_configs:
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(icon_shape))
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.setProperty("tool_type", tool_type)
            btn.clicked.connect(lambda checked, t=tool_type: self.tool_selected.emit(t))
            self._tool_group.addButton(btn)
            layout.addWidget(btn)

            if tool_type == ToolType.SELECT:
                btn.setChecked(True)

        # Pencil
        self._brush_size = QSpinBox()
        self._brush_size.setRange(1, 50)
        self._brush_size.setValue(brush_size)
        self._brush_size.setSuffix(" px")
        self._brush_size.setToolTip("Pencil size")
        self._brush_size.valueChanged.connect(self.brush_size_changed.emit)
        layout.addWidget(self._brush_size)

        self._color_btn = ColorButton(QColor(color))
        self._color_btn.color_changed.connect(lambda c: self.color_changed.emit(c.name()))
        self.color_changed.connect(self._sync_color_button)
        layout.addWidget(self._color_btn)

        # Zoom
        layout.addWidget(QLabel("Zoom"))
        self._zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self._zoom_slider.setRange(int(MIN_ZOOM * 100), int(MAX_ZOOM * 100))
        self._zoom_slider.setValue(100)
        self._zoom_slider.setFixedWidth(110)
        self._zoom_slider.valueChanged.connect(self._on_zoom_slider)
        layout.addWidget(self._zoom_slider)

        self._delete_btn = QToolButton()
        self._delete_btn.setIcon(_create_tool_icon("delete"))
        self._delete_btn.setToolTip("Delete selection (Delete)")
        self._delete_btn.setEnabled(False)
        self._delete_btn.clicked.connect(self.delete_requested.emit)
        layout.addWidget(self._delete_btn)

        self.adjustSize()

    @property
    def zoom_slider(self) -> QSlider:
        return self._zoom_slider

    @property
    def brush_spin(self) -> QSpinBox:
        return self._brush_size

    @property
    def color(self) -> str:
        """Pencil color shown on the color button, as #rrggbb."""
        return self._color_btn.color.name()

    def set_color(self, color: str) -> None:
        """Pick a pencil color without the dialog."""
        self.color_changed.emit(QColor(color).name())

    def tool_button(self, tool_type: ToolType) -> Optional[QToolButton]:
        for btn in self._tool_group.buttons():
            if btn.property("tool_type") == tool_type:
                return btn
        return None

    def set_tool(self, tool_type: ToolType) -> None:
        """Check the button for the active mode."""
        btn = self.tool_button(tool_type)
        if btn is not None:
            btn.setChecked(True)

    def set_zoom(self, zoom: float) -> None:
        """Move the slider without emitting zoom_requested."""
        self._updating = True
        self._zoom_slider.setValue(int(round(zoom * 100)))
        self._updating = False

    def set_delete_enabled(self, enabled: bool) -> None:
        self._delete_btn.setEnabled(enabled)

    def _on_zoom_slider(self, value: int) -> None:
        if not self._updating:
            self.zoom_requested.emit(value / 100.0)

    def _sync_color_button(self, color: str) -> None:
        if self._color_btn.color.name() != color:
            self._color_btn.color = QColor(color)


class StatusBar(QFrame):
    """
    Bottom status bar showing zoom, image dimensions, mode and notices.
    """

    zoom_selected = Signal(float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            QFrame {
                background-color: #2a2a2a;
                border-top: 1px solid #3a3a3a;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
            QComboBox {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                padding: 2px 8px;
                min-width: 70px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        # Zoom control
        zoom_layout = QHBoxLayout()
        zoom_layout.setSpacing(6)
        zoom_layout.addWidget(QLabel("Zoom:"))

        self._zoom_combo = QComboBox()
        self._zoom_combo.setEditable(True)
        self._zoom_combo.addItems(["25%", "50%", "100%", "200%", "400%", "Fit"])
        self._zoom_combo.setCurrentText("100%")
        self._zoom_combo.textActivated.connect(self._on_zoom_selected)
        zoom_layout.addWidget(self._zoom_combo)

        layout.addLayout(zoom_layout)

        self._dimensions = QLabel("0 × 0")
        layout.addWidget(self._dimensions)

        self._mode = QLabel("Select")
        layout.addWidget(self._mode)

        self._cursor_pos = QLabel("")
        layout.addWidget(self._cursor_pos)

        layout.addStretch()

        # Transient confirmation / error text
        self._notice = QLabel("")
        layout.addWidget(self._notice)

    @property
    def notice_text(self) -> str:
        return self._notice.text()

    @property
    def zoom_text(self) -> str:
        return self._zoom_combo.currentText()

    def set_zoom(self, zoom: float) -> None:
        """Update zoom display."""
        self._zoom_combo.blockSignals(True)
        text = f"{int(round(zoom * 100))}%"

        index = self._zoom_combo.findText(text)
        if index >= 0:
            self._zoom_combo.setCurrentIndex(index)
        else:
            self._zoom_combo.setEditText(text)

        self._zoom_combo.blockSignals(False)

    def set_dimensions(self, width: int, height: int) -> None:
        """Update image dimensions display."""
        self._dimensions.setText(f"{width} × {height}")

    def set_mode(self, tool_type: ToolType) -> None:
        self._mode.setText(_MODE_LABELS.get(tool_type, tool_type.value))

    def set_cursor_position(self, x: int, y: int) -> None:
        """Update cursor position display."""
        self._cursor_pos.setText(f"({x}, {y})")

    def show_notice(self, text: str, error: bool = False) -> None:
        color = "#ff6b6b" if error else "#7bd88f"
        self._notice.setStyleSheet(f"color: {color};")
        self._notice.setText(text)

    def clear_notice(self) -> None:
        self._notice.setText("")

    def _on_zoom_selected(self, text: str) -> None:
        if text == "Fit":
            self.zoom_selected.emit(-1)  # Special value for fit
        else:
            try:
                percent = float(text.replace("%", "").strip())
                self.zoom_selected.emit(percent / 100.0)
            except ValueError:
                pass


class EditorWidget(QWidget):
    """
    Main review widget composing canvas, tool palette, comments and status bar.

    Signals:
        image_opened: Path of the image now under review.
    """

    image_opened = Signal(str)

    def __init__(
        self,
        store: DocumentStore,
        config_service: Optional[ConfigService] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._store = store

        self._session: Optional[AnnotationSession] = None
        self._image: Optional[QImage] = None

        # One timer per widget, restarted by every notice
        self._notice_timer = QTimer(self)
        self._notice_timer.setSingleShot(True)
        self._notice_timer.setInterval(NOTICE_DURATION_MS)

        self._setup_ui()
        self._connect_signals()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Center Content ───────────────────────────────────────────
        content = QHBoxLayout()
        content.setContentsMargins(0, 0, 0, 0)
        content.setSpacing(0)

        self._canvas = AnnotationCanvas(self._config)
        content.addWidget(self._canvas, 1)

        color = self._config.stroke_color if self._config else "#ff2d55"
        brush_size = self._config.brush_size if self._config else 6
        self._palette = ToolPalette(color, brush_size, parent=self._canvas)
        self._palette.move(12, 12)
        self._canvas.set_palette(self._palette)

        self._comments = CommentPanel()
        content.addWidget(self._comments)

        main_layout.addLayout(content, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

    def _connect_signals(self) -> None:
        """Connect widget signals."""
        self._canvas.cursor_moved.connect(self._status.set_cursor_position)
        self._canvas.delete_requested.connect(self.request_delete)
        self._canvas.palette_toggle_requested.connect(self.toggle_palette)

        self._palette.tool_selected.connect(self._on_tool_selected)
        self._palette.brush_size_changed.connect(self._on_brush_size_changed)
        self._palette.color_changed.connect(self._on_color_changed)
        self._palette.zoom_requested.connect(self._on_zoom_selected)
        self._palette.delete_requested.connect(self.request_delete)

        self._comments.delete_comment_requested.connect(self.request_delete_comment)
        self._status.zoom_selected.connect(self._on_zoom_selected)
        self._notice_timer.timeout.connect(self._status.clear_notice)

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def session(self) -> Optional[AnnotationSession]:
        return self._session

    @property
    def canvas(self) -> AnnotationCanvas:
        return self._canvas

    @property
    def palette(self) -> ToolPalette:
        return self._palette

    @property
    def comment_panel(self) -> CommentPanel:
        return self._comments

    @property
    def status_bar(self) -> StatusBar:
        return self._status

    # ─── Image Management ─────────────────────────────────────────────────

    def open_image(self, path: Union[str, Path]) -> bool:
        """
        Load an image file and start reviewing it.

        Returns:
            True if the image was decoded and a session opened.
        """
        path = Path(path)
        image = QImage(str(path))
        if image.isNull():
            self._logger.error(f"Could not load image: {path}")
            self.show_notice(f"Could not load image: {path.name}", error=True)
            return False

        try:
            image_ref = image_ref_for(path, image)
        except OSError as e:
            self._logger.error(f"Could not read image file {path}: {e}")
            self.show_notice(f"Could not read image: {path.name}", error=True)
            return False

        self.set_image(image, image_ref)
        self.image_opened.emit(str(path))
        return True

    def set_image(self, image: QImage, image_ref: ImageRef) -> None:
        """Start a session for an already decoded image."""
        self.close_session()

        session = AnnotationSession(
            image_ref,
            self._store,
            color=self._palette.color,
            brush_size=self._palette.brush_spin.value(),
            hit_padding=self._config.hit_padding if self._config else 4.0,
            wheel_zoom_rate=self._config.wheel_zoom_rate if self._config else 0.0015,
            parent=self,
        )
        session.viewport_changed.connect(self._on_zoom_changed)
        session.tool_changed.connect(self._on_tool_changed)
        session.selection_changed.connect(self._on_selection_changed)
        session.operation_failed.connect(self._on_operation_failed)
        session.notice.connect(self.show_notice)

        self._session = session
        self._image = image
        session.open()

        self._canvas.set_session(session, image)
        self._comments.set_session(session)
        self._palette.set_tool(session.active_tool_type)
        self._palette.set_zoom(session.viewport.zoom)
        self._palette.set_delete_enabled(False)
        self._status.set_dimensions(image.width(), image.height())
        self._status.set_mode(session.active_tool_type)
        self._status.set_zoom(session.viewport.zoom)
        self._logger.info(f"Reviewing image {image_ref.image_id}")

    def close_session(self) -> None:
        """Stop reviewing the current image, if any."""
        if self._session is None:
            return

        self._canvas.set_session(None, None)
        self._comments.set_session(None)
        self._session.close()
        self._session.deleteLater()
        self._session = None
        self._image = None

    # ─── Palette ──────────────────────────────────────────────────────────

    @Slot()
    def toggle_palette(self) -> None:
        self._palette.setVisible(not self._palette.isVisible())

    @Slot(object)
    def _on_tool_selected(self, tool_type: ToolType) -> None:
        if self._session is not None:
            self._session.set_tool(tool_type)

    @Slot(int)
    def _on_brush_size_changed(self, size: int) -> None:
        if self._session is not None:
            self._session.set_brush_size(size)

    @Slot(str)
    def _on_color_changed(self, color: str) -> None:
        if self._session is not None:
            self._session.set_color(color)

    # ─── Delete ───────────────────────────────────────────────────────────

    def _confirm(self, question: str) -> bool:
        answer = QMessageBox.question(
            self,
            "Retouch",
            question,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    @Slot()
    def request_delete(self) -> None:
        """Delete the selected comment, or else the selected markup, after confirming."""
        session = self._session
        if session is None:
            return

        if session.selected_comment_id:
            self.request_delete_comment(session.selected_comment_id)
        elif session.selected_markup_id:
            if self._confirm("Delete this markup and all comments linked to it?"):
                session.delete_stroke(session.selected_markup_id)

    @Slot(str)
    def request_delete_comment(self, comment_id: str) -> None:
        """Delete a comment, optionally together with its markup."""
        if self._session is None:
            return
        if not self._confirm("Delete this comment?"):
            return

        also = self._confirm(
            "Also delete its linked markup AND all comments linked to that markup?"
        )
        self._session.delete_comment(comment_id, also_delete_markup=also)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(float)
    def _on_zoom_changed(self, zoom: float) -> None:
        self._status.set_zoom(zoom)
        self._palette.set_zoom(zoom)

    @Slot(float)
    def _on_zoom_selected(self, zoom: float) -> None:
        if self._session is None:
            return
        if zoom < 0:
            self._canvas.zoom_to_fit()
        else:
            self._session.zoom_at(zoom)

    @Slot(object)
    def _on_tool_changed(self, tool_type: ToolType) -> None:
        self._palette.set_tool(tool_type)
        self._status.set_mode(tool_type)

    @Slot(object, object)
    def _on_selection_changed(self, markup_id, comment_id) -> None:
        self._palette.set_delete_enabled(bool(markup_id or comment_id))

    @Slot(str)
    def _on_operation_failed(self, message: str) -> None:
        self.show_notice(message, error=True)

    def show_notice(self, text: str, error: bool = False) -> None:
        """Show a transient message in the status bar."""
        self._status.show_notice(text, error)
        self._notice_timer.start()
