"""Tests for the annotation canvas widget."""

import pytest
from PySide6.QtCore import QEvent, QPoint, QPointF, Qt
from PySide6.QtGui import QImage, QMouseEvent, QWheelEvent
from PySide6.QtWidgets import QFrame, QHBoxLayout, QPushButton

from retouch.editor.annotation_canvas import AnnotationCanvas
from retouch.editor.models import Point
from retouch.editor.session import AnnotationSession
from retouch.editor.tools import ToolType


def mouse_event(kind: QEvent.Type, x: float, y: float) -> QMouseEvent:
    pos = QPointF(x, y)
    buttons = Qt.MouseButton.NoButton if kind == QEvent.Type.MouseButtonRelease else Qt.MouseButton.LeftButton
    return QMouseEvent(
        kind, pos, pos, Qt.MouseButton.LeftButton, buttons, Qt.KeyboardModifier.NoModifier
    )


def drag(canvas: AnnotationCanvas, points):
    (x, y), *rest = points
    canvas.mousePressEvent(mouse_event(QEvent.Type.MouseButtonPress, x, y))
    for x, y in rest:
        canvas.mouseMoveEvent(mouse_event(QEvent.Type.MouseMove, x, y))
    canvas.mouseReleaseEvent(mouse_event(QEvent.Type.MouseButtonRelease, x, y))


def wheel_event(x: float, y: float, angle: int, modifiers) -> QWheelEvent:
    pos = QPointF(x, y)
    return QWheelEvent(
        pos, pos, QPoint(0, 0), QPoint(0, angle),
        Qt.MouseButton.NoButton, modifiers, Qt.ScrollPhase.NoScrollPhase, False,
    )


@pytest.fixture
def canvas(qtbot, image_ref, store):
    widget = AnnotationCanvas()
    qtbot.addWidget(widget)
    widget.resize(500, 500)
    widget.show()
    qtbot.waitExposed(widget)

    session = AnnotationSession(image_ref, store)
    session.open()
    image = QImage(image_ref.width, image_ref.height, QImage.Format.Format_RGB32)
    image.fill(Qt.GlobalColor.white)
    widget.set_session(session, image)
    yield widget
    widget.set_session(None, None)
    session.close()


def test_set_session_fits_image(canvas):
    viewport = canvas.session.viewport
    assert viewport.zoom == pytest.approx(min(canvas.width() / 1000, canvas.height() / 500))
    assert viewport.fitted


def test_drag_with_pencil_creates_stroke(canvas):
    canvas.session.set_tool(ToolType.DRAW)
    drag(canvas, [(100, 200), (120, 210), (140, 220)])
    strokes = canvas.session.strokes
    assert len(strokes) == 1
    assert len(strokes[0].path) == 3
    assert canvas.session.selected_markup_id == strokes[0].id


def test_press_on_palette_does_not_start_gesture(canvas):
    palette = QFrame(canvas)
    layout = QHBoxLayout(palette)
    button = QPushButton("Pencil")
    layout.addWidget(button)
    palette.setGeometry(0, 0, 200, 60)
    palette.show()
    canvas.set_palette(palette)

    canvas.session.set_tool(ToolType.DRAW)
    target = button.geometry().center()
    drag(canvas, [(target.x(), target.y()), (300, 300), (320, 320)])
    assert canvas.session.strokes == []


def test_ctrl_wheel_zooms_at_pointer(canvas):
    viewport = canvas.session.viewport
    before_zoom = viewport.zoom
    pointer_image = viewport.to_image_space(Point(250, 250))

    canvas.wheelEvent(wheel_event(250, 250, 120, Qt.KeyboardModifier.ControlModifier))
    assert viewport.zoom > before_zoom

    after = viewport.to_image_space(Point(250, 250))
    assert after.x == pytest.approx(pointer_image.x)
    assert after.y == pytest.approx(pointer_image.y)


def test_plain_wheel_does_not_zoom(canvas):
    before = canvas.session.viewport.zoom
    event = wheel_event(250, 250, 120, Qt.KeyboardModifier.NoModifier)
    canvas.wheelEvent(event)
    assert canvas.session.viewport.zoom == before
    assert not event.isAccepted()


def test_tool_shortcuts(qtbot, canvas):
    qtbot.keyClick(canvas, "b")
    assert canvas.session.active_tool_type == ToolType.DRAW
    qtbot.keyClick(canvas, "h")
    assert canvas.session.active_tool_type == ToolType.PAN
    qtbot.keyClick(canvas, "v")
    assert canvas.session.active_tool_type == ToolType.SELECT


def test_palette_toggle_shortcut(qtbot, canvas):
    with qtbot.waitSignal(canvas.palette_toggle_requested, timeout=1000):
        qtbot.keyClick(canvas, "t")


def test_delete_key_requests_delete_only_with_selection(qtbot, canvas):
    with qtbot.assertNotEmitted(canvas.delete_requested):
        qtbot.keyClick(canvas, Qt.Key.Key_Delete)

    canvas.session.set_tool(ToolType.DRAW)
    drag(canvas, [(100, 200), (140, 220)])
    with qtbot.waitSignal(canvas.delete_requested, timeout=1000):
        qtbot.keyClick(canvas, Qt.Key.Key_Delete)


def test_focus_loss_ends_gesture(canvas):
    canvas.session.set_tool(ToolType.DRAW)
    canvas.mousePressEvent(mouse_event(QEvent.Type.MouseButtonPress, 100, 200))
    canvas.mouseMoveEvent(mouse_event(QEvent.Type.MouseMove, 130, 230))
    canvas.hide()
    assert len(canvas.session.strokes) == 1
    assert canvas.session.current_path == []


def test_zoom_to_fit_on_demand(canvas):
    session = canvas.session
    session.zoom_at(3.0)
    canvas.zoom_to_fit()
    assert session.viewport.zoom == pytest.approx(min(canvas.width() / 1000, canvas.height() / 500))


def test_paint_does_not_fail(qtbot, canvas):
    canvas.session.set_tool(ToolType.DRAW)
    drag(canvas, [(100, 200), (140, 220)])
    image = canvas.grab().toImage()
    assert not image.isNull()
