"""
Tool framework for the markup canvas.

Each tool is one mode of the draw/pan/select state machine. Tools receive
pointer events in screen coordinates from the session and decide what the
gesture does.

Tools:
- SelectTool: Click to select the topmost stroke under the pointer
- PanTool: Drag to move the image
- DrawTool: Drag to draw a freehand markup stroke

Switching tools is always explicit (palette or keyboard); the mode never
changes as a side effect of a gesture.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from PySide6.QtCore import Qt

from retouch.editor.models import Point
from retouch.services.logging_service import get_logger

if TYPE_CHECKING:
    from retouch.editor.session import AnnotationSession


class ToolType(Enum):
    """Interaction modes. Values are the names used in config shortcuts."""
    SELECT = "select"
    PAN = "pan"
    DRAW = "draw"


class ToolBase(ABC):
    """
    Base class for all tools.

    A gesture is press, any number of moves, then either release or
    cancel. Cancel is an abnormal end (pointer capture lost, focus lost,
    tool switched) and behaves like release at the last known point.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""
        pass

    @property
    @abstractmethod
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        pass

    @property
    def active(self) -> bool:
        """True while a gesture is in progress."""
        return False

    @abstractmethod
    def on_pointer_press(self, pos: Point, session: "AnnotationSession") -> None:
        """Handle pointer press (screen coordinates)."""
        pass

    @abstractmethod
    def on_pointer_move(self, pos: Point, session: "AnnotationSession") -> None:
        """Handle pointer move (screen coordinates)."""
        pass

    @abstractmethod
    def on_pointer_release(self, pos: Point, session: "AnnotationSession") -> None:
        """Handle pointer release (screen coordinates)."""
        pass

    def on_pointer_cancel(self, session: "AnnotationSession") -> None:
        """Handle an abnormal gesture end. Default: nothing to clean up."""
        pass

    def on_deactivate(self, session: "AnnotationSession") -> None:
        """Called when tool is deactivated (another tool selected)."""
        self.on_pointer_cancel(session)


class SelectTool(ToolBase):
    """
    Select tool: a plain click selects the topmost stroke.

    Press and move leave state alone; the hit-test runs on release, and
    only if the press also happened while this tool was active.
    """

    def __init__(self) -> None:
        super().__init__()
        self._pressed: bool = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.SELECT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.ArrowCursor

    @property
    def active(self) -> bool:
        return self._pressed

    def on_pointer_press(self, pos: Point, session: "AnnotationSession") -> None:
        self._pressed = True

    def on_pointer_move(self, pos: Point, session: "AnnotationSession") -> None:
        pass

    def on_pointer_release(self, pos: Point, session: "AnnotationSession") -> None:
        if not self._pressed:
            return
        self._pressed = False
        session.select_at(session.viewport.to_image_space(pos))

    def on_pointer_cancel(self, session: "AnnotationSession") -> None:
        self._pressed = False


class PanTool(ToolBase):
    """
    Hand tool: drag to pan.

    The offset is recomputed from the baseline captured on press, so
    dropped move events cannot accumulate error.
    """

    def __init__(self) -> None:
        super().__init__()
        self._start: Optional[Point] = None
        self._baseline: Optional[Point] = None

    @property
    def tool_type(self) -> ToolType:
        return ToolType.PAN

    @property
    def cursor(self) -> Qt.CursorShape:
        if self._start is not None:
            return Qt.CursorShape.ClosedHandCursor
        return Qt.CursorShape.OpenHandCursor

    @property
    def active(self) -> bool:
        return self._start is not None

    def on_pointer_press(self, pos: Point, session: "AnnotationSession") -> None:
        self._start = pos
        self._baseline = session.viewport.offset

    def on_pointer_move(self, pos: Point, session: "AnnotationSession") -> None:
        if self._start is None or self._baseline is None:
            return
        delta = pos - self._start
        offset = self._baseline + delta
        session.viewport.set_offset(offset.x, offset.y)
        session.view_changed()

    def on_pointer_release(self, pos: Point, session: "AnnotationSession") -> None:
        self._start = None
        self._baseline = None

    def on_pointer_cancel(self, session: "AnnotationSession") -> None:
        self._start = None
        self._baseline = None


class DrawTool(ToolBase):
    """
    Pencil tool: freehand strokes.

    Every move event's point is kept; there is no decimation or smoothing.
    """

    def __init__(self) -> None:
        super().__init__()
        self._path: List[Point] = []
        self._is_drawing: bool = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.DRAW

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    @property
    def active(self) -> bool:
        return self._is_drawing

    def on_pointer_press(self, pos: Point, session: "AnnotationSession") -> None:
        # Start new path with the press point
        self._path = [session.viewport.to_image_space(pos)]
        self._is_drawing = True
        session.set_current_path(self._path)

    def on_pointer_move(self, pos: Point, session: "AnnotationSession") -> None:
        if not self._is_drawing:
            return
        self._path.append(session.viewport.to_image_space(pos))
        session.set_current_path(self._path)

    def on_pointer_release(self, pos: Point, session: "AnnotationSession") -> None:
        self._finish(session)

    def on_pointer_cancel(self, session: "AnnotationSession") -> None:
        self._finish(session)

    def _finish(self, session: "AnnotationSession") -> None:
        if not self._is_drawing:
            return

        path = self._path
        self._path = []
        self._is_drawing = False
        session.set_current_path([])
        # Short paths are dropped by commit_stroke
        session.commit_stroke(path)


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create tools by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    tool_classes = {
        ToolType.SELECT: SelectTool,
        ToolType.PAN: PanTool,
        ToolType.DRAW: DrawTool,
    }

    if tool_type not in tool_classes:
        raise ValueError(f"Unknown tool type: {tool_type}")

    return tool_classes[tool_type]()
