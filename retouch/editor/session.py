"""
Annotation session: the markup engine for one open image.

The session owns every piece of per-image state:
- the viewport transform (pan/zoom)
- the stroke store (confirmed + optimistic strokes)
- the latest comment snapshot
- selection state (via the comment linker)
- the active tool, pencil color/size and the in-progress path

Flow:
1. The canvas forwards pointer events (screen coordinates) to the session
2. The active tool turns them into pans, selections or a finished path
3. A finished path becomes a stroke: it is added locally and selected,
   then written to the document store
4. The store's live subscription delivers the confirmed list, which
   replaces the server set and retires the local copy

Nothing here blocks: writes report failure through operation_failed and
the optimistic state is kept (or, for a failed delete, restored).
"""

from typing import Dict, List, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from retouch.editor.comment_linker import CommentLinker, comment_counts, comments_for
from retouch.editor.hit_test import HIT_PADDING, hit_test
from retouch.editor.models import Comment, ImageRef, Point, Stroke
from retouch.editor.stroke_store import StrokeStore, WriteStatus
from retouch.editor.tools import ToolBase, ToolType, create_tool
from retouch.editor.viewport import DEFAULT_WHEEL_ZOOM_RATE, ViewportTransform
from retouch.services.document_store import (
    CascadeDeleteError,
    DocumentStore,
    PersistenceError,
    RecordNotFoundError,
    Subscription,
)
from retouch.services.logging_service import get_logger


class AnnotationSession(QObject):
    """
    Engine state and operations for one image.

    Signals:
        overlay_changed: The overlay must be repainted (strokes, comments,
            in-progress path, pencil style or selection changed).
        records_changed: The stroke or comment lists changed.
        selection_changed: (markup_id, comment_id) after any selection change.
        scroll_to_comment: A comment id the comment list should bring into view.
        viewport_changed: Zoom level after any pan/zoom change.
        tool_changed: The new ToolType.
        operation_failed: User-visible message for a failed write.
        notice: User-visible confirmation message.
    """

    overlay_changed = Signal()
    records_changed = Signal()
    selection_changed = Signal(object, object)
    scroll_to_comment = Signal(str)
    viewport_changed = Signal(float)
    tool_changed = Signal(object)
    operation_failed = Signal(str)
    notice = Signal(str)

    def __init__(
        self,
        image: ImageRef,
        store: DocumentStore,
        color: str = "#ff2d55",
        brush_size: int = 6,
        hit_padding: float = HIT_PADDING,
        wheel_zoom_rate: float = DEFAULT_WHEEL_ZOOM_RATE,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._image = image
        self._store = store

        self._viewport = ViewportTransform(wheel_zoom_rate)
        self._strokes = StrokeStore()
        self._comments: List[Comment] = []
        self._linker = CommentLinker()

        self._tool: ToolBase = create_tool(ToolType.SELECT)
        self._color = color
        self._brush_size = max(1, int(brush_size))
        self._hit_padding = hit_padding
        self._current_path: List[Point] = []

        self._subscriptions: List[Subscription] = []

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def open(self) -> None:
        """Subscribe to the image's strokes and comments."""
        if self._subscriptions:
            return
        self._subscriptions = [
            self._store.subscribe_strokes(self._image, self._on_strokes_update),
            self._store.subscribe_comments(self._image, self._on_comments_update),
        ]
        self._logger.info(
            f"Session opened for image {self._image.image_id} "
            f"({self._image.width}x{self._image.height})"
        )

    def close(self) -> None:
        """Stop live updates and drop any in-progress gesture."""
        self._tool.on_pointer_cancel(self)
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._logger.info(f"Session closed for image {self._image.image_id}")

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def image(self) -> ImageRef:
        return self._image

    @property
    def viewport(self) -> ViewportTransform:
        return self._viewport

    @property
    def stroke_store(self) -> StrokeStore:
        return self._strokes

    @property
    def strokes(self) -> List[Stroke]:
        """Merged stroke list in render order."""
        return self._strokes.strokes

    @property
    def comments(self) -> List[Comment]:
        return list(self._comments)

    @property
    def current_path(self) -> List[Point]:
        return list(self._current_path)

    @property
    def color(self) -> str:
        return self._color

    @property
    def brush_size(self) -> int:
        return self._brush_size

    @property
    def selected_markup_id(self) -> Optional[str]:
        return self._linker.selected_markup_id

    @property
    def selected_comment_id(self) -> Optional[str]:
        return self._linker.selected_comment_id

    @property
    def selected_stroke(self) -> Optional[Stroke]:
        return self._strokes.get(self._linker.selected_markup_id)

    @property
    def active_tool(self) -> ToolBase:
        return self._tool

    @property
    def active_tool_type(self) -> ToolType:
        return self._tool.tool_type

    def comment_counts(self) -> Dict[str, int]:
        """Comments per stroke id, for the count badges."""
        return comment_counts(self._comments)

    def comments_for(self, markup_id: str) -> List[Comment]:
        return comments_for(markup_id, self._comments)

    def stroke_number(self, markup_id: str) -> int:
        """1-based position of a stroke in render order, or 0 if unknown."""
        return self._strokes.index_of(markup_id) + 1

    # ─── Pencil and Tools ─────────────────────────────────────────────────

    def set_tool(self, tool_type: ToolType) -> None:
        """Switch mode. A gesture in progress ends as if released."""
        if tool_type == self._tool.tool_type:
            return

        self._tool.on_deactivate(self)
        self._tool = create_tool(tool_type)
        self._logger.debug(f"Tool changed to {tool_type.value}")
        self.tool_changed.emit(tool_type)

    def set_color(self, color: str) -> None:
        if color == self._color:
            return
        self._color = color
        self.overlay_changed.emit()

    def set_brush_size(self, size: int) -> None:
        size = max(1, int(size))
        if size == self._brush_size:
            return
        self._brush_size = size
        self.overlay_changed.emit()

    def set_current_path(self, path: Sequence[Point]) -> None:
        """Replace the in-progress path (called by the draw tool)."""
        self._current_path = list(path)
        self.overlay_changed.emit()

    # ─── Pointer Events ───────────────────────────────────────────────────

    def pointer_press(self, pos: Point) -> None:
        self._tool.on_pointer_press(pos, self)

    def pointer_move(self, pos: Point) -> None:
        self._tool.on_pointer_move(pos, self)

    def pointer_release(self, pos: Point) -> None:
        self._tool.on_pointer_release(pos, self)

    def pointer_cancel(self) -> None:
        """Abnormal gesture end; keeps whatever was collected so far."""
        self._tool.on_pointer_cancel(self)

    # ─── Viewport ─────────────────────────────────────────────────────────

    def view_changed(self) -> None:
        """Notify listeners that pan or zoom changed."""
        self.viewport_changed.emit(self._viewport.zoom)

    def zoom_at(self, zoom: float, focal: Optional[Point] = None) -> None:
        self._viewport.zoom_at(zoom, focal)
        self.view_changed()

    def wheel_zoom(self, delta_y: float, focal: Point, modifier_held: bool) -> bool:
        if not self._viewport.wheel_zoom(delta_y, focal, modifier_held):
            return False
        self.view_changed()
        return True

    def resize_viewport(self, width: float, height: float) -> None:
        """Record the viewport size and run the one-time fit if it is due."""
        self._viewport.set_viewport_size(width, height)
        if self._viewport.ensure_fitted(self._image.width, self._image.height, width, height):
            self.view_changed()

    # ─── Strokes ──────────────────────────────────────────────────────────

    def commit_stroke(self, path: Sequence[Point]) -> Optional[Stroke]:
        """
        Turn a finished draw gesture into a stroke.

        The stroke is shown and selected immediately, then persisted.
        Paths with fewer than two points are dropped without a write.

        Returns:
            The new stroke, or None if the path was too short.
        """
        stroke = Stroke.create(list(path), self._color, self._brush_size)
        if stroke is None:
            self._logger.debug(f"Discarded gesture with {len(path)} point(s)")
            return None

        self._strokes.add_local(stroke)
        self._linker.select_stroke(stroke.id, self._comments)
        self.records_changed.emit()
        self._emit_selection()

        self._submit_stroke(stroke)
        return stroke

    def retry_stroke(self, stroke_id: str) -> bool:
        """
        Resubmit a stroke whose write failed.

        Returns:
            True if the write succeeded this time.
        """
        if self._strokes.status(stroke_id) != WriteStatus.FAILED:
            return False

        stroke = self._strokes.get(stroke_id)
        if stroke is None:
            return False
        ok = self._submit_stroke(stroke)
        if ok:
            self.records_changed.emit()
        return ok

    def _submit_stroke(self, stroke: Stroke) -> bool:
        self._strokes.mark_pending(stroke.id)
        try:
            self._store.create_stroke(self._image, stroke)
        except PersistenceError as e:
            self._strokes.mark_failed(stroke.id)
            self._logger.error(f"Failed to save markup {stroke.id}: {e}")
            self.records_changed.emit()
            self.operation_failed.emit(f"Failed to save markup: {e}")
            return False
        return True

    def delete_stroke(self, stroke_id: str) -> bool:
        """
        Delete a stroke and every comment linked to it.

        The stroke disappears at once. Linked comments are deleted first;
        the stroke record is deleted only if all of them succeeded. On any
        failure the stroke is put back and one aggregate error is reported.

        Returns:
            True if the stroke and its comments are gone.
        """
        stroke = self._strokes.get(stroke_id)
        if stroke is None:
            return False

        if self._strokes.remove_local(stroke_id) is None:
            self._strokes.hide_server(stroke_id)
        if self._linker.selected_markup_id == stroke_id:
            self._linker.clear_selection()
            self._emit_selection()
        self.records_changed.emit()

        errors: List[Exception] = []
        deleted: List[str] = []

        targets = {c.id for c in comments_for(stroke_id, self._comments)}
        try:
            targets |= {c.id for c in self._store.find_comments(self._image, stroke_id)}
        except PersistenceError as e:
            errors.append(e)

        if not errors:
            for comment_id in sorted(targets):
                try:
                    self._store.delete_comment(self._image, comment_id)
                    deleted.append(comment_id)
                except RecordNotFoundError:
                    deleted.append(comment_id)
                except PersistenceError as e:
                    errors.append(e)

        if not errors:
            try:
                self._store.delete_stroke(self._image, stroke_id)
            except RecordNotFoundError:
                # Never persisted, or already removed by another client
                pass
            except PersistenceError as e:
                errors.append(e)

        if errors:
            error = CascadeDeleteError(stroke_id, errors, deleted)
            self._strokes.restore(stroke)
            self._logger.error(str(error))
            self.records_changed.emit()
            self.operation_failed.emit(str(error))
            return False

        self._strokes.forget(stroke_id)
        self._logger.info(f"Deleted markup {stroke_id} and {len(deleted)} comment(s)")
        self.notice.emit("Markup deleted")
        return True

    def delete_selected(self) -> bool:
        """Delete the selected comment, or else the selected stroke."""
        if self._linker.selected_comment_id:
            return self.delete_comment(self._linker.selected_comment_id)
        if self._linker.selected_markup_id:
            return self.delete_stroke(self._linker.selected_markup_id)
        return False

    # ─── Comments ─────────────────────────────────────────────────────────

    def add_comment(
        self,
        text: Optional[str] = None,
        link: Optional[str] = None,
        ref_image_url: Optional[str] = None,
        ref_image_id: Optional[str] = None,
    ) -> Optional[Comment]:
        """
        Attach a comment to the selected stroke.

        Returns:
            The comment, or None if nothing was written (no selected stroke,
            the stroke was never saved, no content, or the write failed).
        """
        markup_id = self._linker.selected_markup_id
        if markup_id is None or markup_id not in self._strokes:
            self._logger.debug("Comment ignored: no markup selected")
            return None

        if self._strokes.status(markup_id) == WriteStatus.FAILED:
            self._logger.warning(f"Comment rejected: markup {markup_id} is not saved")
            self.operation_failed.emit("Failed to add comment: markup is not saved, retry it first")
            return None

        comment = Comment.create(markup_id, text, link, ref_image_url, ref_image_id)
        if comment is None:
            self._logger.debug("Comment ignored: no content")
            return None

        try:
            self._store.create_comment(self._image, comment)
        except PersistenceError as e:
            self._logger.error(f"Failed to add comment: {e}")
            self.operation_failed.emit(f"Failed to add comment: {e}")
            return None

        self.notice.emit("Comment added")
        return comment

    def update_comment(self, comment_id: str, text: Optional[str], link: Optional[str]) -> bool:
        """Edit the text and link of a comment."""
        existing = self._find_comment(comment_id)
        if existing is None:
            return False

        edited = existing.edited(text, link)
        if not edited.has_content:
            self._logger.debug(f"Edit of comment {comment_id} ignored: no content")
            return False

        try:
            self._store.update_comment(
                self._image, comment_id, {"text": edited.text, "link": edited.link}
            )
        except PersistenceError as e:
            self._logger.error(f"Failed to update comment {comment_id}: {e}")
            self.operation_failed.emit(f"Failed to update comment: {e}")
            return False

        self.notice.emit("Comment updated")
        return True

    def delete_comment(self, comment_id: str, also_delete_markup: bool = False) -> bool:
        """
        Delete one comment, or with also_delete_markup its whole stroke
        together with every comment on it.
        """
        comment = self._find_comment(comment_id)
        if comment is None:
            return False

        if also_delete_markup:
            return self.delete_stroke(comment.markup_id)

        try:
            self._store.delete_comment(self._image, comment_id)
        except RecordNotFoundError:
            pass
        except PersistenceError as e:
            self._logger.error(f"Failed to delete comment {comment_id}: {e}")
            self.operation_failed.emit(f"Failed to delete comment: {e}")
            return False

        if self._linker.selected_comment_id == comment_id:
            self._linker.clear_comment()
            self._emit_selection()
        return True

    def _find_comment(self, comment_id: str) -> Optional[Comment]:
        for comment in self._comments:
            if comment.id == comment_id:
                return comment
        return None

    # ─── Selection ────────────────────────────────────────────────────────

    def select_at(self, image_point: Point) -> Optional[str]:
        """
        Select the topmost stroke under an image point.

        A click on empty canvas leaves the selection alone.
        """
        stroke_id = hit_test(image_point, self._strokes.strokes, self._hit_padding)
        if stroke_id is not None:
            self.select_stroke(stroke_id)
        return stroke_id

    def select_stroke(self, stroke_id: Optional[str]) -> None:
        """Select a stroke and jump to its first comment, if any."""
        if stroke_id is not None and stroke_id not in self._strokes:
            return

        first = self._linker.select_stroke(stroke_id, self._comments)
        self._emit_selection()
        if first is not None:
            self.scroll_to_comment.emit(first.id)

    def select_comment(self, comment_id: str) -> None:
        """Select a comment and the stroke it is linked to."""
        if self._linker.select_comment(comment_id, self._comments):
            self._emit_selection()

    def clear_selection(self) -> None:
        self._linker.clear_selection()
        self._emit_selection()

    def _emit_selection(self) -> None:
        self.selection_changed.emit(
            self._linker.selected_markup_id, self._linker.selected_comment_id
        )
        self.overlay_changed.emit()

    # ─── Live Updates ─────────────────────────────────────────────────────

    def _on_strokes_update(self, strokes: List[Stroke]) -> None:
        # The in-progress path is untouched: it is not part of either set
        self._strokes.set_server_strokes(strokes)
        self._prune_selection()
        self.records_changed.emit()
        self.overlay_changed.emit()

    def _on_comments_update(self, comments: List[Comment]) -> None:
        self._comments = list(comments)
        self._prune_selection()
        self.records_changed.emit()
        self.overlay_changed.emit()

    def _prune_selection(self) -> None:
        if self._linker.prune(self._strokes.ids(), {c.id for c in self._comments}):
            self._logger.debug("Selection cleared: record no longer exists")
            self.selection_changed.emit(
                self._linker.selected_markup_id, self._linker.selected_comment_id
            )
