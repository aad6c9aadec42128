"""Shared fixtures for the Retouch test suite."""

import os

# Widgets are created without a display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from typing import List, Optional, Set

import pytest

from retouch.editor.models import ImageRef, Point, Stroke
from retouch.editor.session import AnnotationSession
from retouch.services.document_store import InMemoryDocumentStore, PersistenceError


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store whose writes can be made to fail on demand."""

    def __init__(self, auto_deliver: bool = True) -> None:
        super().__init__(auto_deliver=auto_deliver)
        self.fail_create_stroke = False
        self.fail_delete_stroke = False
        self.fail_find_comments = False
        self.fail_comment_ids: Set[str] = set()
        self.deleted_comment_ids: List[str] = []

    def create_stroke(self, image, stroke):
        if self.fail_create_stroke:
            raise PersistenceError("network unavailable")
        return super().create_stroke(image, stroke)

    def delete_stroke(self, image, stroke_id):
        if self.fail_delete_stroke:
            raise PersistenceError("permission denied")
        super().delete_stroke(image, stroke_id)

    def delete_comment(self, image, comment_id):
        if comment_id in self.fail_comment_ids:
            raise PersistenceError(f"cannot delete {comment_id}")
        super().delete_comment(image, comment_id)
        self.deleted_comment_ids.append(comment_id)

    def find_comments(self, image, markup_id):
        if self.fail_find_comments:
            raise PersistenceError("query failed")
        return super().find_comments(image, markup_id)


def make_stroke(
    stroke_id: str,
    points,
    created_at: float = 0.0,
    color: str = "#ff2d55",
    size: int = 6,
) -> Stroke:
    """Build a stroke from (x, y) tuples with a fixed id and timestamp."""
    stroke = Stroke.create([Point(x, y) for x, y in points], color, size, stroke_id=stroke_id)
    assert stroke is not None
    return stroke.with_created_at(created_at)


@pytest.fixture
def image_ref() -> ImageRef:
    return ImageRef(image_id="mockup-1", width=1000, height=500)


@pytest.fixture
def store() -> FlakyDocumentStore:
    return FlakyDocumentStore()


@pytest.fixture
def deferred_store() -> FlakyDocumentStore:
    """Store that only delivers snapshots when deliver_pending() is called."""
    return FlakyDocumentStore(auto_deliver=False)


def _open_session(image_ref: ImageRef, store: InMemoryDocumentStore) -> AnnotationSession:
    session = AnnotationSession(image_ref, store)
    session.open()
    session.resize_viewport(500, 500)
    return session


@pytest.fixture
def session(qapp, image_ref, store) -> AnnotationSession:
    session = _open_session(image_ref, store)
    yield session
    session.close()


@pytest.fixture
def deferred_session(qapp, image_ref, deferred_store) -> AnnotationSession:
    session = _open_session(image_ref, deferred_store)
    yield session
    session.close()


def draw(session: AnnotationSession, screen_points) -> Optional[Stroke]:
    """Run a full pencil gesture through the session (screen coordinates)."""
    from retouch.editor.tools import ToolType

    session.set_tool(ToolType.DRAW)
    before = set(session.stroke_store.ids())
    first, *rest = [Point(x, y) for x, y in screen_points]
    session.pointer_press(first)
    for point in rest:
        session.pointer_move(point)
    session.pointer_release(rest[-1] if rest else first)
    new = [s for s in session.strokes if s.id not in before]
    return new[0] if new else None
