"""
Live document store service for Retouch.

The annotation engine talks to its backing store only through the
DocumentStore interface defined here:
- ordered live subscriptions to an image's strokes and comments
- create/delete for strokes, create/update/delete for comments

Every subscription delivery is the full current snapshot, ascending by
creation time. Record ids are assigned by the client, so an optimistic
local stroke and its persisted copy share the same id.

Two implementations are provided:
- InMemoryDocumentStore: process-local store, used by tests and as the
  default backend
- JsonFileDocumentStore: the in-memory store mirrored to one JSON file per
  image, so markups survive restarts
"""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from retouch.editor.models import Comment, ImageRef, Stroke
from retouch.services.logging_service import get_logger


StrokeListener = Callable[[List[Stroke]], None]
CommentListener = Callable[[List[Comment]], None]


# ─── Errors ───────────────────────────────────────────────────────────────────

class PersistenceError(Exception):
    """A write was rejected by the document store."""


class RecordNotFoundError(PersistenceError):
    """The record to update or delete does not exist."""


class CascadeDeleteError(PersistenceError):
    """
    One or more steps of a stroke-and-comments delete failed.

    Attributes:
        stroke_id: The stroke that was being deleted.
        errors: The underlying failures, in the order they occurred.
        deleted_comment_ids: Comments that were deleted before the failure.
    """

    def __init__(
        self,
        stroke_id: str,
        errors: Sequence[Exception],
        deleted_comment_ids: Sequence[str] = (),
    ) -> None:
        self.stroke_id = stroke_id
        self.errors = list(errors)
        self.deleted_comment_ids = list(deleted_comment_ids)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Failed to delete markup {stroke_id}: {details}")


# ─── Interface ────────────────────────────────────────────────────────────────

class Subscription:
    """Handle returned by subscribe_*; call unsubscribe() to stop updates."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Optional[Callable[[], None]] = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def unsubscribe(self) -> None:
        if self._cancel is not None:
            self._cancel()
            self._cancel = None


class DocumentStore(ABC):
    """Narrow interface the annotation engine uses to persist records."""

    @abstractmethod
    def subscribe_strokes(self, image: ImageRef, on_update: StrokeListener) -> Subscription:
        """Deliver the ordered stroke list now and on every change."""
        pass

    @abstractmethod
    def subscribe_comments(self, image: ImageRef, on_update: CommentListener) -> Subscription:
        """Deliver the ordered comment list now and on every change."""
        pass

    @abstractmethod
    def create_stroke(self, image: ImageRef, stroke: Stroke) -> str:
        """Persist a stroke under its client-assigned id. Returns the id."""
        pass

    @abstractmethod
    def delete_stroke(self, image: ImageRef, stroke_id: str) -> None:
        pass

    @abstractmethod
    def create_comment(self, image: ImageRef, comment: Comment) -> str:
        pass

    @abstractmethod
    def update_comment(self, image: ImageRef, comment_id: str, fields: Dict[str, Any]) -> None:
        """Update text/link fields of a comment."""
        pass

    @abstractmethod
    def delete_comment(self, image: ImageRef, comment_id: str) -> None:
        pass

    @abstractmethod
    def find_comments(self, image: ImageRef, markup_id: str) -> List[Comment]:
        """Authoritative lookup of every comment linked to a stroke."""
        pass


# ─── In-Memory Store ──────────────────────────────────────────────────────────

class _ImageCollections:
    """Stroke and comment collections plus listeners for one image."""

    def __init__(self) -> None:
        self.strokes: Dict[str, Stroke] = {}
        self.comments: Dict[str, Comment] = {}
        self.stroke_listeners: List[StrokeListener] = []
        self.comment_listeners: List[CommentListener] = []

    def ordered_strokes(self) -> List[Stroke]:
        return sorted(self.strokes.values(), key=lambda s: s.created_at)

    def ordered_comments(self) -> List[Comment]:
        return sorted(self.comments.values(), key=lambda c: c.created_at)


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local document store.

    The store assigns its own creation timestamps (strictly increasing),
    replacing the client placeholder, like a server timestamp would.

    With auto_deliver=False, subscription snapshots are queued after each
    write and only sent when deliver_pending() is called. This reproduces
    the gap between an optimistic local change and its confirmation.
    """

    def __init__(self, auto_deliver: bool = True) -> None:
        self._logger = get_logger(__name__)
        self._images: Dict[str, _ImageCollections] = {}
        self._auto_deliver = auto_deliver
        self._dirty: Dict[str, set] = {}
        self._last_timestamp: float = 0.0

    # ─── Helpers ──────────────────────────────────────────────────────────

    def _collections(self, image: ImageRef) -> _ImageCollections:
        if image.image_id not in self._images:
            self._images[image.image_id] = self._load(image)
        return self._images[image.image_id]

    def _load(self, image: ImageRef) -> _ImageCollections:
        """Create the collections for an image seen for the first time."""
        return _ImageCollections()

    def _save(self, image: ImageRef) -> None:
        """
        Hook called after every in-memory write.

        Raises:
            PersistenceError: The write could not be made durable.
        """
        pass

    def _timestamp(self) -> float:
        now = max(time.time(), self._last_timestamp + 1e-6)
        self._last_timestamp = now
        return now

    def _changed(self, image: ImageRef, kind: str, undo: Callable[[], None]) -> None:
        """
        Persist a write and queue its snapshot.

        If saving fails, undo() reverts the in-memory change before the
        error propagates, so memory never runs ahead of the saved state.
        """
        try:
            self._save(image)
        except PersistenceError:
            undo()
            raise
        self._dirty.setdefault(image.image_id, set()).add(kind)
        if self._auto_deliver:
            self.deliver_pending()

    def deliver_pending(self) -> None:
        """Send queued snapshots to subscribers."""
        dirty, self._dirty = self._dirty, {}
        for image_id, kinds in dirty.items():
            collections = self._images.get(image_id)
            if collections is None:
                continue
            if "strokes" in kinds:
                snapshot = collections.ordered_strokes()
                for listener in list(collections.stroke_listeners):
                    listener(list(snapshot))
            if "comments" in kinds:
                snapshot = collections.ordered_comments()
                for listener in list(collections.comment_listeners):
                    listener(list(snapshot))

    # ─── Subscriptions ────────────────────────────────────────────────────

    def subscribe_strokes(self, image: ImageRef, on_update: StrokeListener) -> Subscription:
        collections = self._collections(image)
        collections.stroke_listeners.append(on_update)
        on_update(collections.ordered_strokes())

        def cancel() -> None:
            if on_update in collections.stroke_listeners:
                collections.stroke_listeners.remove(on_update)

        return Subscription(cancel)

    def subscribe_comments(self, image: ImageRef, on_update: CommentListener) -> Subscription:
        collections = self._collections(image)
        collections.comment_listeners.append(on_update)
        on_update(collections.ordered_comments())

        def cancel() -> None:
            if on_update in collections.comment_listeners:
                collections.comment_listeners.remove(on_update)

        return Subscription(cancel)

    # ─── Strokes ──────────────────────────────────────────────────────────

    def create_stroke(self, image: ImageRef, stroke: Stroke) -> str:
        collections = self._collections(image)
        if stroke.id in collections.strokes:
            raise PersistenceError(f"Markup {stroke.id} already exists")

        collections.strokes[stroke.id] = stroke.with_created_at(self._timestamp())
        self._changed(image, "strokes", lambda: collections.strokes.pop(stroke.id, None))
        self._logger.debug(f"Created markup {stroke.id} on image {image.image_id}")
        return stroke.id

    def delete_stroke(self, image: ImageRef, stroke_id: str) -> None:
        collections = self._collections(image)
        removed = collections.strokes.pop(stroke_id, None)
        if removed is None:
            raise RecordNotFoundError(f"Markup {stroke_id} not found")

        self._changed(image, "strokes", lambda: collections.strokes.update({stroke_id: removed}))
        self._logger.debug(f"Deleted markup {stroke_id} on image {image.image_id}")

    # ─── Comments ─────────────────────────────────────────────────────────

    def create_comment(self, image: ImageRef, comment: Comment) -> str:
        collections = self._collections(image)
        if comment.id in collections.comments:
            raise PersistenceError(f"Comment {comment.id} already exists")
        # Markups are stored synchronously, so a pending one is already here
        if comment.markup_id not in collections.strokes:
            raise PersistenceError(f"Markup {comment.markup_id} does not exist")

        collections.comments[comment.id] = replace(comment, created_at=self._timestamp())
        self._changed(image, "comments", lambda: collections.comments.pop(comment.id, None))
        return comment.id

    def update_comment(self, image: ImageRef, comment_id: str, fields: Dict[str, Any]) -> None:
        collections = self._collections(image)
        comment = collections.comments.get(comment_id)
        if comment is None:
            raise RecordNotFoundError(f"Comment {comment_id} not found")

        unknown = set(fields) - {"text", "link"}
        if unknown:
            raise PersistenceError(f"Fields not editable: {sorted(unknown)}")

        collections.comments[comment_id] = comment.edited(
            fields.get("text", comment.text),
            fields.get("link", comment.link),
        )
        self._changed(image, "comments", lambda: collections.comments.update({comment_id: comment}))

    def delete_comment(self, image: ImageRef, comment_id: str) -> None:
        collections = self._collections(image)
        removed = collections.comments.pop(comment_id, None)
        if removed is None:
            raise RecordNotFoundError(f"Comment {comment_id} not found")
        self._changed(image, "comments", lambda: collections.comments.update({comment_id: removed}))

    def find_comments(self, image: ImageRef, markup_id: str) -> List[Comment]:
        collections = self._collections(image)
        return [c for c in collections.ordered_comments() if c.markup_id == markup_id]


# ─── JSON File Store ──────────────────────────────────────────────────────────

class JsonFileDocumentStore(InMemoryDocumentStore):
    """
    In-memory store mirrored to <root_dir>/<image_id>.json.

    A corrupted file is logged and treated as empty, the same way the config
    service handles its file. A failed write raises PersistenceError and the
    in-memory change is undone, so the caller sees the failure.
    """

    def __init__(self, root_dir: Path, auto_deliver: bool = True) -> None:
        super().__init__(auto_deliver=auto_deliver)
        self._root_dir = Path(root_dir)

    def _path_for(self, image: ImageRef) -> Path:
        return self._root_dir / f"{image.image_id}.json"

    def _load(self, image: ImageRef) -> _ImageCollections:
        collections = _ImageCollections()
        path = self._path_for(image)
        if not path.exists():
            return collections

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise ValueError("Store file does not contain a JSON object")

            for record in data.get("markups", []):
                stroke = Stroke.from_record(record)
                collections.strokes[stroke.id] = stroke
            for record in data.get("comments", []):
                comment = Comment.from_record(record)
                collections.comments[comment.id] = comment

            timestamps = [s.created_at for s in collections.strokes.values()]
            timestamps += [c.created_at for c in collections.comments.values()]
            if timestamps:
                self._last_timestamp = max(self._last_timestamp, max(timestamps))

            self._logger.info(
                f"Loaded {len(collections.strokes)} markups and "
                f"{len(collections.comments)} comments from {path}"
            )

        except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
            self._logger.warning(f"Store file {path} is invalid: {e}. Starting empty.")
            collections = _ImageCollections()

        return collections

    def _save(self, image: ImageRef) -> None:
        collections = self._images[image.image_id]
        path = self._path_for(image)
        data = {
            "image": {"id": image.image_id, "width": image.width, "height": image.height},
            "markups": [s.to_record() for s in collections.ordered_strokes()],
            "comments": [c.to_record() for c in collections.ordered_comments()],
        }

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            self._logger.debug(f"Store saved to {path}")
        except OSError as e:
            self._logger.error(f"Could not save store file {path}: {e}")
            raise PersistenceError(f"Could not save {path.name}: {e}") from e
