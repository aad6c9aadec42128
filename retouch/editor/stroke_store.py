"""
Stroke store: merges confirmed and optimistic strokes.

Two sets are kept:
- server strokes: authoritative, replaced wholesale on every live update
- local strokes: drawn in this session and not yet seen from the server

The merged view is server strokes followed by local strokes whose id is not
already confirmed. Once an id has been seen from the server it never comes
back into the local set, so an optimistic stroke graduates without a
duplicate or a flicker.
"""

from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Set

from retouch.editor.models import Stroke
from retouch.services.logging_service import get_logger


class WriteStatus(Enum):
    """Persistence status of a stroke as seen by this client."""
    PENDING = auto()
    FAILED = auto()
    CONFIRMED = auto()


def merge_strokes(server: Iterable[Stroke], local: Iterable[Stroke]) -> List[Stroke]:
    """
    Merge authoritative and optimistic strokes into one ordered list.

    Server order is kept, then local strokes in local creation order,
    skipping any id the server already has.
    """
    merged = list(server)
    server_ids = {s.id for s in merged}
    merged.extend(s for s in local if s.id not in server_ids)
    return merged


class StrokeStore:
    """Owned server set plus the derived pending local set."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._server: List[Stroke] = []
        self._local: List[Stroke] = []
        self._confirmed_ids: Set[str] = set()
        # PENDING/FAILED for unconfirmed strokes only; CONFIRMED is derived
        self._status: Dict[str, WriteStatus] = {}
        self._merged: List[Stroke] = []

    # ─── Views ────────────────────────────────────────────────────────────

    @property
    def strokes(self) -> List[Stroke]:
        """Merged view: server strokes then pending local strokes."""
        return list(self._merged)

    @property
    def server_strokes(self) -> List[Stroke]:
        return list(self._server)

    @property
    def local_strokes(self) -> List[Stroke]:
        return list(self._local)

    def get(self, stroke_id: Optional[str]) -> Optional[Stroke]:
        for stroke in self._merged:
            if stroke.id == stroke_id:
                return stroke
        return None

    def index_of(self, stroke_id: str) -> int:
        """Position of a stroke in the merged view, or -1."""
        for i, stroke in enumerate(self._merged):
            if stroke.id == stroke_id:
                return i
        return -1

    def ids(self) -> Set[str]:
        return {s.id for s in self._merged}

    def __contains__(self, stroke_id: object) -> bool:
        return any(s.id == stroke_id for s in self._merged)

    def __len__(self) -> int:
        return len(self._merged)

    # ─── Updates ──────────────────────────────────────────────────────────

    def set_server_strokes(self, strokes: Iterable[Stroke]) -> None:
        """
        Replace the authoritative set and refilter pending strokes.

        Both sets are updated before the merged view is rebuilt, so callers
        never observe an intermediate state.
        """
        server = list(strokes)
        server_ids = {s.id for s in server}

        graduated = [s.id for s in self._local if s.id in server_ids]
        self._confirmed_ids |= server_ids
        self._server = server
        self._local = [s for s in self._local if s.id not in self._confirmed_ids]

        for stroke_id in server_ids:
            self._status.pop(stroke_id, None)
        if graduated:
            self._logger.debug(f"Strokes confirmed by server: {graduated}")

        self._rebuild()

    def add_local(self, stroke: Stroke) -> bool:
        """
        Add an optimistic stroke.

        Returns:
            False if the id is already known (confirmed or pending).
        """
        if stroke.id in self._confirmed_ids or any(s.id == stroke.id for s in self._local):
            return False

        self._local.append(stroke)
        self._status[stroke.id] = WriteStatus.PENDING
        self._rebuild()
        return True

    def remove_local(self, stroke_id: str) -> Optional[Stroke]:
        """Remove a stroke from the pending set. Returns it if it was there."""
        for i, stroke in enumerate(self._local):
            if stroke.id == stroke_id:
                del self._local[i]
                self._rebuild()
                return stroke
        return None

    def hide_server(self, stroke_id: str) -> Optional[Stroke]:
        """
        Optimistically hide a confirmed stroke until the next server update.

        Returns the hidden stroke so a failed delete can restore it.
        """
        for i, stroke in enumerate(self._server):
            if stroke.id == stroke_id:
                del self._server[i]
                self._rebuild()
                return stroke
        return None

    def restore(self, stroke: Stroke) -> None:
        """
        Put back a stroke removed by remove_local or hide_server.

        Confirmed strokes return to the server set, pending ones to the
        local set, each at its creation-order position.
        """
        if stroke.id in self:
            return

        target = self._server if stroke.id in self._confirmed_ids else self._local
        index = len(target)
        for i, existing in enumerate(target):
            if existing.created_at > stroke.created_at:
                index = i
                break
        target.insert(index, stroke)
        self._rebuild()

    # ─── Write Status ─────────────────────────────────────────────────────

    def status(self, stroke_id: str) -> Optional[WriteStatus]:
        if stroke_id in self._confirmed_ids:
            return WriteStatus.CONFIRMED
        return self._status.get(stroke_id)

    def mark_pending(self, stroke_id: str) -> None:
        if stroke_id not in self._confirmed_ids:
            self._status[stroke_id] = WriteStatus.PENDING

    def mark_failed(self, stroke_id: str) -> None:
        if stroke_id not in self._confirmed_ids:
            self._status[stroke_id] = WriteStatus.FAILED

    def forget(self, stroke_id: str) -> None:
        """Drop the write status of a stroke that has been deleted."""
        self._status.pop(stroke_id, None)

    def failed_ids(self) -> List[str]:
        return [s.id for s in self._local if self._status.get(s.id) == WriteStatus.FAILED]

    def _rebuild(self) -> None:
        self._merged = merge_strokes(self._server, self._local)
