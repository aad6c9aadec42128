"""
Selection state and stroke/comment linking.

Selecting a stroke jumps to its earliest comment; selecting a comment
selects the stroke it belongs to.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from retouch.editor.models import Comment


@dataclass
class SelectionState:
    """At most one selected stroke and at most one selected comment."""
    markup_id: Optional[str] = None
    comment_id: Optional[str] = None


def comments_for(markup_id: str, comments: Iterable[Comment]) -> List[Comment]:
    """Comments linked to a stroke, in the order given (creation order)."""
    return [c for c in comments if c.markup_id == markup_id]


def comment_counts(comments: Iterable[Comment]) -> Dict[str, int]:
    """Number of comments per stroke id."""
    return dict(Counter(c.markup_id for c in comments))


class CommentLinker:
    """Owns the selection state for one session."""

    def __init__(self) -> None:
        self._selection = SelectionState()

    @property
    def selection(self) -> SelectionState:
        return SelectionState(self._selection.markup_id, self._selection.comment_id)

    @property
    def selected_markup_id(self) -> Optional[str]:
        return self._selection.markup_id

    @property
    def selected_comment_id(self) -> Optional[str]:
        return self._selection.comment_id

    def select_stroke(
        self,
        markup_id: Optional[str],
        comments: Sequence[Comment],
    ) -> Optional[Comment]:
        """
        Select a stroke (or clear the stroke selection with None).

        Args:
            markup_id: The stroke to select.
            comments: All comments, in creation order.

        Returns:
            The first comment linked to the stroke, now selected, which the
            UI should scroll into view. None if the stroke has no comments,
            in which case the comment selection is cleared.
        """
        self._selection.markup_id = markup_id
        self._selection.comment_id = None
        if markup_id is None:
            return None

        for comment in comments:
            if comment.markup_id == markup_id:
                self._selection.comment_id = comment.id
                return comment
        return None

    def select_comment(self, comment_id: str, comments: Sequence[Comment]) -> bool:
        """
        Select a comment and its parent stroke.

        Returns:
            False if the comment is unknown (selection unchanged).
        """
        for comment in comments:
            if comment.id == comment_id:
                self._selection.comment_id = comment.id
                self._selection.markup_id = comment.markup_id
                return True
        return False

    def clear_comment(self) -> None:
        self._selection.comment_id = None

    def clear_selection(self) -> None:
        self._selection = SelectionState()

    def prune(self, stroke_ids: Iterable[str], comment_ids: Iterable[str]) -> bool:
        """
        Drop selections that point at records which no longer exist.

        Returns:
            True if anything was cleared.
        """
        changed = False
        if self._selection.markup_id is not None and self._selection.markup_id not in set(stroke_ids):
            self._selection.markup_id = None
            changed = True
        if self._selection.comment_id is not None and self._selection.comment_id not in set(comment_ids):
            self._selection.comment_id = None
            changed = True
        return changed
