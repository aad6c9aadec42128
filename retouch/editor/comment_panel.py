"""
Comment panel for Retouch.

Right-hand panel that lists every comment on the image and hosts the
composer. Selecting a comment selects its markup on the canvas; selecting
a markup on the canvas scrolls its first comment into view.
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from retouch.editor.models import Comment
from retouch.editor.session import AnnotationSession
from retouch.editor.stroke_store import WriteStatus
from retouch.services.logging_service import get_logger


COMMENT_ID_ROLE = Qt.ItemDataRole.UserRole


def describe_comment(comment: Comment, stroke_number: int) -> str:
    """Text shown for a comment in the list."""
    label = f"#{stroke_number}" if stroke_number > 0 else "#?"
    lines = [f"Linked to markup {label}"]
    if comment.text:
        lines.append(comment.text)
    if comment.link:
        lines.append(comment.link)
    if comment.ref_image_url:
        lines.append(f"[reference] {comment.ref_image_url}")
    return "\n".join(lines)


class CommentPanel(QFrame):
    """
    List of comments plus the composer for new and edited comments.

    Signals:
        delete_comment_requested: Comment id the user asked to delete; the
            owner confirms and performs the delete.
    """

    delete_comment_requested = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session: Optional[AnnotationSession] = None
        self._editing_id: Optional[str] = None
        self._updating = False

        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedWidth(300)
        self.setStyleSheet("""
            QFrame {
                background-color: #2d2d2d;
                border-left: 1px solid #3a3a3a;
            }
            QLabel {
                color: #ddd;
                font-size: 11px;
            }
            QLineEdit, QComboBox, QListWidget {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                padding: 4px;
            }
            QListWidget::item:selected {
                background-color: rgba(6, 182, 212, 0.35);
            }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        title = QLabel("Comments")
        title.setStyleSheet("font-weight: bold; font-size: 13px;")
        layout.addWidget(title)

        hint = QLabel("Enter = add comment. Select a markup first.")
        hint.setWordWrap(True)
        layout.addWidget(hint)

        # Markup chooser
        chooser_row = QHBoxLayout()
        self._markup_combo = QComboBox()
        self._markup_combo.currentIndexChanged.connect(self._on_markup_chosen)
        chooser_row.addWidget(self._markup_combo, 1)

        self._retry_btn = QPushButton("Retry")
        self._retry_btn.setToolTip("Retry saving this markup")
        self._retry_btn.setVisible(False)
        self._retry_btn.clicked.connect(self._on_retry)
        chooser_row.addWidget(self._retry_btn)
        layout.addLayout(chooser_row)

        # Composer
        self._text_edit = QLineEdit()
        self._text_edit.setPlaceholderText("Write a comment…")
        self._text_edit.returnPressed.connect(self.submit)
        layout.addWidget(self._text_edit)

        self._link_edit = QLineEdit()
        self._link_edit.setPlaceholderText("Link (optional, e.g. https://example.com)")
        self._link_edit.returnPressed.connect(self.submit)
        layout.addWidget(self._link_edit)

        composer_row = QHBoxLayout()
        self._submit_btn = QPushButton("Add comment")
        self._submit_btn.clicked.connect(self.submit)
        composer_row.addWidget(self._submit_btn)

        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.setVisible(False)
        self._cancel_btn.clicked.connect(self.cancel_edit)
        composer_row.addWidget(self._cancel_btn)
        layout.addLayout(composer_row)

        # Comment list
        self._list = QListWidget()
        self._list.setWordWrap(True)
        self._list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self._list.itemClicked.connect(self._on_item_clicked)
        layout.addWidget(self._list, 1)

        self._empty_label = QLabel("No comments yet.")
        layout.addWidget(self._empty_label)

        actions = QHBoxLayout()
        self._edit_btn = QPushButton("Edit")
        self._edit_btn.clicked.connect(self._on_edit_clicked)
        actions.addWidget(self._edit_btn)

        self._delete_btn = QPushButton("Delete")
        self._delete_btn.setToolTip("Delete comment (optionally also delete its markup)")
        self._delete_btn.clicked.connect(self._on_delete_clicked)
        actions.addWidget(self._delete_btn)
        layout.addLayout(actions)

        self._refresh()

    # ─── Session ──────────────────────────────────────────────────────────

    def set_session(self, session: Optional[AnnotationSession]) -> None:
        """Bind the panel to a session (or None to clear it)."""
        if self._session is not None:
            self._session.records_changed.disconnect(self._refresh)
            self._session.selection_changed.disconnect(self._on_selection_changed)
            self._session.scroll_to_comment.disconnect(self.scroll_to_comment)

        self._session = session
        self._editing_id = None

        if session is not None:
            session.records_changed.connect(self._refresh)
            session.selection_changed.connect(self._on_selection_changed)
            session.scroll_to_comment.connect(self.scroll_to_comment)

        self._reset_composer()
        self._refresh()

    @property
    def editing_id(self) -> Optional[str]:
        return self._editing_id

    @property
    def comment_list(self) -> QListWidget:
        return self._list

    @property
    def markup_combo(self) -> QComboBox:
        return self._markup_combo

    @property
    def text_edit(self) -> QLineEdit:
        return self._text_edit

    @property
    def link_edit(self) -> QLineEdit:
        return self._link_edit

    # ─── Composer ─────────────────────────────────────────────────────────

    @Slot()
    def submit(self) -> None:
        """Post the composer contents as a new comment, or save an edit."""
        if self._session is None:
            return

        text = self._text_edit.text()
        link = self._link_edit.text()

        if self._editing_id is not None:
            if self._session.update_comment(self._editing_id, text, link):
                self.cancel_edit()
            return

        if self._session.add_comment(text=text, link=link) is not None:
            self._reset_composer()
            self._text_edit.setFocus()

    def start_edit(self, comment_id: str) -> None:
        """Load a comment into the composer for editing and select it."""
        if self._session is None:
            return
        comment = next((c for c in self._session.comments if c.id == comment_id), None)
        if comment is None:
            return

        self._editing_id = comment_id
        self._session.select_comment(comment_id)
        self._text_edit.setText(comment.text or "")
        self._link_edit.setText(comment.link or "")
        self._submit_btn.setText("Save")
        self._cancel_btn.setVisible(True)
        self._text_edit.setFocus()

    @Slot()
    def cancel_edit(self) -> None:
        self._editing_id = None
        self._reset_composer()

    def _reset_composer(self) -> None:
        self._text_edit.clear()
        self._link_edit.clear()
        self._submit_btn.setText("Add comment")
        self._cancel_btn.setVisible(False)

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key.Key_Escape and self._editing_id is not None:
            self.cancel_edit()
            return
        super().keyPressEvent(event)

    # ─── List ─────────────────────────────────────────────────────────────

    @Slot()
    def _refresh(self) -> None:
        """Rebuild the markup chooser and comment list from the session."""
        self._updating = True
        try:
            self._markup_combo.clear()
            self._markup_combo.addItem("Choose a markup…", None)
            self._list.clear()

            session = self._session
            if session is not None:
                store = session.stroke_store
                for number, stroke in enumerate(session.strokes, start=1):
                    label = f"#{number} · {stroke.color} · {stroke.size}px"
                    if store.status(stroke.id) == WriteStatus.FAILED:
                        label += " (not saved)"
                    self._markup_combo.addItem(label, stroke.id)

                for comment in session.comments:
                    item = QListWidgetItem(
                        describe_comment(comment, session.stroke_number(comment.markup_id))
                    )
                    item.setData(COMMENT_ID_ROLE, comment.id)
                    self._list.addItem(item)

                if self._editing_id is not None and not any(
                    c.id == self._editing_id for c in session.comments
                ):
                    self.cancel_edit()
        finally:
            self._updating = False

        self._sync_selection()

    def _sync_selection(self) -> None:
        """Reflect the session's selection in the chooser and list."""
        session = self._session
        markup_id = session.selected_markup_id if session is not None else None
        comment_id = session.selected_comment_id if session is not None else None

        self._updating = True
        try:
            index = self._markup_combo.findData(markup_id) if markup_id else 0
            self._markup_combo.setCurrentIndex(max(0, index))

            self._list.clearSelection()
            item = self._find_item(comment_id)
            if item is not None:
                item.setSelected(True)
                self._list.setCurrentItem(item)
        finally:
            self._updating = False

        has_comments = self._list.count() > 0
        self._list.setVisible(has_comments)
        self._empty_label.setVisible(not has_comments)
        self._edit_btn.setEnabled(comment_id is not None)
        self._delete_btn.setEnabled(comment_id is not None)
        self._retry_btn.setVisible(
            session is not None
            and markup_id is not None
            and session.stroke_store.status(markup_id) == WriteStatus.FAILED
        )

    def _find_item(self, comment_id: Optional[str]) -> Optional[QListWidgetItem]:
        if comment_id is None:
            return None
        for row in range(self._list.count()):
            item = self._list.item(row)
            if item.data(COMMENT_ID_ROLE) == comment_id:
                return item
        return None

    @Slot(str)
    def scroll_to_comment(self, comment_id: str) -> None:
        """Bring a comment into view, centred."""
        item = self._find_item(comment_id)
        if item is not None:
            self._list.scrollToItem(item, QAbstractItemView.ScrollHint.PositionAtCenter)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(object, object)
    def _on_selection_changed(self, markup_id, comment_id) -> None:
        self._sync_selection()

    @Slot(int)
    def _on_markup_chosen(self, index: int) -> None:
        if self._updating or self._session is None:
            return
        markup_id = self._markup_combo.itemData(index)
        if markup_id:
            self._session.select_stroke(markup_id)
        else:
            self._session.clear_selection()

    @Slot(QListWidgetItem)
    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        if self._session is None or self._editing_id is not None:
            return
        self._session.select_comment(item.data(COMMENT_ID_ROLE))

    @Slot()
    def _on_edit_clicked(self) -> None:
        if self._session is not None and self._session.selected_comment_id:
            self.start_edit(self._session.selected_comment_id)

    @Slot()
    def _on_delete_clicked(self) -> None:
        if self._session is not None and self._session.selected_comment_id:
            self.delete_comment_requested.emit(self._session.selected_comment_id)

    @Slot()
    def _on_retry(self) -> None:
        if self._session is not None and self._session.selected_markup_id:
            self._session.retry_stroke(self._session.selected_markup_id)
