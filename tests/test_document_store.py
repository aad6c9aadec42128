"""Tests for the in-memory and JSON file document stores."""

import json

import pytest

from conftest import make_stroke

from retouch.editor.models import Comment, ImageRef
from retouch.services.document_store import (
    CascadeDeleteError,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    PersistenceError,
    RecordNotFoundError,
)


@pytest.fixture
def image() -> ImageRef:
    return ImageRef(image_id="board", width=800, height=600)


class TestInMemoryStore:
    def test_subscribe_delivers_snapshot_immediately(self, image):
        store = InMemoryDocumentStore()
        received = []
        store.subscribe_strokes(image, received.append)
        assert received == [[]]

    def test_snapshots_are_ordered_by_creation(self, image):
        store = InMemoryDocumentStore()
        received = []
        store.subscribe_strokes(image, received.append)
        # Client timestamps are replaced by the store's own
        store.create_stroke(image, make_stroke("late", [(0, 0), (1, 1)], created_at=99))
        store.create_stroke(image, make_stroke("early", [(0, 0), (1, 1)], created_at=1))
        assert [s.id for s in received[-1]] == ["late", "early"]

    def test_images_are_isolated(self, image):
        store = InMemoryDocumentStore()
        other = ImageRef(image_id="other", width=10, height=10)
        store.create_stroke(image, make_stroke("s", [(0, 0), (1, 1)]))
        received = []
        store.subscribe_strokes(other, received.append)
        assert received == [[]]

    def test_duplicate_create_rejected(self, image):
        store = InMemoryDocumentStore()
        stroke = make_stroke("s", [(0, 0), (1, 1)])
        store.create_stroke(image, stroke)
        with pytest.raises(PersistenceError):
            store.create_stroke(image, stroke)

    def test_delete_missing_raises_not_found(self, image):
        store = InMemoryDocumentStore()
        with pytest.raises(RecordNotFoundError):
            store.delete_stroke(image, "nope")
        with pytest.raises(RecordNotFoundError):
            store.delete_comment(image, "nope")

    def test_unsubscribe(self, image):
        store = InMemoryDocumentStore()
        received = []
        subscription = store.subscribe_strokes(image, received.append)
        subscription.unsubscribe()
        assert not subscription.active
        store.create_stroke(image, make_stroke("s", [(0, 0), (1, 1)]))
        assert received == [[]]

    def test_deferred_delivery(self, image):
        store = InMemoryDocumentStore(auto_deliver=False)
        received = []
        store.subscribe_strokes(image, received.append)
        store.create_stroke(image, make_stroke("a", [(0, 0), (1, 1)]))
        store.create_stroke(image, make_stroke("b", [(0, 0), (1, 1)]))
        assert len(received) == 1
        store.deliver_pending()
        assert len(received) == 2
        assert [s.id for s in received[-1]] == ["a", "b"]

    def test_update_comment_only_text_and_link(self, image):
        store = InMemoryDocumentStore()
        store.create_stroke(image, make_stroke("s", [(0, 0), (1, 1)]))
        comment = Comment.create("s", text="hi")
        store.create_comment(image, comment)
        store.update_comment(image, comment.id, {"text": "hello", "link": None})
        assert store.find_comments(image, "s")[0].text == "hello"
        with pytest.raises(PersistenceError):
            store.update_comment(image, comment.id, {"markupId": "other"})
        with pytest.raises(RecordNotFoundError):
            store.update_comment(image, "missing", {"text": "x"})

    def test_find_comments(self, image):
        store = InMemoryDocumentStore()
        for stroke_id in ("a", "b"):
            store.create_stroke(image, make_stroke(stroke_id, [(0, 0), (1, 1)]))
        a1 = Comment.create("a", text="1")
        b1 = Comment.create("b", text="2")
        a2 = Comment.create("a", text="3")
        for c in (a1, b1, a2):
            store.create_comment(image, c)
        assert [c.id for c in store.find_comments(image, "a")] == [a1.id, a2.id]

    def test_comment_needs_existing_markup(self, image):
        store = InMemoryDocumentStore(auto_deliver=False)
        with pytest.raises(PersistenceError):
            store.create_comment(image, Comment.create("ghost", text="hi"))

        # Not yet delivered to subscribers, but already stored
        store.create_stroke(image, make_stroke("s", [(0, 0), (1, 1)]))
        comment = Comment.create("s", text="hi")
        assert store.create_comment(image, comment) == comment.id


class TestJsonFileStore:
    def test_records_survive_reload(self, tmp_path, image):
        store = JsonFileDocumentStore(tmp_path)
        store.create_stroke(image, make_stroke("s1", [(1, 2), (3, 4)]))
        comment = Comment.create("s1", text="persist me")
        store.create_comment(image, comment)

        data = json.loads((tmp_path / "board.json").read_text(encoding="utf-8"))
        assert [m["id"] for m in data["markups"]] == ["s1"]
        assert data["comments"][0]["markupId"] == "s1"

        reloaded = JsonFileDocumentStore(tmp_path)
        strokes = []
        reloaded.subscribe_strokes(image, strokes.append)
        assert [s.id for s in strokes[0]] == ["s1"]
        assert [c.text for c in reloaded.find_comments(image, "s1")] == ["persist me"]

    def test_new_records_sort_after_loaded_ones(self, tmp_path, image):
        JsonFileDocumentStore(tmp_path).create_stroke(image, make_stroke("old", [(0, 0), (1, 1)]))
        store = JsonFileDocumentStore(tmp_path)
        store.create_stroke(image, make_stroke("new", [(0, 0), (1, 1)]))
        strokes = []
        store.subscribe_strokes(image, strokes.append)
        assert [s.id for s in strokes[0]] == ["old", "new"]

    def test_corrupt_file_starts_empty(self, tmp_path, image):
        (tmp_path / "board.json").write_text("{not json", encoding="utf-8")
        store = JsonFileDocumentStore(tmp_path)
        strokes = []
        store.subscribe_strokes(image, strokes.append)
        assert strokes == [[]]

    def test_unwritable_directory_raises_and_rolls_back(self, tmp_path, image):
        root = tmp_path / "store"
        root.write_text("", encoding="utf-8")
        store = JsonFileDocumentStore(root)
        received = []
        store.subscribe_strokes(image, received.append)

        with pytest.raises(PersistenceError):
            store.create_stroke(image, make_stroke("s1", [(0, 0), (1, 1)]))
        assert received == [[]]
        with pytest.raises(RecordNotFoundError):
            store.delete_stroke(image, "s1")

    def test_failed_delete_keeps_record(self, tmp_path, image):
        store = JsonFileDocumentStore(tmp_path)
        store.create_stroke(image, make_stroke("s1", [(0, 0), (1, 1)]))
        (tmp_path / "board.json").unlink()
        (tmp_path / "board.json").mkdir()

        with pytest.raises(PersistenceError):
            store.delete_stroke(image, "s1")
        strokes = []
        store.subscribe_strokes(image, strokes.append)
        assert [s.id for s in strokes[0]] == ["s1"]

    def test_delete_is_persisted(self, tmp_path, image):
        store = JsonFileDocumentStore(tmp_path)
        store.create_stroke(image, make_stroke("s1", [(0, 0), (1, 1)]))
        store.delete_stroke(image, "s1")
        data = json.loads((tmp_path / "board.json").read_text(encoding="utf-8"))
        assert data["markups"] == []


def test_cascade_error_message():
    error = CascadeDeleteError("s1", [PersistenceError("boom")], ["c1"])
    assert "s1" in str(error)
    assert "boom" in str(error)
    assert error.deleted_comment_ids == ["c1"]
    assert isinstance(error, PersistenceError)
