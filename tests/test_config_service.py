"""Tests for the JSON configuration service."""

import json

from retouch.services.config_service import DEFAULT_CONFIG, ConfigService


def test_missing_file_uses_and_writes_defaults(tmp_path):
    path = tmp_path / "config.json"
    config = ConfigService(path)
    assert config.stroke_color == "#ff2d55"
    assert config.brush_size == 6
    assert config.hit_padding == 4.0
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG


def test_loaded_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "brush_size": 10,
        "shortcuts": {"draw": "p"},
    }), encoding="utf-8")

    config = ConfigService(path)
    assert config.brush_size == 10
    assert config.shortcut("draw") == "p"
    # Nested defaults survive a partial override
    assert config.shortcut("pan") == "h"


def test_corrupt_file_is_replaced(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2", encoding="utf-8")
    config = ConfigService(path)
    assert config.stroke_color == DEFAULT_CONFIG["stroke_color"]
    assert json.loads(path.read_text(encoding="utf-8"))["brush_size"] == 6


def test_invalid_brush_size_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"brush_size": "huge"}), encoding="utf-8")
    assert ConfigService(path).brush_size == DEFAULT_CONFIG["brush_size"]


def test_store_dir_expands_user(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"store_dir": "~/retouch-store"}), encoding="utf-8")
    store_dir = ConfigService(path).store_dir
    assert "~" not in str(store_dir)
    assert store_dir.name == "retouch-store"


def test_set_and_save(tmp_path):
    path = tmp_path / "config.json"
    config = ConfigService(path)
    config.set("stroke_color", "#123456")
    config.save()
    assert ConfigService(path).stroke_color == "#123456"


def test_unknown_shortcut_is_empty(tmp_path):
    assert ConfigService(tmp_path / "config.json").shortcut("explode") == ""
