"""Tests for the application shell: argument parsing, main window and core."""

import pytest
from PySide6.QtCore import Qt
from PySide6.QtGui import QImage
from PySide6.QtWidgets import QMessageBox

from retouch import __version__
from retouch.app import parse_args
from retouch.core.app_core import AppCore
from retouch.services import logging_service
from retouch.services.config_service import ConfigService
from retouch.services.document_store import InMemoryDocumentStore
from retouch.ui.main_window import MainWindow


def write_png(path, width=64, height=48):
    image = QImage(width, height, QImage.Format.Format_RGB32)
    image.fill(Qt.GlobalColor.darkCyan)
    assert image.save(str(path), "PNG")
    return path


@pytest.fixture
def config(tmp_path) -> ConfigService:
    return ConfigService(tmp_path / "config.json")


def test_parse_args():
    args = parse_args(["shot.png", "--debug"])
    assert args.image == "shot.png"
    assert args.debug

    args = parse_args([])
    assert args.image is None
    assert not args.debug


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_main_window_title_follows_image(qtbot, tmp_path, config):
    window = MainWindow(InMemoryDocumentStore(), config)
    qtbot.addWidget(window)

    assert window.open_image(write_png(tmp_path / "banner.png"))
    assert window.windowTitle() == "Retouch - banner.png - 64×48"
    assert window.editor.session is not None
    window.editor.close_session()


def test_main_window_warns_on_bad_image(qtbot, tmp_path, config, monkeypatch):
    warnings = []
    monkeypatch.setattr(
        QMessageBox, "warning", lambda parent, title, text, *a, **kw: warnings.append(text)
    )
    window = MainWindow(InMemoryDocumentStore(), config)
    qtbot.addWidget(window)

    assert not window.open_image(tmp_path / "missing.png")
    assert len(warnings) == 1
    assert "missing.png" in warnings[0]


def test_app_core_opens_command_line_image(qapp, qtbot, tmp_path, config, monkeypatch):
    # Keep the test run from configuring the real log directory
    monkeypatch.setattr(logging_service, "_logging_initialized", True)
    store = InMemoryDocumentStore()

    core = AppCore(qapp, config_service=config, store=store)
    qtbot.addWidget(core.main_window)

    assert core.store is store
    assert core.config is config
    assert core.start(write_png(tmp_path / "shot.png"))
    session = core.main_window.editor.session
    assert session is not None
    assert session.image.image_id.startswith("shot-")
    core.main_window.editor.close_session()
