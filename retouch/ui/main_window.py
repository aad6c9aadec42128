"""
Main window for the Retouch application.

This module contains the main application window with the editor widget,
menu bar, and dark theme styling.
"""

from pathlib import Path
from typing import Optional, Union

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QWidget,
)

from retouch.editor.editor_widget import EditorWidget
from retouch.services.config_service import ConfigService
from retouch.services.document_store import DocumentStore
from retouch.services.logging_service import get_logger


IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp)"


class MainWindow(QMainWindow):
    """
    Main application window for Retouch.

    Features:
    - Dark themed UI
    - Menu bar with File, View and Help menus
    - Review editor: canvas, tool palette, comment panel, status bar
    """

    def __init__(
        self,
        store: DocumentStore,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            store: Document store holding markups and comments.
            config_service: Optional config service for pencil and canvas settings.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._store = store
        self._editor: Optional[EditorWidget] = None

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("Retouch - Image Review")
        self.setMinimumSize(800, 600)
        self.resize(1280, 820)

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._store, self._config, self)
        self._editor.image_opened.connect(self._update_title_for_image)
        self.setCentralWidget(self._editor)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Image…", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.setStatusTip("Open an image to review")
        open_action.triggered.connect(self._on_open)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.setStatusTip("Exit the application")
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── View Menu ────────────────────────────────────────────────
        view_menu = menu_bar.addMenu("&View")

        zoom_in_action = QAction("Zoom &In", self)
        zoom_in_action.setShortcut("Ctrl++")
        zoom_in_action.triggered.connect(self._on_zoom_in)
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom &Out", self)
        zoom_out_action.setShortcut("Ctrl+-")
        zoom_out_action.triggered.connect(self._on_zoom_out)
        view_menu.addAction(zoom_out_action)

        zoom_fit_action = QAction("Zoom to &Fit", self)
        zoom_fit_action.setShortcut("Ctrl+0")
        zoom_fit_action.triggered.connect(self._on_zoom_fit)
        view_menu.addAction(zoom_fit_action)

        view_menu.addSeparator()

        palette_action = QAction("Toggle &Tool Palette", self)
        palette_action.triggered.connect(self._on_toggle_palette)
        view_menu.addAction(palette_action)

        # ─── Help Menu ────────────────────────────────────────────────
        help_menu = menu_bar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.setStatusTip("About Retouch")
        about_action.triggered.connect(self._show_about_dialog)
        help_menu.addAction(about_action)

    # ─── Public Methods ───────────────────────────────────────────────────

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    def open_image(self, path: Union[str, Path]) -> bool:
        """
        Open an image for review and bring the window to front.

        Args:
            path: Image file to open.

        Returns:
            True if the image was loaded.
        """
        if not self._editor.open_image(path):
            QMessageBox.warning(self, "Retouch", f"Could not open image:\n{path}")
            return False

        self.show()
        self.raise_()
        self.activateWindow()
        return True

    def _update_title_for_image(self, path: str) -> None:
        """Update window title to show the image name and dimensions."""
        session = self._editor.session
        if session is None:
            return
        image = session.image
        self.setWindowTitle(
            f"Retouch - {Path(path).name} - {image.width}×{image.height}"
        )

    # ─── Menu Actions ─────────────────────────────────────────────────────

    def _on_open(self) -> None:
        """Handle File > Open Image."""
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", "", IMAGE_FILTER)
        if path:
            self.open_image(path)

    def _on_zoom_in(self) -> None:
        """Handle View > Zoom In."""
        self._editor.canvas.zoom_in()

    def _on_zoom_out(self) -> None:
        """Handle View > Zoom Out."""
        self._editor.canvas.zoom_out()

    def _on_zoom_fit(self) -> None:
        """Handle View > Zoom to Fit."""
        self._editor.canvas.zoom_to_fit()

    def _on_toggle_palette(self) -> None:
        self._editor.toggle_palette()

    def _show_about_dialog(self) -> None:
        """Display the About dialog."""
        about_text = (
            "<h2>Retouch</h2>"
            "<p>Mark up images and discuss them with comments.</p>"
            "<hr>"
            "<p><b>Keyboard Shortcuts:</b></p>"
            "<ul>"
            "<li>V - Select</li>"
            "<li>H - Pan</li>"
            "<li>B - Pencil</li>"
            "<li>T - Show/hide tool palette</li>"
            "<li>Delete - Delete selected comment or markup</li>"
            "<li>Ctrl+Wheel - Zoom at pointer</li>"
            "</ul>"
        )

        QMessageBox.about(self, "About Retouch", about_text)

    def closeEvent(self, event) -> None:
        """Stop live updates before the window goes away."""
        self._logger.info("MainWindow closing")
        self._editor.close_session()
        super().closeEvent(event)
