"""
Application core for Retouch.

This module contains the AppCore class which is responsible for:
- Initializing all services (config, logging, document store)
- Creating and managing the main window
- Applying global styling (dark theme)

This is the central orchestration point for the application.
"""

from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from retouch.services.config_service import ConfigService
from retouch.services.document_store import DocumentStore, JsonFileDocumentStore
from retouch.services.logging_service import get_logger, setup_logging
from retouch.ui.main_window import MainWindow


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize all services
    - Apply global dark theme
    - Create and show the MainWindow
    - Open the image given on the command line, if any
    """

    def __init__(
        self,
        app: QApplication,
        config_service: Optional[ConfigService] = None,
        store: Optional[DocumentStore] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_service: Config to use instead of the user's config file.
            store: Document store to use instead of the configured JSON store.
        """
        super().__init__()
        self._app = app

        # Service references
        self._config_service: Optional[ConfigService] = config_service
        self._store: Optional[DocumentStore] = store
        self._main_window: Optional[MainWindow] = None

        # Initialize in order
        self._init_services()
        self._apply_dark_theme()
        self._init_ui()

    def _init_services(self) -> None:
        """Initialize all application services."""
        # Setup logging first
        setup_logging()
        self._logger = get_logger(__name__)
        self._logger.info("Initializing Retouch application core...")

        if self._config_service is None:
            self._config_service = ConfigService()

        if self._store is None:
            self._store = JsonFileDocumentStore(self._config_service.store_dir)
        self._logger.info(f"Document store ready: {type(self._store).__name__}")

    def _apply_dark_theme(self) -> None:
        """
        Apply a dark color palette to the application.

        Uses Qt's QPalette for a native-looking dark theme.
        """
        self._logger.debug("Applying dark theme...")

        palette = QPalette()

        # Window and base colors
        palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(50, 50, 50))

        # Text colors
        palette.setColor(QPalette.ColorRole.Text, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.BrightText, QColor(255, 255, 255))

        # Button colors
        palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(220, 220, 220))

        # Selection follows the markup outline color
        palette.setColor(QPalette.ColorRole.Highlight, QColor(6, 150, 180))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))

        palette.setColor(QPalette.ColorRole.ToolTipBase, QColor(60, 60, 60))
        palette.setColor(QPalette.ColorRole.ToolTipText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Link, QColor(13, 141, 234))

        # Disabled state colors
        for role in (
            QPalette.ColorRole.WindowText,
            QPalette.ColorRole.Text,
            QPalette.ColorRole.ButtonText,
        ):
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(127, 127, 127))

        self._app.setPalette(palette)

        self._app.setStyleSheet("""
            QToolTip {
                background-color: #3d3d3d;
                color: #dcdcdc;
                border: 1px solid #5a5a5a;
                padding: 4px;
            }
            QMenuBar {
                background-color: #2d2d2d;
                padding: 2px;
            }
            QMenuBar::item:selected {
                background-color: #4a4a4a;
            }
            QMenu {
                background-color: #2d2d2d;
                border: 1px solid #3a3a3a;
            }
            QMenu::item:selected {
                background-color: #4a6a9a;
            }
        """)

        self._logger.info("Dark theme applied")

    def _init_ui(self) -> None:
        """Initialize the main window."""
        self._logger.debug("Initializing main window...")
        self._main_window = MainWindow(self._store, self._config_service)
        self._logger.info("Main window initialized")

    # ─── Startup ──────────────────────────────────────────────────────────

    def start(self, image_path: Optional[Union[str, Path]] = None) -> bool:
        """
        Show the main window, opening an image if one was given.

        Returns:
            False if an image was given but could not be opened.
        """
        self.main_window.show()
        if image_path is None:
            return True

        self._logger.info(f"Opening image from command line: {image_path}")
        return self.main_window.open_image(image_path)

    @Slot()
    def shutdown(self) -> None:
        """Clean shutdown: stop live updates and quit."""
        self._logger.info("Shutting down Retouch...")
        if self._main_window is not None:
            self._main_window.editor.close_session()
        QApplication.quit()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def store(self) -> DocumentStore:
        """Get the document store."""
        if self._store is None:
            raise RuntimeError("DocumentStore not initialized")
        return self._store

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window
