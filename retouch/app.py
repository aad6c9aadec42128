"""
Retouch - mark up images and discuss them with comments.

This is the main entry point for the application.
Run with: python -m retouch.app [IMAGE]
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from retouch import __version__
from retouch.core.app_core import AppCore
from retouch.services.logging_service import get_logger, setup_logging


# Global references for signal handlers
_app: Optional[QApplication] = None
_app_core: Optional[AppCore] = None
_should_quit = False


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="retouch",
        description="Mark up images and discuss them with comments.",
    )
    parser.add_argument("image", nargs="?", help="image file to open for review")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def request_quit(signum, frame):
    """Handle termination signals; the quit happens on the Qt event loop."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit:
        logger = get_logger(__name__)
        logger.info("Signal received, quitting...")

        if _app_core is not None:
            _app_core.shutdown()
        elif _app is not None:
            _app.quit()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Retouch application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app, _app_core

    args = parse_args(argv)

    # Initialize basic logging first to catch early errors
    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger(__name__)

    try:
        logger.info("Starting Retouch application...")

        _app = QApplication(sys.argv[:1])
        _app.setApplicationName("Retouch")
        _app.setOrganizationName("Retouch")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Qt's event loop blocks Python signal handlers; poll instead
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        _app_core = AppCore(_app)
        if not _app_core.start(args.image):
            logger.warning(f"Could not open {args.image}; continuing without an image")

        logger.info("Retouch initialization complete. Entering event loop...")

        exit_code = _app.exec()

        logger.info(f"Retouch exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
