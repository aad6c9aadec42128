"""
Retouch - mark up images and discuss them with comments.

This package contains the main application modules:
- core: Application core and wiring
- ui: User interface components
- editor: Markup engine, canvas and comment panel
- services: Application services (config, logging, document store)
"""

__version__ = "0.1.0"
