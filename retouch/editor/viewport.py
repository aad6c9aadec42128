"""
Viewport transform for the markup canvas.

Maps between screen (widget) pixels and image pixels under a pan offset
and a zoom factor:

    image = (screen - offset) / zoom
    screen = image * zoom + offset

The canvas paints the image and its overlay at natural pixel size under
this transform, so stroke coordinates never depend on the zoom level.
"""

import math
from typing import Optional

from retouch.editor.models import Point
from retouch.services.logging_service import get_logger


# Zoom limits
MIN_ZOOM = 0.2
MAX_ZOOM = 5.0

# Multiplicative zoom per unit of wheel delta: factor = exp(-deltaY * rate)
DEFAULT_WHEEL_ZOOM_RATE = 0.0015

# Keyboard zoom step
ZOOM_STEP = 1.25

# Offset used before the first fit
DEFAULT_OFFSET = Point(20, 20)


def clamp_zoom(zoom: float) -> float:
    """Clamp a zoom value to [MIN_ZOOM, MAX_ZOOM]."""
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


class ViewportTransform:
    """
    Pan/zoom state for one open image.

    The viewport size is needed for the default focal point (its centre)
    and for the one-time fit; it is updated by the canvas on resize.
    """

    def __init__(self, wheel_zoom_rate: float = DEFAULT_WHEEL_ZOOM_RATE) -> None:
        self._logger = get_logger(__name__)
        self._zoom: float = 1.0
        self._offset: Point = DEFAULT_OFFSET
        self._viewport_width: float = 0.0
        self._viewport_height: float = 0.0
        self._wheel_zoom_rate = wheel_zoom_rate
        self._fitted: bool = False

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def offset(self) -> Point:
        return self._offset

    @property
    def fitted(self) -> bool:
        """True once the one-time fit for the current image has run."""
        return self._fitted

    @property
    def center(self) -> Point:
        """Visual centre of the viewport in screen pixels."""
        return Point(self._viewport_width / 2, self._viewport_height / 2)

    def set_viewport_size(self, width: float, height: float) -> None:
        self._viewport_width = float(width)
        self._viewport_height = float(height)

    def set_offset(self, x: float, y: float) -> None:
        self._offset = Point(x, y)

    # ─── Coordinate Conversion ────────────────────────────────────────────

    def to_image_space(self, screen_point: Point) -> Point:
        """Convert screen coordinates to image coordinates."""
        return Point(
            (screen_point.x - self._offset.x) / self._zoom,
            (screen_point.y - self._offset.y) / self._zoom,
        )

    def to_screen_space(self, image_point: Point) -> Point:
        """Convert image coordinates to screen coordinates."""
        return Point(
            image_point.x * self._zoom + self._offset.x,
            image_point.y * self._zoom + self._offset.y,
        )

    # ─── Zoom and Pan ─────────────────────────────────────────────────────

    def zoom_at(self, new_zoom: float, focal: Optional[Point] = None) -> None:
        """
        Set the zoom level, keeping the image point under focal stationary.

        Args:
            new_zoom: Requested zoom (clamped to MIN/MAX).
            focal: Screen point to hold fixed. Defaults to the viewport
                   centre (e.g. for slider-driven zoom).
        """
        if focal is None:
            focal = self.center

        # Image point under the focal point at the old zoom
        img_pt = self.to_image_space(focal)

        zoom = clamp_zoom(new_zoom)
        self._zoom = zoom
        self._offset = Point(
            focal.x - img_pt.x * zoom,
            focal.y - img_pt.y * zoom,
        )

    def pan_by(self, dx: float, dy: float) -> None:
        """Translate the image by a screen-pixel delta. Unconstrained."""
        self._offset = Point(self._offset.x + dx, self._offset.y + dy)

    def wheel_zoom(self, delta_y: float, focal: Point, modifier_held: bool) -> bool:
        """
        Apply a wheel/pinch zoom step anchored at the pointer.

        Returns:
            True if the event was consumed (modifier held), False otherwise.
        """
        if not modifier_held:
            return False

        factor = math.exp(-delta_y * self._wheel_zoom_rate)
        self.zoom_at(self._zoom * factor, focal)
        return True

    def zoom_in(self) -> None:
        """Zoom in by one step around the viewport centre."""
        self.zoom_at(self._zoom * ZOOM_STEP)

    def zoom_out(self) -> None:
        """Zoom out by one step around the viewport centre."""
        self.zoom_at(self._zoom / ZOOM_STEP)

    # ─── Fit ──────────────────────────────────────────────────────────────

    def fit_to_viewport(
        self,
        image_width: float,
        image_height: float,
        viewport_width: float,
        viewport_height: float,
    ) -> None:
        """
        Zoom so the whole image fits the viewport, and centre it.

        Raises:
            ValueError: If any dimension is not positive.
        """
        if min(image_width, image_height, viewport_width, viewport_height) <= 0:
            raise ValueError("Image and viewport dimensions must be positive")

        zoom = clamp_zoom(min(viewport_width / image_width, viewport_height / image_height))
        self._zoom = zoom
        self._offset = Point(
            (viewport_width - image_width * zoom) / 2,
            (viewport_height - image_height * zoom) / 2,
        )

    def ensure_fitted(
        self,
        image_width: float,
        image_height: float,
        viewport_width: float,
        viewport_height: float,
    ) -> bool:
        """
        Fit once per image load, on the first usable measurement.

        Returns:
            True if the fit ran on this call.
        """
        if self._fitted:
            return False
        if min(image_width, image_height, viewport_width, viewport_height) <= 0:
            return False

        self.set_viewport_size(viewport_width, viewport_height)
        self.fit_to_viewport(image_width, image_height, viewport_width, viewport_height)
        self._fitted = True
        self._logger.debug(
            f"Fitted {image_width}x{image_height} image to "
            f"{viewport_width}x{viewport_height} viewport at zoom {self._zoom:.3f}"
        )
        return True

    def reset_fit(self) -> None:
        """Re-arm the one-time fit (a different image was loaded)."""
        self._fitted = False
