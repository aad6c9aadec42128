"""
Data models for the Retouch markup editor.

This module provides the records the annotation engine works with:
- Point: A position in image-pixel (or screen-pixel) space
- BoundingBox: Axis-aligned envelope of a stroke path
- Stroke: A freehand markup polyline (a.k.a. "markup")
- Comment: A note attached to exactly one stroke
- ImageRef: The image a session annotates

Strokes and comments are owned by the document store. The engine only ever
holds copies, so every model here is a plain value object that can be
converted to and from the store's dict records.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4


# Minimum number of sampled points for a stroke to be persisted
MIN_STROKE_POINTS = 2


def new_id() -> str:
    """Create an opaque client-side record id."""
    return uuid4().hex


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim a text field, mapping empty strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Point:
    """A 2D point. Used for both screen and image coordinates."""
    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def to_record(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Point":
        return cls(float(record["x"]), float(record["y"]))


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned bounding box in image space.

    Width and height may be zero (a perfectly horizontal or vertical stroke).
    """
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "BoundingBox":
        """
        Compute the tight min/max envelope of a sequence of points.

        Raises:
            ValueError: If no points are given.
        """
        points = list(points)
        if not points:
            raise ValueError("Cannot compute a bounding box without points")

        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return cls(
            x=min(xs),
            y=min(ys),
            w=max(xs) - min(xs),
            h=max(ys) - min(ys),
        )

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)

    def contains(self, point: Point, padding: float = 0.0) -> bool:
        """
        Test whether a point lies inside the box expanded by padding.

        Edges are inclusive on all sides.
        """
        return (
            self.x - padding <= point.x <= self.x + self.w + padding
            and self.y - padding <= point.y <= self.y + self.h + padding
        )

    def to_record(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BoundingBox":
        return cls(
            float(record["x"]), float(record["y"]),
            float(record["w"]), float(record["h"]),
        )


@dataclass(frozen=True)
class Stroke:
    """
    A freehand markup stroke.

    Strokes never change after creation: no recolor, resize or move. The id
    is assigned on the client so the optimistic copy and the persisted copy
    share identity.
    """
    id: str
    color: str
    size: int
    path: List[Point]
    bbox: BoundingBox
    created_at: float = field(default_factory=time.time)

    @classmethod
    def create(
        cls,
        path: List[Point],
        color: str,
        size: int,
        stroke_id: Optional[str] = None,
    ) -> Optional["Stroke"]:
        """
        Build a new stroke from a completed draw gesture.

        Args:
            path: Sampled points in image space.
            color: Display color.
            size: Stroke width in image pixels (clamped to at least 1).
            stroke_id: Optional id; a new one is generated when omitted.

        Returns:
            The stroke, or None if the path has fewer than two points
            (a tap is not a stroke).
        """
        if len(path) < MIN_STROKE_POINTS:
            return None

        path = list(path)
        return cls(
            id=stroke_id or new_id(),
            color=color,
            size=max(1, int(size)),
            path=path,
            bbox=BoundingBox.from_points(path),
        )

    def with_created_at(self, created_at: float) -> "Stroke":
        return replace(self, created_at=created_at)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "color": self.color,
            "size": self.size,
            "path": [p.to_record() for p in self.path],
            "bbox": self.bbox.to_record(),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Stroke":
        path = [Point.from_record(p) for p in record.get("path", [])]
        bbox = record.get("bbox")
        return cls(
            id=record["id"],
            color=record.get("color", "#ff2d55"),
            size=int(record.get("size", 6)),
            path=path,
            bbox=BoundingBox.from_record(bbox) if bbox else BoundingBox.from_points(path),
            created_at=float(record.get("createdAt", 0.0)),
        )


@dataclass(frozen=True)
class Comment:
    """
    A comment linked to one stroke.

    At least one of text, link or reference image must be present when
    the comment is created.
    """
    id: str
    markup_id: str
    text: Optional[str] = None
    link: Optional[str] = None
    ref_image_url: Optional[str] = None
    ref_image_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    updated_at: Optional[float] = None

    @classmethod
    def create(
        cls,
        markup_id: str,
        text: Optional[str] = None,
        link: Optional[str] = None,
        ref_image_url: Optional[str] = None,
        ref_image_id: Optional[str] = None,
    ) -> Optional["Comment"]:
        """
        Build a new comment for a stroke.

        Returns:
            The comment, or None if it has no content.
        """
        comment = cls(
            id=new_id(),
            markup_id=markup_id,
            text=_clean(text),
            link=_clean(link),
            ref_image_url=_clean(ref_image_url),
            ref_image_id=_clean(ref_image_id),
        )
        return comment if comment.has_content else None

    @property
    def has_content(self) -> bool:
        return bool(self.text or self.link or self.ref_image_url)

    def edited(self, text: Optional[str], link: Optional[str]) -> "Comment":
        """Return a copy with new text/link (the only editable fields)."""
        return replace(
            self,
            text=_clean(text),
            link=_clean(link),
            updated_at=time.time(),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "markupId": self.markup_id,
            "text": self.text,
            "link": self.link,
            "refImageUrl": self.ref_image_url,
            "refImageId": self.ref_image_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Comment":
        return cls(
            id=record["id"],
            markup_id=record["markupId"],
            text=record.get("text"),
            link=record.get("link"),
            ref_image_url=record.get("refImageUrl"),
            ref_image_id=record.get("refImageId"),
            created_at=float(record.get("createdAt", 0.0)),
            updated_at=record.get("updatedAt"),
        )


@dataclass(frozen=True)
class ImageRef:
    """
    Reference to the image being annotated.

    Dimensions are the natural pixel size and are fixed for a session.
    """
    image_id: str
    width: int
    height: int
    source: str = ""
