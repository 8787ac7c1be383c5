from __future__ import annotations

import io
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from PIL import Image, ImageDraw

from drawer_client.protocol.geometry import Circle, Line, Point, Primitive, Rectangle

BACKGROUND = 255  # white
INK = 0  # black


@dataclass(frozen=True)
class AffineTransform:
    """
    Normalized [-1,1]x[-1,1] (y-up) -> device pixels (y-down, origin top-left).

    Equivalent to a 2D context set up once with
    `scale(W/2, -H/2)` followed by `translate(1, -1)`.
    """

    sx: float
    sy: float
    tx: float
    ty: float

    @classmethod
    def for_surface(cls, width: int, height: int) -> "AffineTransform":
        return cls(sx=width / 2, sy=-height / 2, tx=1.0, ty=-1.0)

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (self.sx * (x + self.tx), self.sy * (y + self.ty))


class Surface:
    """
    Pillow-backed drawing surface.

    All drawing calls take normalized coordinates; the transform is fixed at
    construction and applied inside each call.
    """

    def __init__(self, width: int, height: int, *, line_width: float = 0.0025) -> None:
        self.width = width
        self.height = height
        self.transform = AffineTransform.for_surface(width, height)
        # stroke width is given in normalized units, like a scaled canvas context
        self._px_width = max(1, round(line_width * max(width, height) / 2))
        self.image = Image.new("L", (width, height), BACKGROUND)
        self._draw = ImageDraw.Draw(self.image)

    def clear(self) -> None:
        self._draw.rectangle((0, 0, self.width, self.height), fill=BACKGROUND)

    def stroke_line(self, a: Point, b: Point) -> None:
        self._draw.line(
            [self.transform.apply(a.x, a.y), self.transform.apply(b.x, b.y)],
            fill=INK,
            width=self._px_width,
        )

    def stroke_rect(self, x: float, y: float, w: float, h: float) -> None:
        x0, y0 = self.transform.apply(x, y)
        x1, y1 = self.transform.apply(x + w, y + h)
        self._draw.rectangle(
            (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)),
            outline=INK,
            width=self._px_width,
        )

    def stroke_arc(self, center: Point, radius: float, start: float, end: float) -> None:
        # under a non-uniform scale the circle becomes an axis-aligned ellipse
        x0, y0 = self.transform.apply(center.x - radius, center.y + radius)
        x1, y1 = self.transform.apply(center.x + radius, center.y - radius)
        box = (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))
        if end - start >= 2 * math.pi:
            self._draw.ellipse(box, outline=INK, width=self._px_width)
            return
        # canvas angles run clockwise in device space once y is flipped
        self._draw.arc(box, -math.degrees(end), -math.degrees(start), fill=INK, width=self._px_width)

    def to_png(self) -> bytes:
        bio = io.BytesIO()
        self.image.save(bio, format="PNG", optimize=True)
        return bio.getvalue()


class Renderer:
    """Reads primitives and strokes them onto a surface. Never mutates the scene."""

    def __init__(self, surface: Surface) -> None:
        self.surface = surface

    def draw(self, primitive: Primitive) -> None:
        s = self.surface
        match primitive:
            case Line(from_=a, to=b):
                s.stroke_line(a, b)
            case Rectangle(lower_left=ll, upper_right=ur):
                # origin is the geometric top-left: (left, top) in y-up space;
                # the negative height becomes positive after the y-flip
                s.stroke_rect(ll.x, ur.y, ur.x - ll.x, ll.y - ur.y)
            case Circle(center=c, radius=r):
                s.stroke_arc(c, r, 0.0, 2 * math.pi)
            case _:
                assert_never(primitive)

    def draw_many(self, primitives: Iterable[Primitive]) -> int:
        n = 0
        for p in primitives:
            self.draw(p)
            n += 1
        return n

    def redraw(self, primitives: Iterable[Primitive]) -> int:
        """Clear the surface and draw the whole scene."""
        self.surface.clear()
        return self.draw_many(primitives)
