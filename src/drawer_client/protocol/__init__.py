from .constants import (
    K_CIRCLE,
    K_LINE,
    K_RECTANGLE,
    LISTEN_PATH,
    POLL_PATH,
    T_CLEAR,
    T_LINE,
    scene_storage_key,
)
from .geometry import Circle, DrawingObject, Line, Point, Primitive, Rectangle

__all__ = [
    "K_CIRCLE",
    "K_LINE",
    "K_RECTANGLE",
    "LISTEN_PATH",
    "POLL_PATH",
    "T_CLEAR",
    "T_LINE",
    "scene_storage_key",
    "Circle",
    "DrawingObject",
    "Line",
    "Point",
    "Primitive",
    "Rectangle",
]
