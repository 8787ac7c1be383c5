from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from drawer_client.protocol.geometry import DrawingObject, Primitive


class SceneCache:
    """
    Local view of one scene.

    Two shapes share this object, one per transport:
    - keyed objects (push): id -> DrawingObject, upsert/clear
    - draw log (poll): append-only, plus the cursor of the last applied batch
    """

    def __init__(self, objects: Mapping[str, DrawingObject] | None = None) -> None:
        self._objects: dict[str, DrawingObject] = dict(objects or {})
        self._drawn: list[Primitive] = []
        self._cursor = 0

    def upsert(self, object_id: str, primitive: Primitive) -> DrawingObject:
        obj = DrawingObject(id=object_id, primitive=primitive)
        self._objects[object_id] = obj
        return obj

    def clear(self) -> None:
        self._objects.clear()

    def append(self, primitive: Primitive) -> None:
        self._drawn.append(primitive)

    def current_cursor(self) -> int:
        return self._cursor

    def advance_cursor(self, value: int) -> bool:
        """Move the cursor forward; returns False (and does nothing) if `value` is not newer."""
        if value <= self._cursor:
            return False
        self._cursor = value
        return True

    def objects(self) -> Mapping[str, DrawingObject]:
        return MappingProxyType(self._objects)

    def drawn(self) -> tuple[Primitive, ...]:
        return tuple(self._drawn)

    def snapshot(self) -> dict[str, DrawingObject]:
        return dict(self._objects)

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, DrawingObject]) -> "SceneCache":
        return cls(snapshot)

    def __len__(self) -> int:
        return len(self._objects)
