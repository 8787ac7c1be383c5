from __future__ import annotations

import errno
import logging
import os
from pathlib import Path
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from drawer_client.protocol.constants import scene_storage_key
from drawer_client.protocol.geometry import DrawingObject

from .errors import QuotaExceeded

logger = logging.getLogger(__name__)

_NO_SPACE = (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC))

PersistedSnapshot = dict[str, DrawingObject]

_snapshot_adapter: TypeAdapter[PersistedSnapshot] = TypeAdapter(PersistedSnapshot)


class Storage:
    """
    Durable string key/value store (the host's local storage).

    `set` raises QuotaExceeded when the value cannot be stored.
    """

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            others = sum(_size(k, v) for k, v in self._items.items() if k != key)
            if others + _size(key, value) > self.quota_bytes:
                raise QuotaExceeded(f"storing {key!r} would exceed {self.quota_bytes} bytes")
        self._items[key] = value


class FileStorage(Storage):
    """One file per key under `root`. Writes go through a temp file + rename."""

    def __init__(self, root: Path, quota_bytes: int | None = None) -> None:
        self.root = Path(root)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + ".json")

    def get(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        data = value.encode("utf-8")
        if self.quota_bytes is not None:
            others = sum(p.stat().st_size for p in self.root.glob("*.json") if p != path)
            if others + len(data) > self.quota_bytes:
                raise QuotaExceeded(f"storing {key!r} would exceed {self.quota_bytes} bytes")
        tmp = path.with_suffix(".tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            if e.errno in _NO_SPACE:
                raise QuotaExceeded(f"no space left to store {key!r}") from e
            raise


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class SceneStore:
    """Reads and writes keyed scenes under `scene:<SceneId>`."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def load(self, scene_id: str) -> PersistedSnapshot | None:
        try:
            raw = self.storage.get(scene_storage_key(scene_id))
        except OSError as e:
            logger.error("[scene:%s] snapshot not readable: %r", scene_id, e)
            return None
        if raw is None:
            return None
        try:
            return _snapshot_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("[scene:%s] discarding unreadable snapshot: %s", scene_id, e)
            return None

    def store(self, scene_id: str, snapshot: PersistedSnapshot) -> None:
        raw = _snapshot_adapter.dump_json(snapshot, by_alias=True).decode("utf-8")
        self.storage.set(scene_storage_key(scene_id), raw)


def open_storage(storage_dir: Path | None, quota_bytes: int | None = None) -> Storage:
    if storage_dir is None:
        return MemoryStorage(quota_bytes)
    return FileStorage(storage_dir, quota_bytes)
