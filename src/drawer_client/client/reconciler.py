from __future__ import annotations

import asyncio
import logging
from typing import assert_never

from .errors import QuotaExceeded
from .notices import Notice, Notifier
from .rendering import Renderer
from .scene import SceneCache
from .storage import SceneStore
from .transport import Clear, Delta, PollBatch, Reset, Upsert

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Applies transport deltas to the scene cache.

    - keyed deltas (Reset/Clear/Upsert): mutate, persist, redraw the whole scene
    - PollBatch: advance the cursor, append, draw only the new primitives

    `apply` writes the snapshot inline; `apply_async` (used by a running
    Session) does the write in a worker thread so file I/O stays off the loop.
    """

    def __init__(
        self,
        scene_id: str,
        cache: SceneCache,
        store: SceneStore,
        renderer: Renderer,
        notifier: Notifier,
    ) -> None:
        self.scene_id = scene_id
        self.cache = cache
        self.store = store
        self.renderer = renderer
        self.notifier = notifier
        self.primitives_drawn = 0

    def apply(self, delta: Delta) -> None:
        if self._mutate(delta):
            self.persist()
            self.redraw()

    async def apply_async(self, delta: Delta) -> None:
        if self._mutate(delta):
            await self.persist_async()
            self.redraw()

    def persist(self) -> bool:
        snapshot = self.cache.snapshot()
        try:
            self.store.store(self.scene_id, snapshot)
        except (QuotaExceeded, OSError) as e:
            return self._store_failed(e)
        return True

    async def persist_async(self) -> bool:
        snapshot = self.cache.snapshot()
        try:
            await asyncio.to_thread(self.store.store, self.scene_id, snapshot)
        except (QuotaExceeded, OSError) as e:
            return self._store_failed(e)
        return True

    def redraw(self) -> None:
        self.renderer.redraw(obj.primitive for obj in self.cache.objects().values())

    def _store_failed(self, e: Exception) -> bool:
        # the in-memory scene stays authoritative either way; only a full
        # store is a user notice, other I/O errors are a log entry
        if isinstance(e, QuotaExceeded):
            logger.warning("[scene:%s] snapshot not stored: %s", self.scene_id, e)
            self.notifier.notify(Notice.QUOTA_EXCEEDED)
        else:
            logger.error("[scene:%s] snapshot not stored: %r", self.scene_id, e)
        return False

    def _mutate(self, delta: Delta) -> bool:
        """Apply `delta` to the cache; True if the keyed scene changed."""
        match delta:
            case Reset() | Clear():
                self.cache.clear()
                return True
            case Upsert(id=object_id, primitive=primitive):
                self.cache.upsert(object_id, primitive)
                return True
            case PollBatch():
                self._apply_batch(delta)
                return False
            case _:
                assert_never(delta)

    def _apply_batch(self, batch: PollBatch) -> None:
        # no identifiers in this protocol: every delivered primitive is drawn once
        if batch.delivered():
            self.cache.advance_cursor(batch.last_timestamp)
        for p in batch.drawings:
            self.cache.append(p)
        self.primitives_drawn += self.renderer.draw_many(batch.drawings)
        logger.log(
            logging.INFO if batch.delivered() else logging.DEBUG,
            "[poll:%s] received %d drawings (%d skipped), cursor %d",
            self.scene_id,
            batch.delivered(),
            batch.skipped,
            self.cache.current_cursor(),
        )

