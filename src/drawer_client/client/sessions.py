from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import Settings, get_settings
from .errors import ConnectionLost
from .notices import Notice, Notifier
from .reconciler import Reconciler
from .rendering import Renderer, Surface
from .scene import SceneCache
from .storage import SceneStore, Storage, open_storage
from .transport import PollTransport, PushTransport, make_transport

logger = logging.getLogger(__name__)

Transport = PollTransport | PushTransport
TransportFactory = Callable[[Settings, str, SceneCache], Transport]


@dataclass
class Session:
    """
    Everything one SceneId needs: cache, surface, transport, reconciler.

    Build with `Session.create()`, then `await session.run()` until the
    transport ends (push connection lost) or the task is cancelled.
    """

    scene_id: str
    settings: Settings
    cache: SceneCache
    surface: Surface
    transport: Transport
    reconciler: Reconciler
    notifier: Notifier
    finished: bool = field(default=False, init=False)

    @classmethod
    def create(
        cls,
        scene_id: str,
        settings: Settings | None = None,
        *,
        storage: Storage | None = None,
        notifier: Notifier | None = None,
        surface: Surface | None = None,
        transport_factory: TransportFactory = make_transport,
    ) -> "Session":
        settings = settings or get_settings()
        if storage is None:
            storage = open_storage(settings.storage_dir, settings.storage_quota_bytes)
        notifier = notifier or Notifier(scene_id=scene_id)
        surface = surface or Surface(settings.surface_width, settings.surface_height, line_width=settings.line_width)
        store = SceneStore(storage)

        snapshot = store.load(scene_id) if settings.transport == "push" else None
        cache = SceneCache.from_snapshot(snapshot or {})
        reconciler = Reconciler(scene_id, cache, store, Renderer(surface), notifier)

        if settings.transport == "push":
            if snapshot is None:
                # first visit: establish the key
                reconciler.persist()
            reconciler.redraw()
        else:
            surface.clear()

        return cls(
            scene_id=scene_id,
            settings=settings,
            cache=cache,
            surface=surface,
            transport=transport_factory(settings, scene_id, cache),
            reconciler=reconciler,
            notifier=notifier,
        )

    async def run(self) -> None:
        try:
            async for delta in self.transport.deltas():
                await self.reconciler.apply_async(delta)
        except ConnectionLost as e:
            logger.warning("[scene:%s] %s", self.scene_id, e)
            self.notifier.notify(Notice.CONNECTION_LOST)
        finally:
            self.finished = True

    def state(self) -> dict[str, object]:
        return {
            "scene_id": self.scene_id,
            "transport": self.settings.transport,
            "cursor": self.cache.current_cursor(),
            "objects": {
                k: v.model_dump(mode="json", by_alias=True) for k, v in self.cache.objects().items()
            },
            "primitives_drawn": self.reconciler.primitives_drawn,
            "notices": [n.value for n in self.notifier.notices],
            "finished": self.finished,
        }


class SessionRegistry:
    """One running Session per SceneId, created on first use."""

    def __init__(self, factory: Callable[[str], Session]) -> None:
        self._factory = factory
        self._sessions: dict[str, Session] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._lock = asyncio.Lock()

    async def get_session(self, scene_id: str) -> Session:
        async with self._lock:
            if scene_id not in self._sessions:
                # creating a session loads its snapshot from storage
                session = await asyncio.to_thread(self._factory, scene_id)
                self._sessions[scene_id] = session
                self._tasks[scene_id] = asyncio.create_task(session.run(), name=f"scene:{scene_id}")
            return self._sessions[scene_id]

    async def close(self) -> None:
        tasks = list(self._tasks.values())
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._sessions.clear()
