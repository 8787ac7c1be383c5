from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.request
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeAlias, assert_never
from urllib.parse import quote, urlsplit, urlunsplit

import websockets
from pydantic import ValidationError
from websockets.exceptions import WebSocketException

from drawer_client.protocol.constants import LISTEN_PATH, POLL_PATH, T_CLEAR, T_LINE
from drawer_client.protocol.geometry import Primitive
from drawer_client.protocol.messages import (
    ClearMessage,
    LineMessage,
    PollRequest,
    PollResponse,
    push_message_adapter,
)

from .config import Settings
from .errors import ConnectionLost, TransportError
from .scene import SceneCache

logger = logging.getLogger(__name__)


# Deltas: what a transport hands to the reconciler


@dataclass(frozen=True)
class Reset:
    """Push channel (re)opened; the server replays the full scene next."""


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Upsert:
    id: str
    primitive: Primitive


@dataclass(frozen=True)
class PollBatch:
    drawings: tuple[Primitive, ...]
    last_timestamp: int
    # drawings of a variant this client cannot draw; they still count as delivered
    skipped: int = 0

    def delivered(self) -> int:
        return len(self.drawings) + self.skipped


Delta: TypeAlias = Reset | Clear | Upsert | PollBatch


# Poll

Fetch: TypeAlias = Callable[[PollRequest], Awaitable[PollResponse]]


def _post_json_sync(*, url: str, timeout_s: float, data: bytes) -> bytes:
    req = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=timeout_s) as resp:
        return resp.read()


class HttpPollFetcher:
    """POSTs a PollRequest as proto3-style JSON and parses the PollResponse."""

    def __init__(self, server_url: str, timeout_s: float) -> None:
        self.url = server_url.rstrip("/") + POLL_PATH
        self.timeout_s = timeout_s

    async def __call__(self, request: PollRequest) -> PollResponse:
        data = request.model_dump_json(by_alias=True).encode("utf-8")
        try:
            raw = await asyncio.to_thread(_post_json_sync, url=self.url, timeout_s=self.timeout_s, data=data)
        except (OSError, http.client.HTTPException) as e:  # URLError, timeouts, BadStatusLine, IncompleteRead
            raise TransportError(f"poll unreachable: {e}") from e
        try:
            return PollResponse.model_validate_json(raw)
        except ValidationError as e:
            raise TransportError(f"poll bad response: {e}") from e


class PollTransport:
    """
    Cursor-based polling.

    Single-flight: a request is issued only after the previous one has been
    answered and its batch consumed (or it timed out), then the loop waits
    `poll_interval_s`. Batches are therefore applied in request order.
    """

    def __init__(
        self,
        settings: Settings,
        scene_id: str,
        cache: SceneCache,
        *,
        fetch: Fetch | None = None,
    ) -> None:
        self.settings = settings
        self.scene_id = scene_id
        self._cache = cache
        self._fetch = fetch or HttpPollFetcher(settings.server_url, settings.poll_timeout_s)

    async def poll_once(self) -> PollBatch | None:
        """One request/response. Transport failures are logged and yield None."""
        req = PollRequest(
            scene_id=self.scene_id,
            authenticator=self.settings.authenticator,
            after_timestamp=self._cache.current_cursor(),
        )
        try:
            resp = await asyncio.wait_for(self._fetch(req), timeout=self.settings.poll_timeout_s)
        except TimeoutError:
            logger.warning("[poll:%s] no response within %.1fs", self.scene_id, self.settings.poll_timeout_s)
            return None
        except TransportError as e:
            logger.warning("[poll:%s] %s", self.scene_id, e)
            return None

        drawings: list[Primitive] = []
        for d in resp.drawings:
            p = d.primitive()
            if p is None:
                logger.debug("[poll:%s] skipping drawing of unknown variant", self.scene_id)
                continue
            drawings.append(p)
        return PollBatch(
            drawings=tuple(drawings),
            last_timestamp=resp.last_timestamp,
            skipped=len(resp.drawings) - len(drawings),
        )

    async def deltas(self) -> AsyncIterator[Delta]:
        while True:
            batch = await self.poll_once()
            if batch is not None:
                yield batch
            await asyncio.sleep(self.settings.poll_interval_s)


# Push

Connect: TypeAlias = Callable[..., Any]


def listen_url(server_url: str, scene_id: str) -> str:
    parts = urlsplit(server_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme)
    path = parts.path.rstrip("/") + LISTEN_PATH.format(scene_id=quote(scene_id, safe=""))
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def parse_push_message(raw: str | bytes) -> Delta | None:
    """
    Decode one push frame.

    Unknown `type` values and malformed frames return None: they are ignored,
    not rejected.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        obj = json.loads(raw)
    except ValueError:
        logger.debug("ignoring non-JSON push frame: %r", raw[:80])
        return None
    if not isinstance(obj, dict) or obj.get("type") not in (T_CLEAR, T_LINE):
        logger.debug("ignoring push frame of unknown type: %r", raw[:80])
        return None
    try:
        msg = push_message_adapter.validate_python(obj)
    except ValidationError as e:
        logger.debug("ignoring malformed push frame: %s", e)
        return None

    match msg:
        case ClearMessage():
            return Clear()
        case LineMessage():
            return Upsert(id=msg.id, primitive=msg.to_line())
        case _:
            assert_never(msg)


class PushTransport:
    """
    Websocket event stream on /api/v1/<sceneId>/listen.

    Emits Reset on every (re)connect. When the connection is lost and the
    reconnect budget (`push_reconnect_attempts`, default 0) is spent, raises
    ConnectionLost.
    """

    def __init__(
        self,
        settings: Settings,
        scene_id: str,
        *,
        connect: Connect | None = None,
    ) -> None:
        self.settings = settings
        self.scene_id = scene_id
        self.url = listen_url(settings.server_url, scene_id)
        self._connect = connect or websockets.connect

    async def deltas(self) -> AsyncIterator[Delta]:
        s = self.settings
        attempts_left = s.push_reconnect_attempts
        delay = s.push_reconnect_delay_s

        while True:
            try:
                async with self._connect(self.url, max_size=s.push_max_message_size) as ws:
                    logger.info("[push:%s] connected to %s", self.scene_id, self.url)
                    attempts_left = s.push_reconnect_attempts
                    delay = s.push_reconnect_delay_s
                    yield Reset()
                    async for raw in ws:
                        if s.debug_log_msgs:
                            logger.info("[push:%s] in %r", self.scene_id, raw)
                        delta = parse_push_message(raw)
                        if delta is not None:
                            yield delta
                reason = "closed by server"
            except (WebSocketException, OSError) as e:
                reason = repr(e)

            if attempts_left <= 0:
                raise ConnectionLost(f"{self.url}: {reason}")
            attempts_left -= 1
            logger.warning(
                "[push:%s] connection lost (%s); reconnecting in %.1fs, %d attempt(s) left",
                self.scene_id,
                reason,
                delay,
                attempts_left,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, s.push_reconnect_max_delay_s)


def make_transport(settings: Settings, scene_id: str, cache: SceneCache) -> PollTransport | PushTransport:
    if settings.transport == "poll":
        return PollTransport(settings, scene_id, cache)
    return PushTransport(settings, scene_id)
