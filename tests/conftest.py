from __future__ import annotations

import json

import pytest

from drawer_client.client.config import Settings
from drawer_client.client.rendering import Surface


class RecordingSurface(Surface):
    """Surface that also records every drawing call."""

    def __init__(self, width: int = 200, height: int = 200, **kwargs) -> None:
        super().__init__(width, height, **kwargs)
        self.calls: list[tuple] = []

    def clear(self) -> None:
        self.calls.append(("clear",))
        super().clear()

    def stroke_line(self, a, b) -> None:
        self.calls.append(("line", a, b))
        super().stroke_line(a, b)

    def stroke_rect(self, x, y, w, h) -> None:
        self.calls.append(("rect", x, y, w, h))
        super().stroke_rect(x, y, w, h)

    def stroke_arc(self, center, radius, start, end) -> None:
        self.calls.append(("arc", center, radius, start, end))
        super().stroke_arc(center, radius, start, end)

    def draw_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] != "clear"]


class FakeSocket:
    def __init__(self, frames: list) -> None:
        self.frames = frames

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for f in self.frames:
            yield f


class FakeConnect:
    """Stand-in for websockets.connect: each call serves the next batch of frames, then refuses."""

    def __init__(self, *connections: list) -> None:
        self._connections = list(connections)
        self.urls: list[str] = []

    def __call__(self, url: str, **kwargs) -> FakeSocket:
        self.urls.append(url)
        if not self._connections:
            raise OSError("connection refused")
        return FakeSocket(self._connections.pop(0))


def line_frame(object_id, x0, y0, x1, y1) -> str:
    return json.dumps(
        {
            "type": "line",
            "id": object_id,
            "content": {"begin": {"x": x0, "y": y0}, "end": {"x": x1, "y": y1}},
        }
    )


CLEAR_FRAME = json.dumps({"type": "clear"})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        server_url="http://scenes.test",
        poll_interval_s=0,
        poll_timeout_s=0.5,
        push_reconnect_delay_s=0,
        surface_width=200,
        surface_height=200,
    )


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()
