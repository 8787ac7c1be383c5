from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Iterator
from pathlib import Path

from drawer_client.client.config import Settings, get_settings
from drawer_client.client.notices import Notifier
from drawer_client.client.reconciler import Reconciler
from drawer_client.client.rendering import Renderer, Surface
from drawer_client.client.scene import SceneCache
from drawer_client.client.storage import MemoryStorage, SceneStore
from drawer_client.client.transport import Reset, parse_push_message

logger = logging.getLogger(__name__)


def iter_messages(jsonl_path: Path) -> Iterator[str]:
    """
    Yield raw push frames from a JSONL recording.

    Accepted line formats:
      - record_jsonl.py output: {"ts": <ms>, "msg": {...}}
      - or raw messages per line: {...}
    """
    for line in jsonl_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        obj = json.loads(line)
        if isinstance(obj, dict) and isinstance(obj.get("msg"), dict):
            obj = obj["msg"]
        yield json.dumps(obj, separators=(",", ":"))


def replay(jsonl_path: Path, *, settings: Settings, scene_id: str = "replay") -> tuple[SceneCache, Surface]:
    """Run a recording through a fresh reconciler as if the channel had just opened."""
    surface = Surface(settings.surface_width, settings.surface_height, line_width=settings.line_width)
    cache = SceneCache()
    reconciler = Reconciler(scene_id, cache, SceneStore(MemoryStorage()), Renderer(surface), Notifier(scene_id))
    reconciler.apply(Reset())
    for raw in iter_messages(jsonl_path):
        delta = parse_push_message(raw)
        if delta is not None:
            reconciler.apply(delta)
    return cache, surface


def main() -> None:
    ap = argparse.ArgumentParser(description="Render a recorded push-channel JSONL into a PNG.")
    ap.add_argument("--in", dest="inp", required=True, help="Input JSONL path")
    ap.add_argument("--out", required=True, help="Output PNG path")
    ap.add_argument("--width", type=int, default=None, help="Surface width (default: DRAWER_SURFACE_WIDTH)")
    ap.add_argument("--height", type=int, default=None, help="Surface height (default: DRAWER_SURFACE_HEIGHT)")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    overrides = {k: v for k, v in (("surface_width", args.width), ("surface_height", args.height)) if v}
    if overrides:
        settings = settings.model_copy(update=overrides)

    cache, surface = replay(Path(args.inp), settings=settings)
    Path(args.out).write_bytes(surface.to_png())
    logger.info("[replay] %d objects -> %s", len(cache), args.out)


if __name__ == "__main__":
    main()
