from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time
from pathlib import Path

import websockets

from drawer_client.client.config import get_settings
from drawer_client.client.transport import listen_url

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


async def record(ws_url: str, out_path: Path, *, max_size: int = 2**22) -> int:
    """Append every push frame to `out_path` as {"ts": <ms>, "msg": {...}} until the server closes."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with out_path.open("a", encoding="utf-8") as f:
        async with websockets.connect(ws_url, max_size=max_size) as ws:
            async for raw in ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                try:
                    msg = json.loads(raw)
                except ValueError:
                    logger.debug("[record] skipping non-JSON frame %r", raw[:80])
                    continue
                logger.info("[record] type=%s", msg.get("type") if isinstance(msg, dict) else None)
                f.write(json.dumps({"ts": _now_ms(), "msg": msg}, ensure_ascii=False) + "\n")
                f.flush()
                n += 1
    return n


def main() -> None:
    ap = argparse.ArgumentParser(description="Record a scene's push channel to a JSONL file.")
    ap.add_argument("--scene", required=True, help="SceneId to listen on")
    ap.add_argument("--server", default=None, help="Scene server base URL (default: DRAWER_SERVER_URL)")
    ap.add_argument("--out", required=True, help="Output JSONL path")
    ap.add_argument("--verbose", action="store_true", help="Log each received message")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    settings = get_settings()
    url = listen_url(args.server or settings.server_url, args.scene)
    n = asyncio.run(record(url, Path(args.out), max_size=settings.push_max_message_size))
    logger.warning("[record] connection closed after %d messages", n)


if __name__ == "__main__":
    main()
