from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime config (scene client).

    - Loaded from environment variables
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DRAWER_", extra="ignore")

    # Scene server. The push endpoint is derived from it (http -> ws, https -> wss).
    server_url: str = "http://127.0.0.1:8080"
    transport: Literal["poll", "push"] = "push"
    # Opaque; passed through on every poll request.
    authenticator: str = ""

    # Poll transport (single-flight: next request starts after the previous one settles)
    poll_interval_s: float = 1.0
    poll_timeout_s: float = 5.0

    # Push transport. 0 attempts = no reconnect, the session ends on first loss.
    push_reconnect_attempts: int = 0
    push_reconnect_delay_s: float = 1.0
    push_reconnect_max_delay_s: float = 30.0
    push_max_message_size: int = 2**22

    # Drawing surface (device pixels) and stroke width (normalized units)
    surface_width: int = 600
    surface_height: int = 600
    line_width: float = 0.0025

    # Local scene cache. No storage_dir = in-memory only (lost on restart).
    storage_dir: Path | None = None
    storage_quota_bytes: int | None = None

    # Debugging
    debug_log_msgs: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
