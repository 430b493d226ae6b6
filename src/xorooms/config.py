"""Runtime settings read from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PORT = 3000


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    static_dir: Optional[str] = None
    log_level: str = "info"
    # Seconds a room may sit without activity before it is dropped; 0 keeps
    # rooms alive until their last member leaves.
    room_idle_ttl: int = 0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            host=env.get("XOROOMS_HOST", "0.0.0.0"),
            port=_int_env(env, "PORT", DEFAULT_PORT),
            static_dir=env.get("XOROOMS_STATIC_DIR") or None,
            log_level=env.get("XOROOMS_LOG_LEVEL", "info").lower(),
            room_idle_ttl=max(0, _int_env(env, "XOROOMS_ROOM_IDLE_TTL", 0)),
        )
