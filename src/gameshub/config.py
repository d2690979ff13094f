"""Timing and server settings, overridable through ``GAMESHUB_*`` variables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import os


@dataclass(frozen=True)
class Timings:
    """Cosmetic delays, in seconds."""

    opponent_delay: float = 0.42
    mismatch_delay: float = 0.7
    spin_delay: Tuple[float, float] = (1.2, 2.0)
    announce_delay: float = 0.7

    def __post_init__(self) -> None:
        low, high = self.spin_delay
        if low > high:
            raise ValueError(f"Spin delay range is inverted: {low} > {high}")
        for name in ("opponent_delay", "mismatch_delay", "announce_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if low < 0:
            raise ValueError("spin_delay must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Timings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            opponent_delay=_float(env, "GAMESHUB_OPPONENT_DELAY", defaults.opponent_delay),
            mismatch_delay=_float(env, "GAMESHUB_MISMATCH_DELAY", defaults.mismatch_delay),
            spin_delay=(
                _float(env, "GAMESHUB_SPIN_DELAY_MIN", defaults.spin_delay[0]),
                _float(env, "GAMESHUB_SPIN_DELAY_MAX", defaults.spin_delay[1]),
            ),
            announce_delay=_float(env, "GAMESHUB_ANNOUNCE_DELAY", defaults.announce_delay),
        )


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        env = os.environ if environ is None else environ
        try:
            port = int(env.get("GAMESHUB_PORT", "8000"))
        except ValueError as exc:
            raise ValueError("GAMESHUB_PORT must be an integer") from exc
        return cls(
            host=env.get("GAMESHUB_HOST", "0.0.0.0"),
            port=port,
            log_level=env.get("GAMESHUB_LOG_LEVEL", "INFO").upper(),
        )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number of seconds, got {raw!r}") from exc
