"""Daemon configuration: TOML loading, defaults and level conversion."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "parakeet:default"

_FIELD_KINDS: dict[str, type] = {
    "audio_device": str,
    "sample_rate": str,
    "model": str,
    "enable_acronyms": bool,
    "enable_punctuation": bool,
    "enable_grammar": bool,
    "silence_threshold_db": float,
    "debug_audio": bool,
    "trailing_buffer_ms": int,
    "audio_backend": str,
    "idle_release_timeout_secs": int,
    "media_resume_delay_ms": int,
    "engine_idle_timeout_secs": int,
}
_REQUIRED = frozenset({"audio_device", "sample_rate"})
_MODEL_ALIAS = "preview_model"


@dataclass
class DaemonConfig:
    """Settings of the ``[daemon]`` table.

    ``model`` may also be given under its older name ``preview_model``.
    """

    audio_device: str = "default"
    sample_rate: str = "16000"
    model: str = DEFAULT_MODEL
    enable_acronyms: bool = True
    enable_punctuation: bool = True
    enable_grammar: bool = True
    silence_threshold_db: float = -60.0
    debug_audio: bool = False
    trailing_buffer_ms: int = 750
    audio_backend: str = "auto"
    idle_release_timeout_secs: int = 30
    media_resume_delay_ms: int = 25
    engine_idle_timeout_secs: int = 300


@dataclass
class Config:
    """The whole configuration file."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)


def db_to_linear(db: float) -> float:
    """Convert decibels to a linear amplitude (RMS threshold)."""
    return 10.0 ** (db / 20.0)


def default_config_path() -> Path:
    """Location of the configuration file under the user's home directory."""
    home = os.environ.get("HOME")
    if home is None:
        raise RuntimeError("HOME is not set")
    return Path(home) / ".config" / "voice-dictation" / "config.toml"


def _convert(name: str, value: Any, kind: type) -> Any:
    def bad() -> ValueError:
        return ValueError(
            f"Failed to parse config: invalid type for daemon.{name}: {value!r}"
        )

    if kind is bool:
        if not isinstance(value, bool):
            raise bad()
        return value
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise bad()
        return value
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise bad()
        return float(value)
    if not isinstance(value, str):
        raise bad()
    return value


def parse_config(text: str) -> Config:
    """Parse configuration TOML; raise ``ValueError`` when it is invalid."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse config: {exc}") from exc

    daemon = data.get("daemon")
    if daemon is None:
        raise ValueError("Failed to parse config: missing field `daemon`")
    if not isinstance(daemon, dict):
        raise ValueError("Failed to parse config: `daemon` must be a table")
    if "model" in daemon and _MODEL_ALIAS in daemon:
        raise ValueError("Failed to parse config: duplicate field `model`")

    values: dict[str, Any] = {}
    for name, kind in _FIELD_KINDS.items():
        key = _MODEL_ALIAS if name == "model" and _MODEL_ALIAS in daemon else name
        if key not in daemon:
            if name in _REQUIRED:
                raise ValueError(f"Failed to parse config: missing field `{name}`")
            continue
        values[name] = _convert(name, daemon[key], kind)

    return Config(DaemonConfig(**values))


def load_config(path: Path | str | None = None) -> Config:
    """Read and parse the configuration file (the default location if no path)."""
    config_path = Path(path) if path is not None else default_config_path()
    text = config_path.read_text(encoding="utf-8")
    return parse_config(text)