"""Saving recordings and their metadata for debugging."""

from __future__ import annotations

import json
import logging
import os
import sys
import wave
from array import array
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEBUG_DIR = Path("/tmp/voice-dictation-debug")
MAX_DEBUG_FILES = 50


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass
class AudioMetadata:
    """Details recorded alongside a saved debug recording."""

    timestamp: datetime
    duration_ms: int
    sample_rate: int
    sample_count: int
    devices: list[str] = field(default_factory=list)
    active_device: str | None = None
    preview_text: str = ""
    final_text: str = ""
    preview_engine: str = ""
    accurate_engine: str = ""
    same_model_used: bool = False

    def to_dict(self) -> dict:
        """JSON-ready representation, with the timestamp as ISO 8601 in UTC."""
        data = asdict(self)
        data["timestamp"] = _as_utc(self.timestamp).isoformat().replace("+00:00", "Z")
        return data


def is_debug_audio_enabled() -> bool:
    """Whether debug recordings should be kept, judged from the environment."""
    log_level = os.environ.get("DICTATION_LOG")
    if log_level is not None and ("debug" in log_level or "trace" in log_level):
        return True
    flag = os.environ.get("VOICE_DICTATION_DEBUG_AUDIO")
    return flag is not None and (flag == "1" or flag.lower() == "true")


def _base_name(ts: datetime) -> str:
    utc = _as_utc(ts)
    return f"recording_{utc:%Y%m%d_%H%M%S}.{utc.microsecond // 1000:03d}"


def save_debug_audio(
    audio_buffer: Sequence[int],
    sample_rate: int,
    metadata: AudioMetadata,
    debug_dir: Path | str = DEBUG_DIR,
) -> Path:
    """Write the audio as a mono 16-bit WAV plus a JSON file; return the WAV path."""
    directory = Path(debug_dir)
    directory.mkdir(parents=True, exist_ok=True)

    base = _base_name(metadata.timestamp)
    wav_path = directory / f"{base}.wav"
    json_path = directory / f"{base}.json"

    pcm = array("h", audio_buffer)
    if sys.byteorder == "big":
        pcm.byteswap()
    with wave.open(str(wav_path), "wb") as writer:
        writer.setnchannels(1)
        writer.setsampwidth(2)
        writer.setframerate(sample_rate)
        writer.writeframes(pcm.tobytes())

    json_path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding="utf-8")

    logger.info(
        "Debug audio saved: %s (%.2fs, %d samples)",
        wav_path,
        len(audio_buffer) / sample_rate,
        len(audio_buffer),
    )

    cleanup_old_files(directory)
    return wav_path


def cleanup_old_files(debug_dir: Path | str, max_files: int = MAX_DEBUG_FILES) -> None:
    """Delete the oldest recordings (and their JSON) beyond ``max_files``."""
    wav_files = [p for p in Path(debug_dir).iterdir() if p.suffix == ".wav"]
    if len(wav_files) <= max_files:
        return

    def _mtime(path: Path) -> float:
        try:
            return path.stat().st_mtime
        except OSError:
            return float("-inf")

    wav_files.sort(key=_mtime)
    for wav_path in wav_files[: len(wav_files) - max_files]:
        try:
            wav_path.unlink()
        except OSError as exc:
            logger.warning("Failed to remove old debug WAV: %s", exc)
        else:
            logger.debug("Removed old debug file: %s", wav_path)

        json_path = wav_path.with_suffix(".json")
        if json_path.exists():
            try:
                json_path.unlink()
            except OSError:
                pass