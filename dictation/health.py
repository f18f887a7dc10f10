"""Health flags shared between the daemon's subsystems and its control service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class HealthState:
    """Health of the audio, engine and GUI subsystems.

    ``audio_healthy`` is set while audio is flowing, ``engine_healthy`` once a
    transcription engine is loaded and ``gui_healthy`` when the overlay came up.
    ``last_audio_timestamp_ms`` holds milliseconds since the epoch of the last
    audio received, and ``last_error`` the most recent error message, if any.
    """

    audio_healthy: bool = False
    engine_healthy: bool = False
    gui_healthy: bool = False
    last_audio_timestamp_ms: int = 0
    last_error: str | None = None

    def is_healthy(self) -> bool:
        """Whether the daemon is functional enough to keep the watchdog fed.

        Only the engine matters here: audio health is relevant only while
        recording, and the daemon works headless without a GUI.
        """
        return self.engine_healthy