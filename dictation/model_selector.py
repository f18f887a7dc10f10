"""Model specification parsing and on-disk model lookup."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENGINE_NAME = "parakeet"
REQUIRED_MODEL_FILES = ("encoder-model.onnx", "decoder_joint-model.onnx")


class ModelSpecError(ValueError):
    """A model specification string is malformed or names an unknown engine."""


@dataclass(frozen=True)
class ModelSpec:
    """A parsed ``parakeet:<model_name>`` specification."""

    model_name: str

    def __str__(self) -> str:
        return f"{ENGINE_NAME}:{self.model_name}"

    @staticmethod
    def _models_dir() -> Path:
        home = os.environ.get("HOME", ".")
        return Path(home) / ".config" / "voice-dictation" / "models"

    def model_path(self) -> Path:
        """Directory holding the model files."""
        return self._models_dir() / ENGINE_NAME

    def is_available(self) -> bool:
        """Whether the encoder and decoder files are present."""
        path = self.model_path()
        return all((path / name).exists() for name in REQUIRED_MODEL_FILES)


def parse_model_spec(spec: str) -> ModelSpec:
    """Parse a specification of the form ``parakeet:model_name``."""
    engine, sep, model_name = spec.partition(":")
    if not sep:
        raise ModelSpecError(
            f"Invalid model spec '{spec}', expected format 'parakeet:model_name'"
        )
    if engine != ENGINE_NAME:
        raise ModelSpecError(
            f"Unsupported engine '{engine}'. Only 'parakeet' is supported."
        )
    return ModelSpec(model_name)