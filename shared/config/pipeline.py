"""
Pipeline Configuration

Single source of truth for capture, inference and session timing settings.
Every value can be overridden with an environment variable; malformed values
fall back to the default instead of failing at import time.
"""

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _env_str(name: str, default: str | None) -> str | None:
    val = os.environ.get(name)
    if val is None or not val.strip():
        return default
    return val.strip()


# ============== Defaults ==============

DEFAULT_MODEL = "openai/whisper-tiny"
DEFAULT_LANGUAGE = "en"
TARGET_SAMPLE_RATE = 16000  # Whisper input rate, not configurable
DEFAULT_CHUNK_MS = 2000
DEFAULT_HEARTBEAT_SEC = 20.0
DEFAULT_IDLE_TIMEOUT_SEC = 30.0
DEFAULT_INFERENCE_TIMEOUT_SEC = 20.0
DEFAULT_HISTORY_SIZE = 10
DEFAULT_HISTORY_MAX_AGE_SEC = 300.0

# Inference chunking (seconds)
ANALYSIS_WINDOW_SEC = 30
ANALYSIS_STRIDE_SEC = 5


@dataclass
class PipelineConfig:
    """Runtime settings for one capture pipeline."""

    model: str = DEFAULT_MODEL
    language: str = DEFAULT_LANGUAGE
    chunk_ms: int = DEFAULT_CHUNK_MS
    heartbeat_sec: float = DEFAULT_HEARTBEAT_SEC
    idle_timeout_sec: float = DEFAULT_IDLE_TIMEOUT_SEC
    inference_timeout_sec: float = DEFAULT_INFERENCE_TIMEOUT_SEC
    history_size: int = DEFAULT_HISTORY_SIZE
    history_max_age_sec: float = DEFAULT_HISTORY_MAX_AGE_SEC
    history_path: str | None = None
    window_sec: int = ANALYSIS_WINDOW_SEC
    stride_sec: int = ANALYSIS_STRIDE_SEC
    target_sample_rate: int = field(default=TARGET_SAMPLE_RATE, init=False)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        d = cls()
        return cls(
            model=_env_str("CAPTIONS_MODEL", d.model),
            language=_env_str("CAPTIONS_LANGUAGE", d.language),
            chunk_ms=_env_int("CAPTIONS_CHUNK_MS", d.chunk_ms),
            heartbeat_sec=_env_float("CAPTIONS_HEARTBEAT_SEC", d.heartbeat_sec),
            idle_timeout_sec=_env_float("CAPTIONS_IDLE_TIMEOUT_SEC", d.idle_timeout_sec),
            inference_timeout_sec=_env_float(
                "CAPTIONS_INFERENCE_TIMEOUT_SEC", d.inference_timeout_sec
            ),
            history_size=_env_int("CAPTIONS_HISTORY_SIZE", d.history_size),
            history_max_age_sec=_env_float("CAPTIONS_HISTORY_MAX_AGE_SEC", d.history_max_age_sec),
            history_path=_env_str("CAPTIONS_HISTORY_PATH", d.history_path),
        )


def load_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_env()
