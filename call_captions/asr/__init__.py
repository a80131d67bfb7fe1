"""Speech recognition worker for Call Captions."""

from .engine import InferenceEngine
from .model import clear_device_cache, create_pipeline, select_device, transcribe

__all__ = [
    "InferenceEngine",
    "clear_device_cache",
    "create_pipeline",
    "select_device",
    "transcribe",
]
