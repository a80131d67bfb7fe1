"""Model management for the captioning ASR pipeline.

torch and transformers are imported on first use so the capture side of the
pipeline can start (and be tested) without them.
"""

import gc
import logging

import numpy as np

from shared.config import ANALYSIS_STRIDE_SEC, ANALYSIS_WINDOW_SEC, DEFAULT_LANGUAGE, TARGET_SAMPLE_RATE

logger = logging.getLogger(__name__)


# ==============================================================================
# Device Selection
# ==============================================================================


def select_device() -> tuple[str, object]:
    """Pick the inference device and matching dtype.

    Returns:
        ("cuda", torch.float16) when CUDA is available, else ("cpu", torch.float32)
    """
    import torch

    if torch.cuda.is_available():
        return "cuda", torch.float16
    return "cpu", torch.float32


def clear_device_cache():
    """Release cached GPU memory after a model is dropped."""
    gc.collect()
    try:
        import torch
    except ImportError:
        return
    if torch.cuda.is_available():
        torch.cuda.empty_cache()


# ==============================================================================
# Pipeline
# ==============================================================================


def create_pipeline(model_name: str) -> object:
    """Create a Whisper pipeline for the given model.

    Args:
        model_name: HuggingFace model name or local path

    Returns:
        Transformers pipeline for automatic-speech-recognition
    """
    from transformers import pipeline

    device, torch_dtype = select_device()
    logger.info(f"Loading model: {model_name}")
    logger.info(f"Device: {device}, dtype: {torch_dtype}")

    pipe = pipeline(
        "automatic-speech-recognition",
        model=model_name,
        torch_dtype=torch_dtype,
        device=device,
    )

    logger.info(f"Model {model_name} loaded successfully")
    return pipe


def transcribe(
    pipe,
    samples: np.ndarray,
    language: str = DEFAULT_LANGUAGE,
    window_sec: int = ANALYSIS_WINDOW_SEC,
    stride_sec: int = ANALYSIS_STRIDE_SEC,
) -> str:
    """Run one chunk of 16 kHz mono PCM through the pipeline.

    Returns:
        Transcribed text with surrounding whitespace removed, "" for silence
    """
    result = pipe(
        {"raw": samples, "sampling_rate": TARGET_SAMPLE_RATE},
        chunk_length_s=window_sec,
        stride_length_s=stride_sec,
        generate_kwargs={
            "task": "transcribe",
            "language": language,
        },
    )
    if not isinstance(result, dict):
        return ""
    return (result.get("text") or "").strip()
