"""
Pipeline Configuration Module

Centralized capture/inference settings and environment helpers.
"""

from .pipeline import (
    ANALYSIS_STRIDE_SEC,
    ANALYSIS_WINDOW_SEC,
    DEFAULT_CHUNK_MS,
    DEFAULT_HEARTBEAT_SEC,
    DEFAULT_LANGUAGE,
    DEFAULT_MODEL,
    TARGET_SAMPLE_RATE,
    PipelineConfig,
    load_pipeline_config,
)

__all__ = [
    "ANALYSIS_STRIDE_SEC",
    "ANALYSIS_WINDOW_SEC",
    "DEFAULT_CHUNK_MS",
    "DEFAULT_HEARTBEAT_SEC",
    "DEFAULT_LANGUAGE",
    "DEFAULT_MODEL",
    "TARGET_SAMPLE_RATE",
    "PipelineConfig",
    "load_pipeline_config",
]
