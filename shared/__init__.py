"""
Shared Modules for Call Captions

Provides common functionality for the capture pipeline and its consumers:
- config: Pipeline settings resolved from the environment
- core: Transcript models delivered to consumers
- client: TranscriptHistory recent-transcript buffer
- utils: Logging setup

Usage:
    from shared.client import TranscriptHistory
    from shared.utils import setup_logging

    logger = setup_logging(__name__)
    history = TranscriptHistory()
"""

from .client import TranscriptHistory
from .config import PipelineConfig, load_pipeline_config
from .core import LiveTranscriptUpdate, TranscriptEvent
from .utils import get_logger, setup_logging

__all__ = [
    "LiveTranscriptUpdate",
    "PipelineConfig",
    "TranscriptEvent",
    "TranscriptHistory",
    "get_logger",
    "load_pipeline_config",
    "setup_logging",
]

__version__ = "1.0.0"
