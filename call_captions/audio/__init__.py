"""Audio decoding, resampling and device discovery."""

from .devices import (
    find_device_by_name,
    find_loopback_device,
    get_default_input_info,
    get_default_output_info,
    is_loopback_name,
    list_devices,
)
from .utils import (
    CHUNK_DURATION_MS,
    calculate_chunk_size,
    decode_chunk,
    encode_wav,
    resample_audio,
)

__all__ = [
    "CHUNK_DURATION_MS",
    "calculate_chunk_size",
    "decode_chunk",
    "encode_wav",
    "find_device_by_name",
    "find_loopback_device",
    "get_default_input_info",
    "get_default_output_info",
    "is_loopback_name",
    "list_devices",
    "resample_audio",
]
