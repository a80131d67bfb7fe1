"""Audio utility functions for chunk encoding, decoding and resampling."""

import io
import logging
import math
import wave

import numpy as np
import soundfile as sf

from shared.config import TARGET_SAMPLE_RATE

logger = logging.getLogger(__name__)

# Audio settings
CHUNK_DURATION_MS = 2000  # recorder timeslice
SAMPLE_WIDTH = 2  # 16-bit PCM from the capture device
FRAMES_PER_BUFFER_MS = 100  # device callback granularity


def resample_audio(
    samples: np.ndarray, from_rate: int, to_rate: int = TARGET_SAMPLE_RATE
) -> np.ndarray:
    """
    Resample mono float32 PCM using linear interpolation.

    Output length is round(len / ratio) with halves rounded up. The sample
    after the last one is taken to equal the last one, so no index past the
    input is ever read. There is no anti-aliasing filter; speech recognition
    tolerates the aliasing this introduces.

    Args:
        samples: Mono PCM samples
        from_rate: Source sample rate in Hz
        to_rate: Target sample rate in Hz

    Returns:
        Resampled float32 samples, or the input object itself when rates match
    """
    if from_rate == to_rate:
        return samples
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Invalid sample rates: {from_rate} -> {to_rate}")

    ratio = from_rate / to_rate
    input_length = len(samples)
    output_length = int(math.floor(input_length / ratio + 0.5))
    if output_length == 0 or input_length == 0:
        return np.zeros(0, dtype=np.float32)

    source = np.asarray(samples, dtype=np.float32)
    last = input_length - 1

    positions = np.arange(output_length, dtype=np.float64) * ratio
    near = np.minimum(np.floor(positions).astype(np.int64), last)
    far = np.minimum(near + 1, last)
    fraction = (positions - near).astype(np.float32)

    near_values = source[near]
    far_values = source[far]
    return near_values + (far_values - near_values) * fraction


def encode_wav(frames: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw 16-bit PCM frames in an in-memory WAV container."""
    wav_buffer = io.BytesIO()
    with wave.open(wav_buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(frames)
    return wav_buffer.getvalue()


def decode_chunk(blob: bytes) -> tuple[np.ndarray, int]:
    """
    Decode a recorded chunk into channel 0 PCM.

    Args:
        blob: Encoded audio container bytes (WAV, FLAC, OGG)

    Returns:
        (float32 samples of channel 0, source sample rate)
    """
    data, sample_rate = sf.read(io.BytesIO(blob), dtype="float32", always_2d=True)
    return np.ascontiguousarray(data[:, 0]), int(sample_rate)


def calculate_chunk_size(sample_rate: int, duration_ms: int = FRAMES_PER_BUFFER_MS) -> int:
    """Calculate chunk size in samples for given duration."""
    return int(sample_rate * duration_ms / 1000)
