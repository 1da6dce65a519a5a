from __future__ import annotations
import logging

import numpy as np

from ..core.models import INT16_MAX, INT16_MIN
from .amplitude import SAMPLE_DTYPE, decode_chunk
from .sample_stream import SampleStream

logger = logging.getLogger("normpipe.rewrite")


def scale_samples(samples: np.ndarray, scale: float) -> np.ndarray:
    """Multiply by scale and round half away from zero into int16."""
    scaled = samples.astype(np.float64) * scale
    rounded = np.trunc(scaled + np.copysign(0.5, scaled))
    return np.clip(rounded, INT16_MIN, INT16_MAX).astype(SAMPLE_DTYPE)


def rewrite(stream: SampleStream, scale: float) -> int:
    """Second pass: apply scale to every sample in place.

    Returns the number of samples written. Chunks are processed in
    increasing offset order so a write never lands on unread bytes.
    """
    if scale <= 0:
        raise ValueError("scale must be > 0")
    # Fail before the first write so a bad file stays untouched.
    stream.check_alignment()

    written = 0
    for chunk in stream.chunks():
        samples = decode_chunk(chunk)
        stream.write_back(scale_samples(samples, scale).tobytes())
        written += int(samples.size)
    stream.flush()
    logger.debug("Rewrote %d samples of %s with scale %.4f", written, stream.path.name, scale)
    return written
