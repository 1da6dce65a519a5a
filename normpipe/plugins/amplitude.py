from __future__ import annotations
import logging
from typing import Optional

import numpy as np

from ..core.errors import FormatError
from ..core.models import INT16_MAX, AnalysisResult, ScaleDecision
from .sample_stream import SAMPLE_WIDTH, SampleStream

logger = logging.getLogger("normpipe.amplitude")

SAMPLE_DTYPE = np.dtype("<i2")


def decode_chunk(chunk) -> np.ndarray:
    if len(chunk) % SAMPLE_WIDTH:
        raise FormatError("read odd number of bytes in int16 sample stream")
    return np.frombuffer(chunk, dtype=SAMPLE_DTYPE)


def analyze(stream: SampleStream) -> AnalysisResult:
    """First pass: count, sum of absolute values, min and max sample."""
    count = 0
    abs_sum = 0
    lo: Optional[int] = None
    hi: Optional[int] = None

    stream.check_alignment()
    for chunk in stream.chunks():
        samples = decode_chunk(chunk)
        if samples.size == 0:
            continue
        # int64 so that abs(-32768) does not wrap
        wide = samples.astype(np.int64)
        abs_sum += int(np.abs(wide).sum())
        count += int(samples.size)
        cmin, cmax = int(wide.min()), int(wide.max())
        lo = cmin if lo is None else min(lo, cmin)
        hi = cmax if hi is None else max(hi, cmax)

    result = AnalysisResult(
        sample_count=count,
        abs_sum=abs_sum,
        min_sample=lo or 0,
        max_sample=hi or 0,
    )
    logger.debug("Analyzed %s: %s", stream.path.name, result)
    return result


def resolve_scale(analysis: AnalysisResult, scale_target: float, tolerance: float = 0.1) -> ScaleDecision:
    """Turn an analysis into a scale factor.

    The scale brings the average absolute sample value to scale_target but
    never beyond what the peak sample allows without clipping. A result
    within 1 +/- tolerance is reported as unchanged.
    """
    if scale_target <= 0:
        raise ValueError("scale_target must be > 0")
    if not 0.0 <= tolerance < 1.0:
        raise ValueError("tolerance must be in [0, 1)")

    if analysis.is_silent:
        return ScaleDecision(scale=1.0, changed=False, reason="silent")

    scale = scale_target / analysis.avg_abs
    capped = False
    # peak > 0 whenever abs_sum > 0
    max_scale = INT16_MAX / analysis.peak
    if scale > max_scale:
        scale = max_scale
        capped = True

    if 1.0 - tolerance <= scale <= 1.0 + tolerance:
        return ScaleDecision(scale=scale, changed=False, capped=capped, reason="within tolerance")
    return ScaleDecision(scale=scale, changed=True, capped=capped, reason="clipping ceiling" if capped else "")
