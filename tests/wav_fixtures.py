"""
Helpers to build small raw PCM wav files for the tests.
"""

from pathlib import Path

import numpy as np
from pydub import AudioSegment

HEADER_SIZE = 44


def write_wav(path, samples, channels=2, frame_rate=44100):
    """Write int16 samples as a bare 44 byte header wav (like ffmpeg -bitexact)."""
    data = np.asarray(samples, dtype="<i2").tobytes()
    seg = AudioSegment(data=data, sample_width=2, frame_rate=frame_rate, channels=channels)
    seg.export(str(path), format="wav").close()
    return Path(path)


def read_samples(path):
    raw = Path(path).read_bytes()[HEADER_SIZE:]
    return np.frombuffer(raw, dtype="<i2").astype(int).tolist()


def append_byte(path, value=b"\x01"):
    with open(path, "ab") as f:
        f.write(value)
