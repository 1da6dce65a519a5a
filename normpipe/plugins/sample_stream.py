from __future__ import annotations
import io
import os
from pathlib import Path
from typing import Iterator, Union

from ..core.errors import FormatError

# In a WAV file without any metadata the int16 samples start at byte 44,
# after the RIFF header and the data chunk header. The data chunk is
# assumed to be the last chunk, so everything after it is samples.
HEADER_SIZE = 44
CHUNK_SIZE = 4096
SAMPLE_WIDTH = 2


class SampleStream:
    """Buffered read/write cursor over the sample region of a raw PCM file.

    The file is opened at byte 0; call rewind() to move past the header
    before sampling. write_back() overwrites the bytes returned by the last
    read_chunk() in place.
    """

    def __init__(self, path: Union[str, Path], chunk_size: int = CHUNK_SIZE, header_size: int = HEADER_SIZE):
        if chunk_size <= 0 or chunk_size % SAMPLE_WIDTH:
            raise ValueError("chunk_size must be a positive multiple of 2")
        self.path = Path(path)
        self.header_size = header_size
        self._buf = bytearray(chunk_size)
        self._f = open(self.path, "r+b")

    def __enter__(self) -> "SampleStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._f.close()

    @property
    def chunk_size(self) -> int:
        return len(self._buf)

    @property
    def sample_bytes(self) -> int:
        return os.fstat(self._f.fileno()).st_size - self.header_size

    def check_alignment(self) -> None:
        n = self.sample_bytes
        if n < 0:
            raise FormatError(f"file is shorter than the {self.header_size} byte header")
        if n % SAMPLE_WIDTH:
            raise FormatError("odd number of bytes in int16 sample stream")

    def tell(self) -> int:
        return self._f.tell()

    def rewind(self) -> None:
        self._f.seek(self.header_size, io.SEEK_SET)

    def read_chunk(self) -> memoryview:
        """Read up to chunk_size bytes. An empty view means end of stream."""
        n = self._f.readinto(self._buf)
        return memoryview(self._buf)[:n or 0]

    def write_back(self, data: bytes) -> None:
        """Overwrite the len(data) bytes just read; the cursor ends where it was."""
        self._f.seek(-len(data), io.SEEK_CUR)
        self._f.write(data)

    def chunks(self) -> Iterator[memoryview]:
        self.rewind()
        while True:
            chunk = self.read_chunk()
            if not chunk:
                return
            yield chunk

    def flush(self) -> None:
        self._f.flush()


def open_sample_stream(path: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> SampleStream:
    return SampleStream(path, chunk_size=chunk_size)
