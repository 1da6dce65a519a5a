from __future__ import annotations
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from pydub.utils import which

from ..core.config import JobSettings
from ..core.errors import CollaboratorError

logger = logging.getLogger("normpipe.ffmpeg")


def to_wav(src: Path, out_wav: Path, settings: JobSettings) -> None:
    # int16 little-endian wav with a bare 44 byte header: no extra chunks,
    # no metadata, so the samples run from byte 44 to EOF.
    cmd = [
        resolve_ffmpeg(settings.ffmpeg_binary), "-y",
        "-i", str(src),
        "-bitexact",
        "-map_metadata", "-1",
        "-f", "wav",
        "-c:a", "pcm_s16le",
        "-ar", str(settings.sample_rate),
        "-ac", str(settings.channels),
        str(out_wav),
    ]
    _run(cmd, "ffmpeg decode", settings.ffmpeg_timeout_sec)


def wav_to_original(in_wav: Path, dst: Path, settings: JobSettings) -> None:
    # ffmpeg picks container and codec from the destination extension.
    cmd = [
        resolve_ffmpeg(settings.ffmpeg_binary), "-y",
        "-i", str(in_wav),
        str(dst),
    ]
    _run(cmd, "ffmpeg encode", settings.ffmpeg_timeout_sec)


def resolve_ffmpeg(binary: str) -> str:
    path = which(binary)
    if path is None:
        raise CollaboratorError(f"{binary} not found. Install ffmpeg and ensure it's in PATH.")
    return path


def _run(cmd: List[str], label: str, timeout: Optional[float] = None) -> None:
    logger.debug("%s: %s", label, " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, timeout=timeout)
    except FileNotFoundError as e:
        raise CollaboratorError(f"{label}: {cmd[0]} not found. Install ffmpeg and ensure it's in PATH.") from e
    except subprocess.TimeoutExpired as e:
        raise CollaboratorError(f"{label} timed out after {timeout:g}s") from e
    except subprocess.CalledProcessError as e:
        msg = (e.stderr or b"").decode("utf-8", errors="ignore")
        raise CollaboratorError(f"{label} failed:\n{msg[-2000:]}") from e
