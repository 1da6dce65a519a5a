from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .errors import ArgumentError

DEFAULT_SCALE_TARGET = 3200
DEFAULT_PARALLELISM = 8


@dataclass
class AmplitudeConfig:
    # Desired average absolute sample value. Increase to make songs louder.
    scale_target: int = DEFAULT_SCALE_TARGET
    # Scales within 1 +/- tolerance are not worth a re-encode.
    tolerance: float = 0.1


@dataclass
class PoolConfig:
    # ffmpeg runs dominate; adjust so your CPU does not catch fire.
    parallelism: int = DEFAULT_PARALLELISM


@dataclass
class FFmpegConfig:
    binary: str = "ffmpeg"  # NORMALIZE_FFMPEG env var wins if set
    timeout_sec: Optional[float] = 600.0  # null or 0 disables the timeout
    sample_rate: int = 44100
    channels: int = 2


@dataclass
class DiscoveryConfig:
    extensions: List[str] = field(default_factory=lambda: [".mp3"])


@dataclass
class StreamConfig:
    chunk_size: int = 4096  # bytes, i.e. 2048 samples


@dataclass
class Profile:
    name: str = "standard"
    amplitude: AmplitudeConfig = field(default_factory=AmplitudeConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    ffmpeg: FFmpegConfig = field(default_factory=FFmpegConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)


@dataclass(frozen=True)
class JobSettings:
    """Resolved, read-only settings handed to the dispatcher and every job."""

    scale_target: float = float(DEFAULT_SCALE_TARGET)
    tolerance: float = 0.1
    parallelism: int = DEFAULT_PARALLELISM
    ffmpeg_binary: str = "ffmpeg"
    ffmpeg_timeout_sec: Optional[float] = 600.0
    sample_rate: int = 44100
    channels: int = 2
    chunk_size: int = 4096
    extensions: Tuple[str, ...] = (".mp3",)
    dry_run: bool = False


def profiles_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "profiles"


def load_profile(profile_name: Optional[str] = None) -> Profile:
    """Load a profile by name (YAML in normpipe/profiles/) or by path.

    No name means built-in defaults.
    """
    if not profile_name:
        return Profile()

    path = Path(profile_name)
    if path.suffix.lower() not in (".yaml", ".yml") or not path.exists():
        path = profiles_dir() / f"{profile_name}.yaml"
    if not path.exists():
        raise ArgumentError(f"Profile not found: {profile_name}")

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ArgumentError(f"Profile {path} must be a mapping")

    p = Profile(name=data.get("name") or path.stem)

    # Simple shallow mapping; unknown keys are ignored.
    def update_dataclass(dc, upd: dict):
        for k, v in (upd or {}).items():
            if hasattr(dc, k):
                setattr(dc, k, v)

    update_dataclass(p.amplitude, data.get("amplitude"))
    update_dataclass(p.pool, data.get("pool"))
    update_dataclass(p.ffmpeg, data.get("ffmpeg"))
    update_dataclass(p.discovery, data.get("discovery"))
    update_dataclass(p.stream, data.get("stream"))
    return p


def _number(value, kind, label: str):
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"{label} must be a number, got {value!r}") from e


def build_settings(
    profile: Profile,
    scale_target: Optional[int] = None,
    parallelism: Optional[int] = None,
    dry_run: bool = False,
) -> JobSettings:
    """Merge profile values with command line overrides and validate them."""
    target = profile.amplitude.scale_target if scale_target is None else scale_target
    n = profile.pool.parallelism if parallelism is None else parallelism

    target = _number(target, float, "Amplitude")
    n = _number(n, int, "Parallelism")
    tolerance = _number(profile.amplitude.tolerance, float, "Tolerance")
    chunk_size = _number(profile.stream.chunk_size, int, "Chunk size")
    sample_rate = _number(profile.ffmpeg.sample_rate, int, "Sample rate")
    channels = _number(profile.ffmpeg.channels, int, "Channels")

    if target <= 0:
        raise ArgumentError(f"Amplitude must be positive, got {target:g}")
    if not 0.0 <= tolerance < 1.0:
        raise ArgumentError(f"Tolerance must be in [0, 1), got {tolerance:g}")
    if chunk_size < 2 or chunk_size % 2:
        raise ArgumentError(f"Chunk size must be an even number of bytes, got {chunk_size}")

    timeout = profile.ffmpeg.timeout_sec
    if timeout is not None:
        timeout = _number(timeout, float, "ffmpeg timeout")
        if timeout <= 0:
            timeout = None

    exts = tuple(
        (e if e.startswith(".") else "." + e).lower()
        for e in (profile.discovery.extensions or [])
    )

    return JobSettings(
        scale_target=target,
        tolerance=tolerance,
        parallelism=max(1, n),
        ffmpeg_binary=os.getenv("NORMALIZE_FFMPEG") or profile.ffmpeg.binary,
        ffmpeg_timeout_sec=timeout,
        sample_rate=sample_rate,
        channels=channels,
        chunk_size=chunk_size,
        extensions=exts,
        dry_run=dry_run,
    )
