from __future__ import annotations


class NormalizeError(Exception):
    """Base class for errors raised by normpipe."""


class ArgumentError(NormalizeError):
    """Bad command line input. Raised before any job runs."""


class FormatError(NormalizeError):
    """The raw PCM file does not hold a whole number of 16-bit samples."""


class CollaboratorError(NormalizeError, RuntimeError):
    """ffmpeg is missing, exited non-zero or timed out."""
