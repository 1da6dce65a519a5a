from __future__ import annotations
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from .config import JobSettings
from .models import AnalysisResult, JobOutcome, JobState, JobStatus, ScaleDecision
from ..plugins.amplitude import analyze, resolve_scale
from ..plugins.ffmpeg_tools import to_wav, wav_to_original
from ..plugins.rewrite import rewrite
from ..plugins.sample_stream import open_sample_stream

logger = logging.getLogger("normpipe.job")


def temp_wav_path(source: Path, temp_dir: Path) -> Path:
    # Base name keeps it readable; the hash keeps same-named files from
    # different folders apart.
    digest = hashlib.sha1(os.path.abspath(source).encode("utf-8", errors="surrogateescape")).hexdigest()[:10]
    return temp_dir / f"{source.name}.{digest}.temp.wav"


class NormalizationJob:
    """Normalize one file: decode, analyze, resolve, rewrite, encode.

    `state` tracks the current step so a failure can be reported with the
    step it happened in. The temporary wav is removed however run() ends.
    """

    def __init__(self, source: Path, temp_dir: Path, settings: JobSettings):
        self.source = Path(source)
        self.raw_path = temp_wav_path(self.source, Path(temp_dir))
        self.settings = settings
        self.state = JobState.DECODING
        self.analysis: Optional[AnalysisResult] = None
        self.decision: Optional[ScaleDecision] = None

    def run(self) -> JobOutcome:
        try:
            return self._run()
        finally:
            self._cleanup()

    def _run(self) -> JobOutcome:
        s = self.settings

        # 1) Decode to raw int16 wav
        self.state = JobState.DECODING
        to_wav(self.source, self.raw_path, s)

        with open_sample_stream(self.raw_path, chunk_size=s.chunk_size) as stream:
            # 2) First pass
            self.state = JobState.ANALYZING
            self.analysis = analyze(stream)

            # 3) Scale factor
            self.state = JobState.RESOLVING
            self.decision = resolve_scale(self.analysis, s.scale_target, s.tolerance)

            if s.dry_run or not self.decision.changed:
                self.state = JobState.SKIPPED
                reason = "dry run" if s.dry_run else self.decision.reason
                logger.info("Skipping %s (%s, scale %.3f)", self.source, reason, self.decision.scale)
                return self._outcome(JobStatus.skipped, reason)

            # 4) Second pass, in place
            self.state = JobState.REWRITING
            rewrite(stream, self.decision.scale)

        # 5) Back to the original format, over the source
        self.state = JobState.ENCODING
        wav_to_original(self.raw_path, self.source, s)

        self.state = JobState.DONE
        logger.info("Normalized %s (scale %.3f%s)", self.source, self.decision.scale,
                    ", capped" if self.decision.capped else "")
        return self._outcome(JobStatus.normalized)

    def _outcome(self, status: JobStatus, message: str = "") -> JobOutcome:
        return JobOutcome(
            path=str(self.source),
            status=status,
            state=self.state,
            scale=self.decision.scale if self.decision else None,
            message=message,
            analysis=self.analysis,
        )

    def failed(self, exc: BaseException) -> JobOutcome:
        """Outcome for a run() that raised `exc`."""
        failed_step = self.state
        self.state = JobState.ERROR
        logger.debug("Job for %s failed while %s: %s", self.source, failed_step.value, exc)
        return JobOutcome(
            path=str(self.source),
            status=JobStatus.failed,
            state=self.state,
            failed_step=failed_step,
            scale=self.decision.scale if self.decision else None,
            message=str(exc).strip() or type(exc).__name__,
            analysis=self.analysis,
        )

    def _cleanup(self) -> None:
        try:
            self.raw_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove %s: %s", self.raw_path, e)


def run_job(source: Path, temp_dir: Path, settings: JobSettings) -> JobOutcome:
    """Run one job, turning any error into a failed outcome."""
    job = NormalizationJob(source, temp_dir, settings)
    try:
        return job.run()
    except Exception as e:
        return job.failed(e)
