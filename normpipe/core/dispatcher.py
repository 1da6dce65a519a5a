from __future__ import annotations
import logging
import os
import queue
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from .config import JobSettings
from .models import BatchReport, JobOutcome, JobState, JobStatus
from .runner import run_job
from ..plugins.discovery import unique_paths

logger = logging.getLogger("normpipe.dispatcher")

JobFn = Callable[[Path, Path, JobSettings], JobOutcome]
OutcomeFn = Callable[[JobOutcome, int, int], None]


@contextmanager
def temp_workspace() -> Iterator[Path]:
    """Shared directory for the temporary wav files of all workers.

    Falls back to the current directory if no temp dir can be created.
    Only a directory created here is removed afterwards.
    """
    try:
        tmp = Path(tempfile.mkdtemp(prefix="normalize"))
        created = True
    except OSError as e:
        logger.warning("Could not create temp dir (%s), using current directory", e)
        tmp = Path(".")
        created = False
    try:
        yield tmp
    finally:
        if created:
            try:
                os.rmdir(tmp)
            except OSError as e:
                logger.warning("Could not remove temp dir %s: %s", tmp, e)


def _worker(
    jobs: "queue.Queue[Path]",
    outcomes: "queue.Queue[JobOutcome]",
    temp_dir: Path,
    settings: JobSettings,
    job_fn: JobFn,
) -> None:
    while True:
        path = jobs.get()
        outcome: Optional[JobOutcome] = None
        try:
            outcome = job_fn(path, temp_dir, settings)
        except BaseException as e:
            # SystemExit and friends only end this job; the worker stays up.
            logger.debug("Job for %s raised", path, exc_info=True)
            outcome = _failed_outcome(path, str(e).strip() or type(e).__name__)
        finally:
            if outcome is None:
                outcome = _failed_outcome(path, "job produced no outcome")
            # Outcome first: once the barrier drops to zero every outcome is queued.
            outcomes.put(outcome)
            jobs.task_done()


def _failed_outcome(path: Path, message: str) -> JobOutcome:
    return JobOutcome(
        path=str(path),
        status=JobStatus.failed,
        state=JobState.ERROR,
        message=message,
    )


class Dispatcher:
    """Fixed pool of worker threads running one job per queued path.

    Workers are daemon threads that live for the rest of the process; they
    get the settings and temp dir as arguments when spawned. A failing job
    becomes a failed outcome and never stops the batch.
    """

    def __init__(
        self,
        settings: JobSettings,
        temp_dir: Path,
        job_fn: Optional[JobFn] = None,
        on_outcome: Optional[OutcomeFn] = None,
    ):
        self.settings = settings
        self.temp_dir = Path(temp_dir)
        self.job_fn = job_fn or run_job
        self.on_outcome = on_outcome
        self.workers = max(1, settings.parallelism)
        self._jobs: "queue.Queue[Path]" = queue.Queue()
        self._outcomes: "queue.Queue[JobOutcome]" = queue.Queue()
        self._threads: List[threading.Thread] = []

    def _start(self) -> None:
        if self._threads:
            return
        for i in range(self.workers):
            t = threading.Thread(
                target=_worker,
                name=f"normpipe-worker-{i}",
                args=(self._jobs, self._outcomes, self.temp_dir, self.settings, self.job_fn),
                daemon=True,
            )
            t.start()
            self._threads.append(t)
        logger.debug("Started %d workers", self.workers)

    def dispatch(self, paths: Sequence[Path]) -> BatchReport:
        """Process every path once and return when all of them are done."""
        todo = unique_paths(Path(p) for p in paths)
        report = BatchReport(total=len(todo))
        if not todo:
            return report

        self._start()
        for p in todo:
            self._jobs.put(p)

        for done in range(1, len(todo) + 1):
            outcome = self._outcomes.get()
            report.add(outcome)
            if self.on_outcome is not None:
                self.on_outcome(outcome, done, len(todo))

        # Completion barrier: every put() matched by a task_done().
        self._jobs.join()
        logger.info(
            "Batch done: %d normalized, %d skipped, %d failed",
            report.normalized, report.skipped, report.failed,
        )
        return report
