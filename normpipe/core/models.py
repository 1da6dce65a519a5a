from __future__ import annotations
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

INT16_MAX = 32767
INT16_MIN = -32768


@dataclass(frozen=True)
class AnalysisResult:
    sample_count: int = 0
    abs_sum: int = 0
    min_sample: int = 0
    max_sample: int = 0

    @property
    def is_silent(self) -> bool:
        return self.abs_sum == 0

    @property
    def avg_abs(self) -> float:
        if self.sample_count == 0:
            return 0.0
        return self.abs_sum / self.sample_count

    @property
    def peak(self) -> int:
        return max(self.max_sample, -self.min_sample)


@dataclass(frozen=True)
class ScaleDecision:
    scale: float
    changed: bool
    capped: bool = False
    reason: str = ""


class JobState(str, Enum):
    DECODING = "decoding"
    ANALYZING = "analyzing"
    RESOLVING = "resolving"
    SKIPPED = "skipped"
    REWRITING = "rewriting"
    ENCODING = "encoding"
    DONE = "done"
    ERROR = "error"


class JobStatus(str, Enum):
    normalized = "normalized"
    skipped = "skipped"
    failed = "failed"


@dataclass
class JobOutcome:
    path: str
    status: JobStatus
    state: JobState
    scale: Optional[float] = None
    message: str = ""
    analysis: Optional[AnalysisResult] = None
    failed_step: Optional[JobState] = None

    @property
    def failed(self) -> bool:
        return self.status == JobStatus.failed


@dataclass
class BatchReport:
    total: int = 0
    normalized: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[JobOutcome] = field(default_factory=list)

    def add(self, outcome: JobOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == JobStatus.normalized:
            self.normalized += 1
        elif outcome.status == JobStatus.skipped:
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for o in d["outcomes"]:
            o["status"] = o["status"].value
            o["state"] = o["state"].value
            if o["failed_step"] is not None:
                o["failed_step"] = o["failed_step"].value
        return d
