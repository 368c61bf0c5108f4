# catalog_sync/services/progress.py
"""
Per-run state threaded explicitly through every phase of a sync.

A RunContext owns the progress counter, the failure ledger and the list of
non-fatal feed warnings. One context belongs to exactly one run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Share of the progress bar assigned to each phase
INDEX_PHASE_WEIGHT = 10.0
INCOMING_PHASE_WEIGHT = 80.0
DELISTED_PHASE_WEIGHT = 10.0

ProgressCallback = Callable[[int], None]


class ProgressTracker:
    """
    Monotonic 0-100 progress accumulator.

    Fractional increments are kept internally so that many small batch shares
    still add up to the full phase weight; callers see whole percentages.
    """

    MAXIMUM = 100.0

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self._total = 0.0
        self._on_progress = on_progress

    @property
    def value(self) -> int:
        return int(round(self._total))

    def advance(self, amount: float) -> int:
        if amount is None or amount <= 0:
            return self.value
        self._total = min(self._total + float(amount), self.MAXIMUM)
        if self._on_progress is not None:
            self._on_progress(self.value)
        return self.value

    def complete(self) -> int:
        return self.advance(self.MAXIMUM - self._total)


class FailureLedger:
    """Append-only, ordered list of per-item failure descriptions"""

    def __init__(self):
        self._entries: List[str] = []

    def record(self, message: str) -> None:
        logger.error(message)
        self._entries.append(message)

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __bool__(self) -> bool:
        return bool(self._entries)


@dataclass
class RunContext:
    progress: ProgressTracker = field(default_factory=ProgressTracker)
    ledger: FailureLedger = field(default_factory=FailureLedger)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, on_progress: Optional[ProgressCallback] = None) -> "RunContext":
        return cls(progress=ProgressTracker(on_progress))

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
