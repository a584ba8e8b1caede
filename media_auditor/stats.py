import threading
from enum import Enum
from typing import Dict, Union

from .models import Provenance


class Counter(Enum):
    PROCESSED = "Processed"
    DATE_TAKEN_SET = "DateTakenSet"
    DATE_CREATED_SET = "DateCreatedSet"
    DATE_MODIFIED_SET = "DateModifiedSet"
    SIGNATURE_MISMATCH = "SignatureMismatchCount"
    SIGNATURE_RENAMED = "SignatureRenamedCount"
    SKIPPED = "Skipped"
    FAILED = "Failed"
    DRY_RUN = "DryRun"
    EXIF_ONLY = "EXIF-only"
    QUICKTIME_ONLY = "QuickTime-only"
    FALLBACK_ONLY = "Fallback-only"
    MIXED_SOURCES = "Mixed-sources"
    UNKNOWN = "Unknown"
    RENAMED = "Renamed"
    WITH_COUNTER = "WithCounter"

    @classmethod
    def for_provenance(cls, provenance: Provenance) -> "Counter":
        return cls(provenance.value)


class StatsAggregator:
    """
    Process-wide outcome counters shared by all workers.

    The vocabulary is fixed up front; incrementing is the only mutation and
    is atomic, so concurrent workers never lose updates. Reads return the
    current values without blocking writers for long.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[Counter, int] = {c: 0 for c in Counter}
        self._progress_index = 0

    def increment(self, counter: Union[Counter, str], amount: int = 1) -> None:
        key = self._key(counter)
        if amount < 0:
            raise ValueError("Counters are never decremented")
        with self._lock:
            self._counts[key] += amount

    def get(self, counter: Union[Counter, str]) -> int:
        key = self._key(counter)
        with self._lock:
            return self._counts[key]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {c.value: n for c, n in self._counts.items()}

    def next_progress_index(self) -> int:
        """Atomically bumps and returns the completion index (1-based)."""
        with self._lock:
            self._progress_index += 1
            return self._progress_index

    @staticmethod
    def _key(counter: Union[Counter, str]) -> Counter:
        if isinstance(counter, Counter):
            return counter
        try:
            return Counter(counter)
        except ValueError:
            raise KeyError(f"Unknown counter: {counter}") from None
