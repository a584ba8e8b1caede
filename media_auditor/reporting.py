import logging
from typing import Dict

from . import config
from .models import BatchResult, ExecutionMode, FileOutcome
from .stats import Counter


def progress_interval(total: int) -> int:
    """A progress line every max(100, 1% of total) completions."""
    return max(config.PROGRESS_MIN_INTERVAL, total // 100)


def should_report(index: int, total: int) -> bool:
    if index <= config.PROGRESS_EAGER_COUNT:
        return True
    return index % progress_interval(total) == 0


def log_progress(index: int, total: int, counters: Dict[str, int]):
    if total:
        pct = index / total * 100
        head = f"Progress: {index}/{total} ({pct:.1f}%)"
    else:
        head = f"Progress: {index} files"
    logging.info(
        f"{head} - renamed={counters[Counter.RENAMED.value]} "
        f"mismatches={counters[Counter.SIGNATURE_MISMATCH.value]} "
        f"failed={counters[Counter.FAILED.value]}"
    )


def log_outcome(outcome: FileOutcome, mode: ExecutionMode):
    prefix = "[DRY RUN] " if mode.is_preview else ""
    name = outcome.source_path.name

    if outcome.failed:
        logging.error(f"{prefix}FAILED {outcome.source_path}: {'; '.join(outcome.errors)}")
        return

    provenance = outcome.provenance.value if outcome.provenance else "-"
    actions = "; ".join(outcome.actions) if outcome.actions else "no changes"
    if outcome.notes:
        actions += f" ({'; '.join(outcome.notes)})"
    logging.info(f"{prefix}{name} [{provenance}] {actions}")
    for err in outcome.errors:
        logging.error(f"{prefix}{outcome.source_path}: {err}")


def log_summary(result: BatchResult, mode: ExecutionMode):
    c = result.counters
    preview = mode.is_preview

    logging.info("=" * 60)
    logging.info("Audit summary" + (" (PREVIEW - nothing was changed)" if preview else ""))
    logging.info("=" * 60)
    logging.info(f"Files:               {result.total}")
    logging.info(f"Processed:           {c[Counter.PROCESSED.value]}")
    logging.info(f"Skipped:             {c[Counter.SKIPPED.value]}")
    logging.info(f"Failed:              {c[Counter.FAILED.value]}")
    logging.info("")
    logging.info("Signatures:")
    logging.info(f"  Mismatched:        {c[Counter.SIGNATURE_MISMATCH.value]}")
    logging.info(f"  Corrected (did):   {c[Counter.SIGNATURE_RENAMED.value]}")
    logging.info("")
    logging.info("Provenance:")
    for counter in (Counter.EXIF_ONLY, Counter.QUICKTIME_ONLY, Counter.FALLBACK_ONLY,
                    Counter.MIXED_SOURCES, Counter.UNKNOWN):
        logging.info(f"  {counter.value + ':':<18} {c[counter.value]}")
    logging.info("")
    logging.info("Timestamps written (did):")
    logging.info(f"  DateTaken:         {c[Counter.DATE_TAKEN_SET.value]}")
    logging.info(f"  Created:           {c[Counter.DATE_CREATED_SET.value]}")
    logging.info(f"  Modified:          {c[Counter.DATE_MODIFIED_SET.value]}")
    logging.info("")
    logging.info(f"Renamed (did):       {c[Counter.RENAMED.value]}")
    logging.info(f"Needed a suffix:     {c[Counter.WITH_COUNTER.value]}")
    if preview:
        logging.info(f"Would change:        {c[Counter.DRY_RUN.value]}")
    logging.info(f"Elapsed:             {result.elapsed_sec:.2f}s")
    if result.interrupted:
        logging.warning("Batch was interrupted; remaining files were not dispatched.")
    logging.info("=" * 60)
