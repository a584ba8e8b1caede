import os
import time
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .exceptions import MediaAuditorError, PathTooLong, WriteError
from .metadata.extract import (
    ExifCaptureDateProvider,
    MediaInfoContainerDateProvider,
    TagProvider,
    TimestampProvider,
)
from .metadata.resolver import ProvenanceClassifier, TimestampResolver, check_tag_path, is_container
from .models import BatchResult, ExecutionMode, FileOutcome, MediaFile, SourceTag, TimestampResolution
from .organization.naming import RenamePlanner
from .scanning.filesystem import FileSystemAccessor
from .scanning.signature import SignatureDetector
from .stats import Counter, StatsAggregator
from . import reporting


class MediaAuditor:
    def __init__(self,
                 mode: ExecutionMode = ExecutionMode.APPLY,
                 max_workers: Optional[int] = None,
                 capture_provider: Optional[TimestampProvider] = None,
                 container_provider: Optional[TimestampProvider] = None,
                 tag_provider: Optional[TagProvider] = None,
                 fs: Optional[FileSystemAccessor] = None,
                 stats: Optional[StatsAggregator] = None):
        self.mode = mode
        self.max_workers = max_workers or os.cpu_count() or 1
        self.fs = fs or FileSystemAccessor()
        self.tag_provider = tag_provider
        self.detector = SignatureDetector()
        self.resolver = TimestampResolver(
            capture_provider or ExifCaptureDateProvider(),
            container_provider or MediaInfoContainerDateProvider(),
            tag_provider,
            self.fs,
        )
        self.classifier = ProvenanceClassifier()
        self.planner = RenamePlanner(self.fs)
        self.stats = stats or StatsAggregator()

        self._stop = threading.Event()
        self._total = 0

    def request_stop(self):
        """Stops dispatching new files; files already running finish normally."""
        self._stop.set()

    def run(self, paths: Iterable[Path], total: Optional[int] = None) -> BatchResult:
        """
        Runs every path through the per-file pipeline on a bounded thread pool.

        At most max_workers * 2 files are submitted at a time, so `paths` can be
        a lazy iterator over millions of entries. Per-file failures come back as
        FileOutcome values and never stop the batch.
        """
        if total is None and hasattr(paths, '__len__'):
            total = len(paths)
        self._total = total or 0

        start = time.monotonic()
        interrupted = False
        limit = self.max_workers * 2
        in_flight = set()

        logging.info(f"Auditing {self._total or 'unknown number of'} files "
                     f"with {self.max_workers} workers (Mode={self.mode.value})")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            try:
                for path in paths:
                    if self._stop.is_set():
                        interrupted = True
                        break
                    if len(in_flight) >= limit:
                        _, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                    in_flight.add(executor.submit(self.process_file, path))
                wait(in_flight)
            except KeyboardInterrupt:
                logging.warning("Interrupted; letting in-flight files finish...")
                interrupted = True
                self._stop.set()

        result = BatchResult(
            counters=self.stats.snapshot(),
            total=self._total,
            elapsed_sec=time.monotonic() - start,
            interrupted=interrupted,
        )
        reporting.log_summary(result, self.mode)
        return result

    def process_file(self, path: Path) -> FileOutcome:
        """
        Start -> SignatureCheck -> TimestampResolve -> ProvenanceClassify
        -> MetadataWrite -> Rename -> Done | Failed
        """
        outcome = FileOutcome(source_path=Path(path))
        try:
            media_file = MediaFile.from_path(path)
            outcome.source_path = media_file.path

            self._check_signature(media_file, outcome)

            resolution = self.resolver.resolve(media_file)
            outcome.canonical = resolution.canonical

            provenance = self.classifier.classify(resolution.candidates)
            outcome.provenance = provenance
            self.stats.increment(Counter.for_provenance(provenance))

            if resolution.canonical is None:
                outcome.notes.append("no timestamp available")
                self.stats.increment(Counter.SKIPPED)
            else:
                self._write_metadata(media_file, resolution, outcome)
                self._rename(media_file, resolution.canonical, outcome)
        except MediaAuditorError as e:
            outcome.fail(str(e))
        except Exception as e:
            logging.debug(f"Unexpected error on {path}", exc_info=True)
            outcome.fail(f"Unexpected error: {e}")
        finally:
            self._finish(outcome)
        return outcome

    # --- Pipeline Steps ---

    def _check_signature(self, media_file: MediaFile, outcome: FileOutcome):
        media_file.header = self.detector.read_header(media_file.path)
        fmt = self.detector.detect(media_file.header)
        outcome.detected_format = fmt
        if fmt is None or self.detector.matches_extension(fmt, media_file.ext):
            return

        self.stats.increment(Counter.SIGNATURE_MISMATCH)
        new_ext = self.detector.preferred_extension(fmt)
        try:
            target = self.planner.rename_extension(media_file, new_ext, self.mode)
        except WriteError as e:
            # Keep going with the extension we have
            outcome.errors.append(str(e))
            return

        outcome.actions.append(f"extension {media_file.ext} -> {new_ext}")
        media_file.ext = new_ext
        if not self.mode.is_preview:
            media_file.path = target
            self.stats.increment(Counter.SIGNATURE_RENAMED)

    def _write_metadata(self, media_file: MediaFile, resolution: TimestampResolution, outcome: FileOutcome):
        ts = resolution.canonical
        preview = self.mode.is_preview

        if self.tag_provider is not None and not is_container(media_file.ext):
            capture = next((c.instant for c in resolution.candidates
                            if c.source is SourceTag.CAPTURE_DATE), None)
            if capture != ts:
                self._write_date_taken(media_file, ts, outcome, preview)

        if self.fs.supports_creation_time and media_file.created != ts:
            outcome.actions.append(f"created -> {ts}")
            if not preview:
                try:
                    if self.fs.set_created(media_file.path, ts):
                        self.stats.increment(Counter.DATE_CREATED_SET)
                except WriteError as e:
                    outcome.errors.append(str(e))

        if media_file.modified != ts:
            outcome.actions.append(f"modified -> {ts}")
            if not preview:
                try:
                    self.fs.set_modified(media_file.path, ts)
                    self.stats.increment(Counter.DATE_MODIFIED_SET)
                except WriteError as e:
                    outcome.errors.append(str(e))

    def _write_date_taken(self, media_file: MediaFile, ts: datetime, outcome: FileOutcome, preview: bool):
        try:
            check_tag_path(media_file.path)
        except PathTooLong:
            outcome.notes.append("DateTaken skipped (path too long)")
            return

        outcome.actions.append(f"DateTaken -> {ts}")
        if preview:
            return
        if self.tag_provider.write_date_taken(media_file.directory, media_file.path.name, ts):
            self.stats.increment(Counter.DATE_TAKEN_SET)
        else:
            outcome.notes.append("DateTaken not written")

    def _rename(self, media_file: MediaFile, ts: datetime, outcome: FileOutcome):
        plan = self.planner.reserve_and_rename(media_file, ts, self.mode)
        if plan.suffix:
            self.stats.increment(Counter.WITH_COUNTER)

        if plan.target_path == media_file.planned_path:
            outcome.final_path = media_file.planned_path
            outcome.notes.append("name already canonical")
            self.stats.increment(Counter.SKIPPED)
            return

        outcome.actions.append(f"rename -> {plan.target_name}")
        outcome.final_path = plan.target_path
        if not self.mode.is_preview:
            media_file.path = plan.target_path
            self.stats.increment(Counter.RENAMED)

    def _finish(self, outcome: FileOutcome):
        self.stats.increment(Counter.PROCESSED)
        if outcome.errors:
            self.stats.increment(Counter.FAILED)
        if self.mode.is_preview and outcome.actions:
            self.stats.increment(Counter.DRY_RUN)
        if not outcome.failed and not outcome.actions and not outcome.errors:
            outcome.state = "skipped"

        reporting.log_outcome(outcome, self.mode)
        index = self.stats.next_progress_index()
        if reporting.should_report(index, self._total):
            reporting.log_progress(index, self._total, self.stats.snapshot())
