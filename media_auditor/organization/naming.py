import logging
import threading
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Set

from .. import config
from ..exceptions import RenameCollisionExhausted, WriteError
from ..models import ExecutionMode, MediaFile, RenamePlan
from ..scanning.filesystem import FileSystemAccessor


class RenamePlanner:
    """
    Computes canonical timestamp names and claims them without collisions.

    Several workers can arrive at the same name for files that share a
    timestamp. Checking for a free name and taking it happens under a lock
    scoped to the directory, and the rename itself runs inside that lock, so
    two workers never both see a name as free. In preview mode nothing lands on
    disk, so the planned names (and the names files would leave behind) are
    tracked in memory per directory instead.
    """

    def __init__(self, fs: Optional[FileSystemAccessor] = None):
        self.fs = fs or FileSystemAccessor()
        self._registry_lock = threading.Lock()
        self._dir_locks: Dict[Path, threading.Lock] = {}
        self._reserved: Dict[Path, Set[str]] = defaultdict(set)
        self._vacated: Dict[Path, Set[str]] = defaultdict(set)

    def _lock_for(self, directory: Path) -> threading.Lock:
        with self._registry_lock:
            lock = self._dir_locks.get(directory)
            if lock is None:
                lock = self._dir_locks[directory] = threading.Lock()
            return lock

    @staticmethod
    def base_name(ts: datetime) -> str:
        """YYYYMMDD_HHMMSS, plus .mmm when the milliseconds are non-zero."""
        name = ts.strftime(config.NAME_FORMAT)
        millis = ts.microsecond // 1000
        if millis:
            name += f".{millis:03d}"
        return name

    def plan(self, media_file: MediaFile, ts: datetime) -> RenamePlan:
        return RenamePlan(
            directory=media_file.directory,
            base_name=self.base_name(ts),
            ext=media_file.ext,
        )

    def reserve_and_rename(self, media_file: MediaFile, ts: datetime, mode: ExecutionMode) -> RenamePlan:
        """
        Finds the first free name (base, then base.001 ... base.999) and, in
        APPLY mode, renames the file to it. When the returned plan's target is
        the file's (planned) current path nothing was renamed.
        """
        plan = self.plan(media_file, ts)
        directory = plan.directory
        current = media_file.planned_path

        with self._lock_for(directory):
            while plan.target_path != current and self._is_taken(plan.target_path, media_file):
                plan.suffix = (plan.suffix or 0) + 1
                if plan.suffix > config.MAX_COLLISION_SUFFIX:
                    raise RenameCollisionExhausted(
                        f"No free name for {media_file.path} "
                        f"({plan.base_name}.001-{config.MAX_COLLISION_SUFFIX:03d} taken)"
                    )

            if plan.target_path != current:
                if mode.is_preview:
                    self._claim(directory, plan.target_name, vacating=current.name)
                    self._vacated[directory].add(media_file.path.name)
                else:
                    self.fs.rename(media_file.path, plan.target_path)

        return plan

    def rename_extension(self, media_file: MediaFile, new_ext: str, mode: ExecutionMode) -> Path:
        """Swaps only the extension, keeping the stem. Never overwrites another file."""
        target = media_file.path.with_suffix(new_ext)
        directory = media_file.directory

        with self._lock_for(directory):
            if self._is_taken(target, media_file):
                raise WriteError(f"Cannot correct extension of {media_file.path}: {target.name} already exists")
            if mode.is_preview:
                self._claim(directory, target.name, vacating=media_file.path.name)
                media_file.pending_name = target.name
            else:
                self.fs.rename(media_file.path, target)

        logging.debug(f"Extension {media_file.ext} -> {new_ext} for {media_file.path}")
        return target

    # Preview bookkeeping. In APPLY mode the disk is the only record, and the
    # rename happens under the directory lock, so both sets stay empty.

    def _claim(self, directory: Path, name: str, vacating: str):
        reserved = self._reserved[directory]
        reserved.discard(vacating)
        reserved.add(name)
        self._vacated[directory].discard(name)
        self._vacated[directory].add(vacating)

    def _is_taken(self, target: Path, media_file: MediaFile) -> bool:
        if target == media_file.path:
            return False
        name = target.name
        if name in self._reserved[target.parent]:
            return True
        if name in self._vacated[target.parent]:
            return False
        return self.fs.exists(target) and not self.fs.same_file(target, media_file.path)
