import os
import sys
import logging
from pathlib import Path
from datetime import datetime
from typing import Iterator, Optional, Set, Tuple

from .. import config
from ..exceptions import EnumerationError, ReadError, WriteError


class FileEnumerator:
    def __init__(self, extensions: Optional[Set[str]] = None):
        self.extensions = extensions if extensions is not None else config.SUPPORTED_EXTS

    def iter_files(self, root: Path, recursive: bool = False) -> Iterator[Path]:
        """
        Depth-first walker using os.scandir for speed.
        Yields supported media files only; the root itself must be a readable
        directory or EnumerationError is raised before anything is yielded.
        """
        root = Path(root)
        if not root.is_dir():
            raise EnumerationError(f"Root path is not a directory: {root}")
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise EnumerationError(f"Cannot enumerate {root}: {e}") from e

        return self._walk(root, recursive)

    def _walk(self, root: Path, recursive: bool) -> Iterator[Path]:
        stack = [root]
        while stack:
            current = stack.pop()

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    if self.is_supported(e.name):
                        files.append(Path(e.path))

            if recursive:
                # Push dirs to stack (reversed so we process A before Z)
                for d in reversed(dirs):
                    stack.append(d)

            for f in files:
                yield f

    def is_supported(self, name: str) -> bool:
        # AppleDouble resource forks carry the media extension but no media
        if name.startswith("._"):
            return False
        return Path(name).suffix.lower() in self.extensions


class FileSystemAccessor:
    """
    Reads and writes filesystem timestamps and performs renames.
    All instants are naive datetimes in local time.
    """

    @property
    def supports_creation_time(self) -> bool:
        return sys.platform == 'win32'

    def read_times(self, path: Path) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Returns (created, modified). Creation time is None where the OS does not track it."""
        try:
            st = path.stat()
        except OSError as e:
            raise ReadError(f"Cannot stat {path}: {e}") from e

        created = None
        birth = getattr(st, 'st_birthtime', None)
        if birth is not None:
            created = datetime.fromtimestamp(birth)
        elif sys.platform == 'win32':
            created = datetime.fromtimestamp(st.st_ctime)

        return created, datetime.fromtimestamp(st.st_mtime)

    def set_modified(self, path: Path, instant: datetime) -> None:
        ts = instant.timestamp()
        try:
            os.utime(path, (ts, ts))
        except OSError as e:
            raise WriteError(f"Cannot set modification time of {path}: {e}") from e

    def set_created(self, path: Path, instant: datetime) -> bool:
        """
        Sets the creation time. Only Windows exposes a writable creation time,
        so this returns False (and writes nothing) elsewhere.
        """
        if not self.supports_creation_time:
            return False
        try:
            _set_windows_creation_time(path, instant.timestamp())
        except OSError as e:
            raise WriteError(f"Cannot set creation time of {path}: {e}") from e
        return True

    def rename(self, src: Path, dst: Path) -> None:
        try:
            os.rename(src, dst)
        except OSError as e:
            raise WriteError(f"Cannot rename {src} -> {dst}: {e}") from e

    def exists(self, path: Path) -> bool:
        return path.exists()

    def same_file(self, a: Path, b: Path) -> bool:
        try:
            return os.path.samefile(a, b)
        except OSError:
            return False


def _set_windows_creation_time(path: Path, ts: float) -> None:
    import ctypes
    from ctypes import wintypes

    kernel32 = ctypes.WinDLL('kernel32', use_last_error=True)
    kernel32.CreateFileW.restype = wintypes.HANDLE

    # FILETIME counts 100ns intervals since 1601-01-01
    ticks = int((ts + 11644473600) * 10_000_000)
    ctime = wintypes.FILETIME(ticks & 0xFFFFFFFF, ticks >> 32)

    handle = kernel32.CreateFileW(
        str(path),
        0x0100,      # FILE_WRITE_ATTRIBUTES
        0x7,         # share read/write/delete
        None,
        3,           # OPEN_EXISTING
        0x02000000,  # FILE_FLAG_BACKUP_SEMANTICS
        None,
    )
    if handle in (None, wintypes.HANDLE(-1).value):
        raise ctypes.WinError(ctypes.get_last_error())
    try:
        if not kernel32.SetFileTime(handle, ctypes.byref(ctime), None, None):
            raise ctypes.WinError(ctypes.get_last_error())
    finally:
        kernel32.CloseHandle(handle)
