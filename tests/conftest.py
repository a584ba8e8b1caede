import pytest
from datetime import datetime
from pathlib import Path

from media_auditor.scanning.filesystem import FileSystemAccessor

JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01"
PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\x0d"
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42"


class FakeFileSystem(FileSystemAccessor):
    """
    Real renames and existence checks, but timestamps come from a table keyed
    by file stem so tests control every candidate.
    """

    def __init__(self, times=None):
        self.times = times or {}
        self.modified_writes = []

    @property
    def supports_creation_time(self) -> bool:
        return False

    def read_times(self, path: Path):
        if path.stem in self.times:
            return self.times[path.stem]
        return super().read_times(path)

    def set_modified(self, path: Path, instant: datetime) -> None:
        self.modified_writes.append((path.name, instant))


class StaticProvider:
    """Timestamp provider returning a fixed value per file stem."""

    def __init__(self, values=None):
        self.values = values or {}
        self.calls = []

    def get_timestamp(self, path: Path):
        self.calls.append(path)
        return self.values.get(path.stem)


class RecordingTagProvider:
    def __init__(self, values=None):
        self.values = values or {}
        self.reads = []
        self.writes = []

    def read_date_taken(self, directory, filename):
        self.reads.append(filename)
        return self.values.get(Path(filename).stem)

    def write_date_taken(self, directory, filename, instant):
        self.writes.append((filename, instant))
        return True


@pytest.fixture
def make_file(tmp_path):
    """Creates a file under tmp_path with the given header bytes."""
    def _make(name, header=JPEG_HEADER, directory=None):
        folder = directory or tmp_path
        folder.mkdir(parents=True, exist_ok=True)
        p = folder / name
        p.write_bytes(header + b"\x00" * 64)
        return p
    return _make
