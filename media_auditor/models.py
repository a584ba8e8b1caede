from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class SourceTag(Enum):
    CAPTURE_DATE = "CaptureDate"
    CONTAINER_DATE = "ContainerDate"
    FILESYSTEM_CREATED = "FilesystemCreated"
    FILESYSTEM_MODIFIED = "FilesystemModified"


class Provenance(Enum):
    EXIF_ONLY = "EXIF-only"
    QUICKTIME_ONLY = "QuickTime-only"
    FALLBACK_ONLY = "Fallback-only"
    MIXED_SOURCES = "Mixed-sources"
    UNKNOWN = "Unknown"


class ExecutionMode(Enum):
    APPLY = "apply"
    PREVIEW = "preview"

    @property
    def is_preview(self) -> bool:
        return self is ExecutionMode.PREVIEW


@dataclass
class MediaFile:
    """
    A file being audited. Owned by exactly one worker.

    `path` and `ext` are updated in place when the signature check renames the
    file to its real extension. In preview mode the file stays where it is and
    `pending_name` holds the name the extension fix would have given it.
    """
    path: Path
    ext: str
    header: bytes = b""
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    pending_name: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> "MediaFile":
        path = Path(path).absolute()
        return cls(path=path, ext=path.suffix)

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def planned_path(self) -> Path:
        """Where the file is, or would be once a previewed extension fix lands."""
        if self.pending_name:
            return self.path.with_name(self.pending_name)
        return self.path


@dataclass(frozen=True)
class TimestampCandidate:
    source: SourceTag
    instant: datetime


@dataclass
class TimestampResolution:
    candidates: List[TimestampCandidate]
    canonical: Optional[datetime]


@dataclass
class RenamePlan:
    directory: Path
    base_name: str
    ext: str
    suffix: Optional[int] = None

    @property
    def target_name(self) -> str:
        if self.suffix:
            return f"{self.base_name}.{self.suffix:03d}{self.ext}"
        return f"{self.base_name}{self.ext}"

    @property
    def target_path(self) -> Path:
        return self.directory / self.target_name


@dataclass
class FileOutcome:
    """
    Result value a worker hands back for one file; never an exception.

    `actions` lists mutations (applied, or only intended in preview mode).
    `errors` holds failures: a terminal one sets state to 'failed', while a
    failed extension fix or timestamp write is recorded and the file carries on.
    """
    source_path: Path
    state: str = "done"     # done/skipped/failed
    final_path: Optional[Path] = None
    detected_format: Optional[str] = None
    canonical: Optional[datetime] = None
    provenance: Optional[Provenance] = None
    actions: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state == "failed"

    def fail(self, message: str):
        self.state = "failed"
        self.errors.append(message)


@dataclass
class BatchResult:
    counters: Dict[str, int]
    total: int
    elapsed_sec: float
    interrupted: bool = False
