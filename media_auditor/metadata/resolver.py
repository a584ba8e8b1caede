import logging
from datetime import datetime
from typing import Iterable, List, Optional

from .. import config
from ..exceptions import PathTooLong, ReadError
from ..models import MediaFile, Provenance, SourceTag, TimestampCandidate, TimestampResolution
from ..scanning.filesystem import FileSystemAccessor
from .extract import TagProvider, TimestampProvider


def is_container(ext: str) -> bool:
    return ext.lower() in config.CONTAINER_EXTS


def check_tag_path(path) -> None:
    if len(str(path)) > config.TAG_PATH_LIMIT:
        raise PathTooLong(f"Path longer than {config.TAG_PATH_LIMIT} characters: {path}")


class TimestampResolver:
    """
    Gathers every timestamp candidate for a file and picks the oldest.

    Image-like files ask the capture-date provider (then, if that found
    nothing, the OS tagging provider); container files ask the container-date
    provider. Filesystem created/modified times are always added when the OS
    reports them.
    """

    def __init__(self,
                 capture_provider: TimestampProvider,
                 container_provider: TimestampProvider,
                 tag_provider: Optional[TagProvider] = None,
                 fs: Optional[FileSystemAccessor] = None):
        self.capture_provider = capture_provider
        self.container_provider = container_provider
        self.tag_provider = tag_provider
        self.fs = fs or FileSystemAccessor()

    def resolve(self, media_file: MediaFile) -> TimestampResolution:
        candidates = self.collect(media_file)
        return TimestampResolution(candidates=candidates, canonical=self.select_oldest(candidates))

    def collect(self, media_file: MediaFile) -> List[TimestampCandidate]:
        candidates: List[TimestampCandidate] = []
        path = media_file.path

        if is_container(media_file.ext):
            dt = self.container_provider.get_timestamp(path)
            if dt:
                candidates.append(TimestampCandidate(SourceTag.CONTAINER_DATE, dt))
        else:
            dt = self.capture_provider.get_timestamp(path)
            if dt is None:
                dt = self._read_tag(media_file)
            if dt:
                candidates.append(TimestampCandidate(SourceTag.CAPTURE_DATE, dt))

        try:
            created, modified = self.fs.read_times(path)
        except ReadError as e:
            logging.warning(f"No filesystem timestamps for {path}: {e}")
            created, modified = None, None

        media_file.created = created
        media_file.modified = modified
        if created:
            candidates.append(TimestampCandidate(SourceTag.FILESYSTEM_CREATED, created))
        if modified:
            candidates.append(TimestampCandidate(SourceTag.FILESYSTEM_MODIFIED, modified))

        return candidates

    def _read_tag(self, media_file: MediaFile) -> Optional[datetime]:
        if self.tag_provider is None:
            return None
        try:
            check_tag_path(media_file.path)
        except PathTooLong as e:
            logging.debug(f"Skipping DateTaken lookup: {e}")
            return None
        return self.tag_provider.read_date_taken(media_file.directory, media_file.path.name)

    @staticmethod
    def select_oldest(candidates: Iterable[TimestampCandidate]) -> Optional[datetime]:
        instants = [c.instant for c in candidates]
        return min(instants) if instants else None


class ProvenanceClassifier:
    """
    Labels which combination of sources produced a file's candidates.

    Filesystem candidates exist for practically every file, so EXIF-only,
    QuickTime-only and Unknown only come up when the filesystem read itself
    failed.
    """

    def classify(self, candidates: Iterable[TimestampCandidate]) -> Provenance:
        sources = {c.source for c in candidates}
        capture = SourceTag.CAPTURE_DATE in sources
        container = SourceTag.CONTAINER_DATE in sources
        filesystem = bool(sources & {SourceTag.FILESYSTEM_CREATED, SourceTag.FILESYSTEM_MODIFIED})

        if capture or container:
            if filesystem or (capture and container):
                return Provenance.MIXED_SOURCES
            return Provenance.EXIF_ONLY if capture else Provenance.QUICKTIME_ONLY
        if filesystem:
            return Provenance.FALLBACK_ONLY
        return Provenance.UNKNOWN
