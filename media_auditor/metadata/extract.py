import json
import logging
import shutil
import subprocess
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import exifread
from pymediainfo import MediaInfo

from .. import config
from ..exceptions import ProviderError

# QuickTime stores "no date" as its epoch
QUICKTIME_EPOCH = datetime(1904, 1, 1)


class TimestampProvider(Protocol):
    """A source of one optional timestamp per file. Must never raise."""

    def get_timestamp(self, path: Path) -> Optional[datetime]:
        ...


class TagProvider(Protocol):
    """OS-level tagging source; a secondary capture date that can be written back."""

    def read_date_taken(self, directory: Path, filename: str) -> Optional[datetime]:
        ...

    def write_date_taken(self, directory: Path, filename: str, instant: datetime) -> bool:
        ...


class ExifCaptureDateProvider:
    """
    Capture date of image files via 'exifread' (fast, Python-native).
    """

    def get_timestamp(self, path: Path) -> Optional[datetime]:
        try:
            return self._read(path)
        except Exception as e:
            logging.debug(f"No capture date candidate for {path}: {e}")
            return None

    def _read(self, path: Path) -> Optional[datetime]:
        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            raise ProviderError(f"ExifRead failed: {e}") from e

        return parse_exif_tags(tags)


class MediaInfoContainerDateProvider:
    """
    Container date of video files.

    Strategies:
      - 'pymediainfo' General track (fast wrapper).
      - falls back to the 'exiftool' command line (robust, requires system install).
    """

    def get_timestamp(self, path: Path) -> Optional[datetime]:
        try:
            dt = self._extract_mediainfo(path)
            if dt:
                return dt
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        try:
            dt = self._extract_exiftool(path)
            if dt:
                return dt
        except Exception as e:
            # Only log at debug level to avoid spamming console if tool is missing
            logging.debug(f"ExifTool failed for {path}: {e}")

        logging.debug(f"No container date candidate for {path}")
        return None

    def _extract_mediainfo(self, path: Path) -> Optional[datetime]:
        mi = MediaInfo.parse(str(path))
        for track in mi.tracks:
            if track.track_type != "General":
                continue
            for field in config.MEDIAINFO_DATE_FIELDS:
                val = getattr(track, field, None)
                if val:
                    dt = parse_flexible_date(str(val))
                    if dt:
                        return dt
        return None

    def _extract_exiftool(self, path: Path) -> Optional[datetime]:
        tags = run_exiftool(["-j", "-n", str(path)])
        for field in config.EXIFTOOL_DATE_FIELDS:
            if tags.get(field):
                dt = parse_flexible_date(str(tags[field]))
                if dt:
                    return dt
        return None


class ExifToolTagProvider:
    """
    Reads and writes the DateTaken tag through the 'exiftool' command line.
    If exiftool is not installed the provider is inert: reads return None and
    writes return False.
    """

    def __init__(self, executable: Optional[str] = None):
        self.executable = executable or shutil.which("exiftool")
        if not self.executable:
            logging.info("exiftool not found on PATH; DateTaken tagging disabled.")

    @property
    def available(self) -> bool:
        return bool(self.executable)

    def read_date_taken(self, directory: Path, filename: str) -> Optional[datetime]:
        if not self.available:
            return None
        path = Path(directory) / filename
        try:
            tags = run_exiftool(["-j", "-n", f"-{config.EXIFTOOL_TAG}", str(path)], self.executable)
        except Exception as e:
            logging.debug(f"DateTaken read failed for {path}: {e}")
            return None
        value = tags.get(config.EXIFTOOL_TAG)
        return parse_flexible_date(str(value)) if value else None

    def write_date_taken(self, directory: Path, filename: str, instant: datetime) -> bool:
        if not self.available:
            return False
        path = Path(directory) / filename
        stamp = instant.strftime("%Y:%m:%d %H:%M:%S")
        cmd = [
            self.executable,
            "-overwrite_original",
            "-P",
            f"-{config.EXIFTOOL_TAG}={stamp}",
            str(path),
        ]
        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=config.EXTERNAL_TOOL_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logging.debug(f"DateTaken write failed for {path}: {e}")
            return False
        return True


def run_exiftool(args, executable: Optional[str] = None) -> Dict[str, Any]:
    """
    Wraps the 'exiftool' command line utility and returns the tags of the
    first (only) file as a dict.
    """
    cmd = [executable or "exiftool", *args]
    out = subprocess.check_output(
        cmd,
        stderr=subprocess.DEVNULL,
        text=True,
        timeout=config.EXTERNAL_TOOL_TIMEOUT,
    )
    data_list = json.loads(out)
    return data_list[0] if data_list else {}


def parse_exif_tags(tags) -> Optional[datetime]:
    """Picks the first parseable date from exifread tags, honouring sub-seconds."""
    for tag, subsec_tag in zip(config.DATE_TAGS, config.SUBSEC_TAGS):
        if tag not in tags:
            continue
        try:
            # EXIF format is usually "YYYY:MM:DD HH:MM:SS"
            dt_str = str(tags[tag]).strip().replace(':', '-', 2)
            dt = datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            continue

        subsec = str(tags[subsec_tag]).strip() if subsec_tag in tags else ""
        if subsec.isdigit():
            dt = dt.replace(microsecond=int(subsec[:3].ljust(3, '0')) * 1000)
        return dt
    return None


def parse_flexible_date(dt_str: str) -> Optional[datetime]:
    """
    Handles various date formats (ISO, UTC markers, Exiftool quirks).
    Returns a naive datetime in local time; values marked UTC or carrying an
    offset are converted.
    """
    if not dt_str:
        return None

    clean = dt_str.strip()
    is_utc = "UTC" in clean
    clean = clean.replace("UTC", "").strip()

    dt = None
    # 1. Try ISO format (e.g. 2020-01-01T12:00:00)
    try:
        dt = datetime.fromisoformat(clean)
    except ValueError:
        pass

    # 2. Try Standard EXIF style "YYYY:MM:DD HH:MM:SS"
    if dt is None:
        try:
            clean_exif = clean.replace(":", "-", 2)
            # Drop sub-second precision and offsets which strptime hates
            clean_exif = clean_exif[:19]
            dt = datetime.strptime(clean_exif, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None

    if dt.replace(tzinfo=None) <= QUICKTIME_EPOCH:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    elif is_utc:
        dt = dt.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    return dt
