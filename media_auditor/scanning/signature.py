from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import ReadError


class SignatureDetector:
    """
    Classifies a file's leading bytes into a canonical format name.

    Checks run in a fixed priority order and the first match wins:
      - FF D8 -> jpeg, 89 50 -> png, 47 49 -> gif, II/MM -> tiff
      - 'ftyp' at offset 4 -> brand at offset 8 decides heic/mp4/mov
      - 'WEBP' at offset 8 -> webp
    Anything else (including a header shorter than 12 bytes) is no detection,
    in which case the declared extension is trusted.
    """

    def read_header(self, path: Path) -> bytes:
        try:
            with path.open('rb') as f:
                return f.read(config.HEADER_SIZE)
        except OSError as e:
            raise ReadError(f"Cannot read header of {path}: {e}") from e

    def detect(self, header: bytes) -> Optional[str]:
        if len(header) < config.HEADER_SIZE:
            return None

        lead = header[0:2]
        if lead == b'\xff\xd8':
            return 'jpeg'
        if lead == b'\x89\x50':
            return 'png'
        if lead == b'\x47\x49':
            return 'gif'
        if lead in (b'II', b'MM'):
            return 'tiff'

        if header[4:8] == b'ftyp':
            brand = header[8:12]
            if brand in config.HEIC_BRANDS:
                return 'heic'
            if brand in config.MP4_BRANDS:
                return 'mp4'
            if brand in config.QUICKTIME_BRANDS:
                return 'mov'
            # Unknown ISO brand: generic container
            return 'mp4'

        if header[8:12] == b'WEBP':
            return 'webp'

        return None

    def matches_extension(self, fmt: str, ext: str) -> bool:
        """True if `ext` is an accepted spelling of `fmt` (case-insensitive)."""
        ext = ext.lower()
        accepted = config.FORMAT_EXTENSIONS.get(fmt, {f".{fmt}"})
        return ext in accepted

    def preferred_extension(self, fmt: str) -> str:
        return config.PREFERRED_EXTENSIONS.get(fmt, f".{fmt}")
