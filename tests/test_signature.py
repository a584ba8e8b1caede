import pytest
from hypothesis import given, strategies as st

from media_auditor.exceptions import ReadError
from media_auditor.scanning.signature import SignatureDetector


@pytest.mark.parametrize(
    "header,expected",
    [
        (b"\xff\xd8\xff\xe1" + b"\x00" * 8, "jpeg"),
        (b"\x89PNG\r\n\x1a\n\x00\x00\x00\x00", "png"),
        (b"GIF89a" + b"\x00" * 6, "gif"),
        (b"II*\x00" + b"\x00" * 8, "tiff"),
        (b"MM\x00*" + b"\x00" * 8, "tiff"),
        (b"\x00\x00\x00\x18ftypheic", "heic"),
        (b"\x00\x00\x00\x18ftypmif1", "heic"),
        (b"\x00\x00\x00\x18ftypmp41", "mp4"),
        (b"\x00\x00\x00\x18ftypmp42", "mp4"),
        (b"\x00\x00\x00\x14ftypqt  ", "mov"),
        (b"\x00\x00\x00\x18ftypisom", "mp4"),
        (b"RIFF\x24\x00\x00\x00WEBP", "webp"),
        (b"RIFF\x24\x00\x00\x00AVI ", None),
        (b"\x1aE\xdf\xa3" + b"\x00" * 8, None),
    ],
)
def test_detect(header, expected):
    assert SignatureDetector().detect(header) == expected


def test_short_header_is_no_match():
    detector = SignatureDetector()
    assert detector.detect(b"") is None
    assert detector.detect(b"\xff\xd8") is None
    assert detector.detect(b"\xff\xd8\xff\xe0\x00\x10JFIF\x00") is None


def test_priority_first_match_wins():
    # Leading FF D8 outranks an ftyp box further in
    header = b"\xff\xd8\x00\x00ftypqt  "
    assert SignatureDetector().detect(header) == "jpeg"


@pytest.mark.parametrize(
    "fmt,ext,expected",
    [
        ("jpeg", ".jpg", True),
        ("jpeg", ".JPEG", True),
        ("jpeg", ".png", False),
        ("tiff", ".tif", True),
        ("heic", ".HEIF", True),
        ("mov", ".qt", True),
        ("mp4", ".mov", False),
        ("webp", ".webp", True),
    ],
)
def test_matches_extension(fmt, ext, expected):
    assert SignatureDetector().matches_extension(fmt, ext) is expected


def test_preferred_extension():
    detector = SignatureDetector()
    assert detector.preferred_extension("jpeg") == ".jpg"
    assert detector.preferred_extension("png") == ".png"
    assert detector.preferred_extension("mov") == ".mov"


def test_read_header(tmp_path):
    p = tmp_path / "a.jpg"
    p.write_bytes(b"\xff\xd8" + b"x" * 100)
    assert SignatureDetector().read_header(p) == b"\xff\xd8" + b"x" * 10


def test_read_header_missing_file(tmp_path):
    with pytest.raises(ReadError):
        SignatureDetector().read_header(tmp_path / "missing.jpg")


@given(st.binary(min_size=0, max_size=32))
def test_detection_depends_only_on_first_12_bytes(data):
    detector = SignatureDetector()
    first = detector.detect(data)
    # Same call twice, and trailing bytes beyond 12 never matter
    assert detector.detect(data) == first
    if len(data) >= 12:
        assert detector.detect(data[:12] + b"\xffextra") == first
