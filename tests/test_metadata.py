import pytest
from pathlib import Path
from datetime import datetime, timezone

from hypothesis import given, strategies as st

from media_auditor import config
from media_auditor.metadata import extract as extract_module
from media_auditor.metadata.extract import (
    ExifCaptureDateProvider,
    ExifToolTagProvider,
    MediaInfoContainerDateProvider,
    parse_exif_tags,
    parse_flexible_date,
)
from media_auditor.metadata.resolver import ProvenanceClassifier, TimestampResolver
from media_auditor.models import MediaFile, Provenance, SourceTag, TimestampCandidate

from conftest import FakeFileSystem, RecordingTagProvider, StaticProvider


# Mock MediaInfo class structure
class MockTrack:
    def __init__(self, track_type="General", **kwargs):
        self.track_type = track_type
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockMediaInfo:
    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def parse(cls, path):
        return cls([
            MockTrack(track_type="Video", encoded_date="2001-01-01 00:00:00"),
            MockTrack(recorded_date="2023-01-01 12:00:00", encoded_date="2024-01-01 00:00:00"),
        ])


def test_video_metadata_extraction(monkeypatch, tmp_path):
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)

    vid = tmp_path / "test.mp4"
    vid.touch()

    assert MediaInfoContainerDateProvider().get_timestamp(vid) == datetime(2023, 1, 1, 12, 0, 0)


def test_container_provider_is_silent_on_failure(monkeypatch, tmp_path):
    class BrokenMediaInfo:
        @classmethod
        def parse(cls, path):
            raise RuntimeError("libmediainfo missing")

    def broken_exiftool(*args, **kwargs):
        raise FileNotFoundError("exiftool")

    monkeypatch.setattr(extract_module, "MediaInfo", BrokenMediaInfo)
    monkeypatch.setattr(extract_module, "run_exiftool", broken_exiftool)

    assert MediaInfoContainerDateProvider().get_timestamp(tmp_path / "x.mov") is None


def test_container_provider_falls_back_to_exiftool(monkeypatch, tmp_path):
    class EmptyMediaInfo:
        @classmethod
        def parse(cls, path):
            return MockMediaInfo([MockTrack()])

    monkeypatch.setattr(extract_module, "MediaInfo", EmptyMediaInfo)
    monkeypatch.setattr(extract_module, "run_exiftool",
                        lambda args, executable=None: {"CreateDate": "2019:05:04 03:02:01"})

    assert MediaInfoContainerDateProvider().get_timestamp(tmp_path / "x.mov") == datetime(2019, 5, 4, 3, 2, 1)


def test_capture_provider_on_non_exif_file(tmp_path):
    p = tmp_path / "plain.jpg"
    p.write_bytes(b"not really a jpeg")
    assert ExifCaptureDateProvider().get_timestamp(p) is None


def test_capture_provider_missing_file(tmp_path):
    assert ExifCaptureDateProvider().get_timestamp(tmp_path / "gone.jpg") is None


def test_parse_exif_tags_priority_and_subseconds():
    tags = {
        'EXIF DateTimeOriginal': '2018:07:06 05:04:03',
        'EXIF SubSecTimeOriginal': '42',
        'Image DateTime': '2020:01:01 00:00:00',
    }
    assert parse_exif_tags(tags) == datetime(2018, 7, 6, 5, 4, 3, 420000)


def test_parse_exif_tags_skips_blank_dates():
    tags = {
        'EXIF DateTimeOriginal': '0000:00:00 00:00:00',
        'Image DateTime': '2020:01:01 10:00:00',
    }
    assert parse_exif_tags(tags) == datetime(2020, 1, 1, 10, 0, 0)


def test_parse_flexible_date_formats():
    assert parse_flexible_date("2020-01-01T12:00:00") == datetime(2020, 1, 1, 12, 0, 0)
    assert parse_flexible_date("2020:01:01 12:00:00.55") == datetime(2020, 1, 1, 12, 0, 0)
    assert parse_flexible_date("garbage") is None
    assert parse_flexible_date("") is None


def test_parse_flexible_date_converts_utc_to_local():
    expected = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert parse_flexible_date("UTC 2021-03-04 05:06:07") == expected
    assert parse_flexible_date("2021-03-04 05:06:07 UTC") == expected


def test_parse_flexible_date_ignores_quicktime_epoch():
    assert parse_flexible_date("1904-01-01 00:00:00 UTC") is None


def test_tag_provider_without_exiftool_is_inert(monkeypatch, tmp_path):
    monkeypatch.setattr(extract_module.shutil, "which", lambda name: None)
    provider = ExifToolTagProvider()
    assert not provider.available
    assert provider.read_date_taken(tmp_path, "a.jpg") is None
    assert provider.write_date_taken(tmp_path, "a.jpg", datetime(2020, 1, 1)) is False


# --- Resolver ---

def _resolver(capture=None, container=None, tags=None, times=None):
    return TimestampResolver(
        capture_provider=StaticProvider(capture),
        container_provider=StaticProvider(container),
        tag_provider=tags,
        fs=FakeFileSystem(times or {}),
    )


def test_image_uses_capture_provider_only(tmp_path):
    resolver = _resolver(
        capture={"a": datetime(2019, 1, 1)},
        container={"a": datetime(2000, 1, 1)},
        times={"a": (datetime(2020, 1, 1), datetime(2021, 1, 1))},
    )
    res = resolver.resolve(MediaFile.from_path(tmp_path / "a.jpg"))

    sources = {c.source for c in res.candidates}
    assert SourceTag.CONTAINER_DATE not in sources
    assert SourceTag.CAPTURE_DATE in sources
    assert res.canonical == datetime(2019, 1, 1)


def test_container_uses_container_provider_only(tmp_path):
    resolver = _resolver(
        capture={"v": datetime(2000, 1, 1)},
        container={"v": datetime(2018, 1, 1)},
        times={"v": (datetime(2020, 1, 1), datetime(2021, 1, 1))},
    )
    res = resolver.resolve(MediaFile.from_path(tmp_path / "v.MOV"))

    assert res.canonical == datetime(2018, 1, 1)
    assert resolver.capture_provider.calls == []


def test_tag_provider_fills_missing_capture_date(tmp_path):
    tags = RecordingTagProvider({"a": datetime(2015, 5, 5)})
    resolver = _resolver(tags=tags, times={"a": (None, datetime(2021, 1, 1))})
    res = resolver.resolve(MediaFile.from_path(tmp_path / "a.jpg"))

    assert tags.reads == ["a.jpg"]
    assert TimestampCandidate(SourceTag.CAPTURE_DATE, datetime(2015, 5, 5)) in res.candidates
    assert res.canonical == datetime(2015, 5, 5)


def test_tag_provider_not_asked_when_capture_found(tmp_path):
    tags = RecordingTagProvider({"a": datetime(2015, 5, 5)})
    resolver = _resolver(capture={"a": datetime(2016, 1, 1)}, tags=tags,
                         times={"a": (None, datetime(2021, 1, 1))})
    resolver.resolve(MediaFile.from_path(tmp_path / "a.jpg"))
    assert tags.reads == []


def test_tag_provider_skipped_for_long_paths(tmp_path):
    tags = RecordingTagProvider({"a": datetime(2015, 5, 5)})
    deep = tmp_path / ("d" * (config.TAG_PATH_LIMIT + 10))
    resolver = _resolver(tags=tags, times={"a": (None, datetime(2021, 1, 1))})
    res = resolver.resolve(MediaFile.from_path(deep / "a.jpg"))

    assert tags.reads == []
    assert res.canonical == datetime(2021, 1, 1)


def test_fallback_scenario(tmp_path):
    resolver = _resolver(times={"img": (datetime(2020, 1, 1), datetime(2021, 6, 1))})
    res = resolver.resolve(MediaFile.from_path(tmp_path / "img.jpg"))

    assert res.canonical == datetime(2020, 1, 1)
    assert ProvenanceClassifier().classify(res.candidates) is Provenance.FALLBACK_ONLY


def test_missing_file_yields_no_filesystem_candidates(tmp_path):
    resolver = TimestampResolver(StaticProvider(), StaticProvider())
    res = resolver.resolve(MediaFile.from_path(tmp_path / "missing.jpg"))
    assert res.candidates == []
    assert res.canonical is None


instants = st.datetimes(min_value=datetime(1990, 1, 1), max_value=datetime(2030, 12, 31))


@given(st.lists(st.tuples(st.sampled_from(list(SourceTag)), instants), max_size=8))
def test_canonical_is_minimum_of_candidates(pairs):
    candidates = [TimestampCandidate(tag, dt) for tag, dt in pairs]
    oldest = TimestampResolver.select_oldest(candidates)
    if not candidates:
        assert oldest is None
    else:
        assert oldest == min(dt for _, dt in pairs)
        assert all(oldest <= c.instant for c in candidates)


# --- Provenance ---

D = datetime(2020, 1, 1)


@pytest.mark.parametrize(
    "sources,expected",
    [
        ({SourceTag.CAPTURE_DATE}, Provenance.EXIF_ONLY),
        ({SourceTag.CONTAINER_DATE}, Provenance.QUICKTIME_ONLY),
        ({SourceTag.FILESYSTEM_CREATED}, Provenance.FALLBACK_ONLY),
        ({SourceTag.FILESYSTEM_MODIFIED}, Provenance.FALLBACK_ONLY),
        ({SourceTag.FILESYSTEM_CREATED, SourceTag.FILESYSTEM_MODIFIED}, Provenance.FALLBACK_ONLY),
        ({SourceTag.CAPTURE_DATE, SourceTag.FILESYSTEM_MODIFIED}, Provenance.MIXED_SOURCES),
        ({SourceTag.CONTAINER_DATE, SourceTag.FILESYSTEM_CREATED}, Provenance.MIXED_SOURCES),
        ({SourceTag.CAPTURE_DATE, SourceTag.CONTAINER_DATE}, Provenance.MIXED_SOURCES),
        (set(SourceTag), Provenance.MIXED_SOURCES),
        (set(), Provenance.UNKNOWN),
    ],
)
def test_provenance_table(sources, expected):
    candidates = [TimestampCandidate(s, D) for s in sources]
    assert ProvenanceClassifier().classify(candidates) is expected


@given(st.sets(st.sampled_from(list(SourceTag))))
def test_provenance_is_a_function_of_present_sources(sources):
    classifier = ProvenanceClassifier()
    candidates = [TimestampCandidate(s, D) for s in sources]
    tag = classifier.classify(candidates)

    assert isinstance(tag, Provenance)
    # Duplicated candidates and ordering never change the answer
    assert classifier.classify(list(reversed(candidates)) * 2) is tag
