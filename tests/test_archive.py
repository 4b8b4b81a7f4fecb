import os
import struct
import time
import zipfile
from pathlib import Path

from storage import ArchiveCodec, DirectBackend, FileHandle
from storage.archive import (
    EXTENDED_TIMESTAMP_TAG,
    dos_date_time,
    entry_mtime,
    extended_timestamp_extra,
    parse_extended_mtime,
)


def build_photos(root: Path) -> list[FileHandle]:
    photos = root / "photos"
    (photos / "empty").mkdir(parents=True)
    (photos / "trip").mkdir()
    (photos / "a.jpg").write_bytes(os.urandom(50_000))
    (photos / "trip" / "b.jpg").write_bytes(b"beach" * 1000)
    (root / "readme.txt").write_text("hello", encoding="utf-8")

    os.utime(photos / "a.jpg", (1_600_000_001, 1_600_000_001))
    os.utime(photos / "trip" / "b.jpg", (1_500_000_003.7, 1_500_000_003.7))
    os.utime(root / "readme.txt", (1_234_567_891, 1_234_567_891))
    return [FileHandle.from_path(photos), FileHandle.from_path(root / "readme.txt")]


def test_compress_extract_round_trip(tmp_path: Path) -> None:
    sources = build_photos(tmp_path / "src")
    archive_path = tmp_path / "out" / "photos.zip"
    archive_path.parent.mkdir()
    codec = ArchiveCodec(DirectBackend(), buffer_size=1024)

    assert codec.compress(sources, archive_path) is True

    with zipfile.ZipFile(archive_path) as archive:
        assert archive.namelist() == [
            "photos/a.jpg",
            "photos/empty/",
            "photos/trip/b.jpg",
            "readme.txt",
        ]
        assert archive.testzip() is None

    dest = tmp_path / "dest"
    assert codec.extract([archive_path], dest) is True

    src = tmp_path / "src"
    for relative in ("photos/a.jpg", "photos/trip/b.jpg", "readme.txt"):
        original = src / relative
        restored = dest / relative
        assert restored.read_bytes() == original.read_bytes()
        assert int(restored.stat().st_mtime) == int(original.stat().st_mtime)
    assert (dest / "photos" / "empty").is_dir()
    assert list((dest / "photos" / "empty").iterdir()) == []


def test_progress_counts_files_only(tmp_path: Path) -> None:
    sources = build_photos(tmp_path)
    seen: list[tuple[int, int, str]] = []
    codec = ArchiveCodec(
        DirectBackend(),
        on_progress=lambda counter, item, context: seen.append((counter.completed, counter.total, item.name)),
    )

    assert codec.compress(sources, tmp_path / "photos.zip") is True
    assert seen == [(0, 3, "a.jpg"), (1, 3, "b.jpg"), (2, 3, "readme.txt")]

    seen.clear()
    assert codec.extract([tmp_path / "photos.zip"], tmp_path / "dest") is True
    assert [total for _, total, _ in seen] == [4, 4, 4, 4]
    assert seen[1] == (1, 4, "empty")


def test_compress_skips_the_archive_it_is_writing(tmp_path: Path) -> None:
    sources = build_photos(tmp_path)
    archive_path = tmp_path / "photos" / "self.zip"

    assert ArchiveCodec(DirectBackend()).compress(sources[:1], archive_path) is True
    with zipfile.ZipFile(archive_path) as archive:
        assert "photos/self.zip" not in archive.namelist()


def test_compress_keeps_names_with_backslashes(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    notes.mkdir()
    (notes / "a\\b.txt").write_text("odd but legal", encoding="utf-8")
    archive_path = tmp_path / "notes.zip"

    assert ArchiveCodec(DirectBackend()).compress([FileHandle.from_path(notes)], archive_path) is True
    with zipfile.ZipFile(archive_path) as archive:
        assert archive.namelist() == ["notes/a\\b.txt"]
        assert archive.read("notes/a\\b.txt") == b"odd but legal"


def test_compression_level_applies_to_every_entry(tmp_path: Path) -> None:
    (tmp_path / "log.txt").write_bytes(b"".join(b"line %d of the log\n" % (i % 50) for i in range(20_000)))
    sources = [FileHandle.from_path(tmp_path / "log.txt")]
    stored, packed = tmp_path / "level0.zip", tmp_path / "level9.zip"

    assert ArchiveCodec(DirectBackend(), compression_level=0).compress(sources, stored) is True
    assert ArchiveCodec(DirectBackend(), compression_level=9).compress(sources, packed) is True

    with zipfile.ZipFile(stored) as archive:
        info = archive.getinfo("log.txt")
        assert info.compress_size >= info.file_size
    with zipfile.ZipFile(packed) as archive:
        info = archive.getinfo("log.txt")
        assert info.compress_size * 10 < info.file_size
        assert archive.read("log.txt") == (tmp_path / "log.txt").read_bytes()


def test_extract_stops_at_unsafe_entry(tmp_path: Path) -> None:
    archive_path = tmp_path / "evil.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("first.txt", "ok")
        archive.writestr("../escaped.txt", "nope")
        archive.writestr("later.txt", "never")

    dest = tmp_path / "dest"
    assert ArchiveCodec(DirectBackend()).extract([archive_path], dest) is False

    assert (dest / "first.txt").read_text(encoding="utf-8") == "ok"
    assert not (tmp_path / "escaped.txt").exists()
    assert not (dest / "later.txt").exists()


def test_extract_fails_when_any_archive_cannot_be_opened(tmp_path: Path) -> None:
    good = tmp_path / "good.zip"
    with zipfile.ZipFile(good, "w") as archive:
        archive.writestr("a.txt", "a")
    broken = tmp_path / "broken.zip"
    broken.write_bytes(b"not a zip at all")

    dest = tmp_path / "dest"
    assert ArchiveCodec(DirectBackend()).extract([good, broken], dest) is False
    assert not (dest / "a.txt").exists()


def test_extract_without_extended_timestamp_uses_dos_time(tmp_path: Path) -> None:
    archive_path = tmp_path / "plain.zip"
    info = zipfile.ZipInfo("plain.txt", date_time=(2020, 5, 17, 10, 30, 42))
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr(info, "plain")

    dest = tmp_path / "dest"
    assert ArchiveCodec(DirectBackend()).extract([archive_path], dest) is True

    expected = time.mktime((2020, 5, 17, 10, 30, 42, 0, 0, -1))
    assert int((dest / "plain.txt").stat().st_mtime) == int(expected)


def test_extended_timestamp_field_round_trip() -> None:
    extra = struct.pack("<HH", 0x000A, 4) + b"skip" + extended_timestamp_extra(1_700_000_000.9)

    assert parse_extended_mtime(extra) == 1_700_000_000
    assert parse_extended_mtime(b"") is None
    assert struct.unpack_from("<H", extended_timestamp_extra(0))[0] == EXTENDED_TIMESTAMP_TAG

    info = zipfile.ZipInfo("x.txt", date_time=dos_date_time(1_700_000_000))
    info.extra = extended_timestamp_extra(1_700_000_001)
    assert entry_mtime(info) == 1_700_000_001.0


def test_dos_time_is_clamped_to_1980() -> None:
    assert dos_date_time(0) == (1980, 1, 1, 0, 0, 0)
