import shutil
from pathlib import Path

import pytest

from cbz2epub import extractor
from cbz2epub.errors import ArchiveReadError, DuplicatePageIdError, FilesystemError
from cbz2epub.extractor import COPY_BUFFER_SIZE, extract, page_id_for

from conftest import image_bytes, write_cbz


def test_extract_keeps_archive_order_and_paths(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [
        ("b.jpg", b"bbb"),
        ("a.png", b"aa"),
        ("sub/", None),
        ("sub/c.jpg", b"c"),
    ])
    dest = tmp_path / "out"
    dest.mkdir()

    pages = extract(src, dest)

    assert [p.page_id for p in pages] == ["b", "a", "c"]
    assert [p.archive_name for p in pages] == ["b.jpg", "a.png", "sub/c.jpg"]
    assert (dest / "b.jpg").read_bytes() == b"bbb"
    assert (dest / "sub" / "c.jpg").read_bytes() == b"c"
    assert pages[2].path == dest / "sub" / "c.jpg"


def test_directory_entries_are_created_but_not_pages(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [("empty/", None), ("nested/deeper/", None)])
    dest = tmp_path / "out"
    dest.mkdir()

    pages = extract(src, dest)

    assert pages == []
    assert (dest / "empty").is_dir()
    assert (dest / "nested" / "deeper").is_dir()


def test_intermediate_directories_created_without_dir_entries(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [("x/y/001.jpg", b"img")])
    dest = tmp_path / "out"
    dest.mkdir()

    pages = extract(src, dest)

    assert pages[0].page_id == "001"
    assert (dest / "x" / "y" / "001.jpg").exists()


def test_missing_archive(tmp_path: Path):
    with pytest.raises(ArchiveReadError):
        extract(tmp_path / "nope.cbz", tmp_path)


def test_not_a_zip(tmp_path: Path):
    bad = tmp_path / "bad.cbz"
    bad.write_bytes(b"not a zip")
    with pytest.raises(ArchiveReadError, match="Bad zip file"):
        extract(bad, tmp_path)


def test_unsafe_path_rejected(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [("../evil.txt", b"gotcha")])
    dest = tmp_path / "out"
    dest.mkdir()

    with pytest.raises(ArchiveReadError, match="Unsafe path"):
        extract(src, dest)
    assert not (tmp_path / "evil.txt").exists()


def test_duplicate_page_id_rejected_before_second_write(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [
        ("cover.jpg", image_bytes("JPEG")),
        ("cover.png", image_bytes("PNG")),
    ])
    dest = tmp_path / "out"
    dest.mkdir()

    with pytest.raises(DuplicatePageIdError) as excinfo:
        extract(src, dest)

    err = excinfo.value
    assert isinstance(err, ArchiveReadError)
    assert err.page_id == "cover"
    assert (err.first, err.second) == ("cover.jpg", "cover.png")
    assert not (dest / "cover.png").exists()


def test_same_base_name_in_different_folders_collides(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [("a/001.jpg", b"1"), ("b/001.jpg", b"2")])
    dest = tmp_path / "out"
    dest.mkdir()

    with pytest.raises(DuplicatePageIdError):
        extract(src, dest)


def test_destination_not_a_directory(tmp_path: Path):
    src = write_cbz(tmp_path / "c.cbz", [("001.jpg", b"img")])
    dest = tmp_path / "file"
    dest.write_text("x")

    with pytest.raises(FilesystemError):
        extract(src, dest)


def test_copy_uses_bounded_buffer(tmp_path: Path, monkeypatch):
    calls = []
    real = shutil.copyfileobj

    def spy(fsrc, fdst, length=0):
        calls.append(length)
        return real(fsrc, fdst, length)

    monkeypatch.setattr(extractor.shutil, "copyfileobj", spy)
    src = write_cbz(tmp_path / "c.cbz", [("001.jpg", b"x" * (COPY_BUFFER_SIZE * 3))])
    dest = tmp_path / "out"
    dest.mkdir()

    extract(src, dest)

    assert calls == [COPY_BUFFER_SIZE]
    assert (dest / "001.jpg").stat().st_size == COPY_BUFFER_SIZE * 3


@pytest.mark.parametrize("name,expected", [
    ("page1.jpg", "page1"),
    ("dir/page2.png", "page2"),
    ("noext", "noext"),
    ("cover.v2.webp", "cover.v2"),
])
def test_page_id_for(name, expected):
    assert page_id_for(name) == expected
