"""Archive extraction: stream every member of a `.cbz` into a directory.

Members are processed one at a time in archive order and copied through a
bounded buffer, so the archive is never held in memory. The returned list of
pages is the reading order used by the rest of the pipeline.
"""
from __future__ import annotations

import logging
import os
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Dict, List

from .errors import ArchiveReadError, DuplicatePageIdError, FilesystemError
from .types_ import ExtractedPage

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 64 * 1024


def page_id_for(member_name: str) -> str:
    """Return the page id of an archive member: base name without extension.

    Examples:
    >>> page_id_for('page1.jpg')
    'page1'
    >>> page_id_for('chapter 1/010.png')
    '010'
    >>> page_id_for('cover.v2.webp')
    'cover.v2'
    """
    base = PurePosixPath(member_name.replace("\\", "/")).name
    return os.path.splitext(base)[0]


def _is_unsafe(member_name: str) -> bool:
    name = member_name.replace("\\", "/")
    parts = name.split("/")
    return (
        ".." in parts
        or name.startswith("/")
        or bool(PureWindowsPath(member_name).drive)
    )


def _copy_member(z: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> None:
    try:
        src = z.open(info)
    except (zipfile.BadZipFile, RuntimeError, NotImplementedError) as e:
        raise ArchiveReadError(f"Cannot read {info.filename}: {e}") from e

    with src:
        try:
            dst = open(target, "wb")
        except OSError as e:
            raise FilesystemError(f"Cannot create {target}: {e}") from e
        with dst:
            try:
                shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
            except (zipfile.BadZipFile, zlib.error, EOFError) as e:
                raise ArchiveReadError(f"Corrupt entry {info.filename}: {e}") from e
            except OSError as e:
                raise FilesystemError(f"Cannot write {target}: {e}") from e


def extract(source_archive: str | Path, destination_dir: str | Path) -> List[ExtractedPage]:
    """Extract `source_archive` into `destination_dir`.

    Directory members are recreated; file members are written below
    `destination_dir` at their relative path, creating parent directories as
    needed.

    Args:
        source_archive: path to the `.cbz` (zip) file.
        destination_dir: existing directory receiving the extracted tree.

    Returns:
        List[ExtractedPage]: one item per file member, in archive order.

    Raises:
        ArchiveReadError: if the archive cannot be opened, is not a zip, holds
            an unsafe member path or a corrupt member.
        DuplicatePageIdError: if two file members share a page id
            (e.g. `cover.jpg` and `cover.png`). Raised before the second
            member is written.
        FilesystemError: if a destination file or directory cannot be created.
    """
    destination = Path(destination_dir)
    pages: List[ExtractedPage] = []
    seen: Dict[str, str] = {}

    try:
        z = zipfile.ZipFile(source_archive, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveReadError(f"Bad zip file: {source_archive}") from e
    except OSError as e:
        raise ArchiveReadError(f"Cannot open {source_archive}: {e}") from e

    with z:
        for info in z.infolist():
            member = info.filename
            if _is_unsafe(member):
                raise ArchiveReadError(f"Unsafe path in archive: {member}")

            target = destination.joinpath(*PurePosixPath(member.replace("\\", "/")).parts)

            if info.is_dir():
                logger.debug("mkdir %s", target)
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise FilesystemError(f"Cannot create {target}: {e}") from e
                continue

            page_id = page_id_for(member)
            if page_id in seen:
                raise DuplicatePageIdError(page_id, seen[page_id], member)
            seen[page_id] = member

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f"Cannot create {target.parent}: {e}") from e

            _copy_member(z, info, target)
            logger.debug("extracted %s -> %s", member, target)
            pages.append(ExtractedPage(page_id=page_id, archive_name=member, path=target))

    logger.debug("extracted %d page(s) from %s", len(pages), source_archive)
    return pages
