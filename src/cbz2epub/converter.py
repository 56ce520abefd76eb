"""Conversion entry point: `.cbz` archive in, `.epub` package out."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List

from .errors import ArchiveReadError
from .extractor import extract
from .imaging import transform
from .package import assemble
from .pages import build_page
from .types_ import Dimensions, ExtractedPage, PageResource
from .workspace import scratch_workspace

logger = logging.getLogger(__name__)

EPUB_SUFFIX = ".epub"


def default_output_path(source: str | Path) -> Path:
    """Return the default destination: `source` with its suffix replaced by `.epub`.

    Example:
    >>> default_output_path('/comics/Berserk v01.cbz').as_posix()
    '/comics/Berserk v01.epub'
    """
    return Path(source).with_suffix(EPUB_SUFFIX)


def _iter_pages(pages: List[ExtractedPage], size: Dimensions) -> Iterator[PageResource]:
    total = len(pages)
    for index, page in enumerate(pages, 1):
        logger.debug("[%d/%d] transforming %s", index, total, page.archive_name)
        raster = transform(page.path, size.width, size.height)
        yield build_page(page.page_id, raster)


def convert(source_path: str | Path, destination_path: str | Path, width: int, height: int) -> Path:
    """Convert the comic archive at `source_path` into an EPUB at `destination_path`.

    Every file entry of the archive becomes one page, in archive order; each
    image is stretched to exactly `width` x `height` and re-encoded as JPEG.

    Args:
        source_path: `.cbz` (zip) archive of page images.
        destination_path: EPUB file to create (overwritten if present).
        width: target page width in pixels.
        height: target page height in pixels.

    Returns:
        Path: the destination path.

    Raises:
        InvalidDimensionsError: before anything is read or written.
        ArchiveReadError: missing/corrupt source, or colliding page ids.
        FilesystemError: the scratch workspace cannot be populated.
        ImageDecodeError: an entry is not a decodable image.
        PackageWriteError: the EPUB cannot be written.

    The scratch workspace is removed on every exit path. If writing fails,
    a destination file created by this call is removed; a file that existed
    before is left as is.
    """
    size = Dimensions(width, height).validate()

    source = Path(source_path)
    destination = Path(destination_path)
    if not source.is_file():
        raise ArchiveReadError(f"Source archive not found: {source}")

    logger.info("converting %s -> %s (%dx%d)", source, destination, width, height)

    with scratch_workspace() as workspace:
        pages = extract(source, workspace)
        logger.info("%s: %d page(s)", source.name, len(pages))
        preexisting = destination.exists()
        try:
            assemble(_iter_pages(pages, size), destination)
        except Exception:
            if not preexisting:
                _discard_partial(destination)
            raise

    logger.info("generated: %s", destination)
    return destination


def _discard_partial(path: Path) -> None:
    try:
        path.unlink()
        logger.debug("removed partial output %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("could not remove partial output %s: %s", path, e)


def convert_archive(
    source: str | Path,
    out_path: str | Path | None = None,
    *,
    width: int,
    height: int,
    dry_run: bool = False,
) -> Path:
    """Convert `source`, defaulting the destination to a sibling `.epub`.

    In dry-run mode nothing is read or written; the planned destination is
    returned.
    """
    out = Path(out_path) if out_path is not None else default_output_path(source)
    if dry_run:
        Dimensions(width, height).validate()
        logger.info("Dry run: would convert %s -> %s (%dx%d)", source, out, width, height)
        return out
    return convert(source, out, width, height)
