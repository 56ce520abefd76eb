from __future__ import annotations

from pathlib import Path
from typing import NamedTuple

from .errors import InvalidDimensionsError


class ExtractedPage(NamedTuple):
    """A file entry extracted from the source archive.

    `page_id` is the entry base name without its extension, `archive_name`
    the original member name and `path` the extracted file on disk.
    """

    page_id: str
    archive_name: str
    path: Path


class PageResource(NamedTuple):
    """Encoded image and XHTML page for one page id."""

    page_id: str
    image_bytes: bytes
    markup_bytes: bytes


class Dimensions(NamedTuple):
    """Target page size in pixels.

    >>> Dimensions(1072, 1448).validate()
    Dimensions(width=1072, height=1448)
    """

    width: int
    height: int

    def validate(self) -> "Dimensions":
        validate_dimensions(self.width, self.height)
        return self


def validate_dimensions(width: int, height: int) -> None:
    """Raise `InvalidDimensionsError` unless both values are positive ints.

    >>> validate_dimensions(800, 1200)
    >>> validate_dimensions(0, 10)
    Traceback (most recent call last):
    ...
    cbz2epub.errors.InvalidDimensionsError: invalid dimensions 0x10: width and height must be positive integers
    """
    for value in (width, height):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidDimensionsError(
                f"invalid dimensions {width}x{height}: "
                "width and height must be positive integers"
            )
