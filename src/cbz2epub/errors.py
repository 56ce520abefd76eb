"""Error taxonomy for the conversion pipeline.

Every stage raises one of these; none of them is caught for recovery inside
the pipeline. The CLI and the batch worker turn them into exit codes.
"""
from __future__ import annotations


class ConversionError(RuntimeError):
    """Base class for every failure raised by the pipeline."""


class ArchiveReadError(ConversionError):
    """The source archive is missing, unreadable or not a valid zip."""


class DuplicatePageIdError(ArchiveReadError):
    """Two archive entries map to the same page id once extensions are stripped."""

    def __init__(self, page_id: str, first: str, second: str):
        super().__init__(
            f"Duplicate page id {page_id!r}: {first!r} and {second!r}"
        )
        self.page_id = page_id
        self.first = first
        self.second = second


class FilesystemError(ConversionError, OSError):
    """A scratch or output path could not be created."""


class ImageDecodeError(ConversionError):
    """An archive entry is not a decodable raster image."""


class InvalidDimensionsError(ConversionError, ValueError):
    """Target width or height is not a positive integer."""


class PackageWriteError(ConversionError):
    """An I/O failure happened while writing the EPUB package."""
