"""cbz2epub: repackage comic archives (.cbz) as EPUB books.

Public API:
- convert(source_path, destination_path, width, height) -> Path

Each page image of the archive is stretched to `width` x `height`, re-encoded
as JPEG and wrapped in its own XHTML page; pages keep the archive order.
"""
from .converter import convert, convert_archive, default_output_path
from .errors import (
    ArchiveReadError,
    ConversionError,
    DuplicatePageIdError,
    FilesystemError,
    ImageDecodeError,
    InvalidDimensionsError,
    PackageWriteError,
)

__all__ = [
    'convert',
    'convert_archive',
    'default_output_path',
    'ConversionError',
    'ArchiveReadError',
    'DuplicatePageIdError',
    'FilesystemError',
    'ImageDecodeError',
    'InvalidDimensionsError',
    'PackageWriteError',
]
