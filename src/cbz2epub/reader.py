"""Read a generated EPUB back and report its package structure.

Uses ebooklib to parse the package and PyYAML to render the report.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import ebooklib
import yaml
from ebooklib import epub

from .errors import ArchiveReadError, FilesystemError

logger = logging.getLogger(__name__)


@dataclass
class ManifestItem:
    id: str
    href: str
    media_type: str


@dataclass
class PackageSummary:
    """Structure of an EPUB package: metadata, page items and reading order."""

    path: Path
    title: str | None = None
    creator: str | None = None
    identifier: str | None = None
    items: list[ManifestItem] = field(default_factory=list)
    spine: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "file": self.path.name,
            "title": self.title,
            "creator": self.creator,
            "identifier": self.identifier,
            "manifest": [
                {"id": it.id, "href": it.href, "media_type": it.media_type}
                for it in self.items
            ],
            "spine": list(self.spine),
        }


def _first(book: epub.EpubBook, name: str) -> str | None:
    values = book.get_metadata("DC", name)
    if not values:
        return None
    value = values[0]
    return value[0] if isinstance(value, tuple) else value


def read_package(epub_path: str | Path) -> PackageSummary:
    """Parse `epub_path` with ebooklib and summarize its package document.

    Raises:
        ArchiveReadError: if the file cannot be parsed as an EPUB.
    """
    path = Path(epub_path)
    try:
        book = epub.read_epub(str(path), options={"ignore_ncx": True})
    except Exception as e:
        raise ArchiveReadError(f"Failed to load EPUB {path}: {e}") from e

    summary = PackageSummary(
        path=path,
        title=_first(book, "title"),
        creator=_first(book, "creator"),
        identifier=_first(book, "identifier"),
    )
    for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
        summary.items.append(
            ManifestItem(id=item.get_id(), href=item.get_name(), media_type=item.media_type)
        )
    summary.spine = [
        entry[0] if isinstance(entry, tuple) else entry for entry in book.spine
    ]
    logger.debug("read %s: %d item(s), %d spine ref(s)", path, len(summary.items), len(summary.spine))
    return summary


def dump_summary(summary: PackageSummary, output_path: Path | None = None) -> str:
    """Render `summary` as YAML; also write it to `output_path` when given.

    Raises:
        FilesystemError: if `output_path` cannot be written.
    """
    text = yaml.dump(
        summary.as_dict(),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    if output_path:
        try:
            with Path(output_path).open("w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise FilesystemError(f"Cannot write {output_path}: {e}") from e
        logger.info("Saved to: %s", output_path)
    return text
