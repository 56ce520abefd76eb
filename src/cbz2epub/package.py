"""EPUB package assembly.

Writes the target zip in a fixed order: the uncompressed `mimetype` marker,
the container descriptor, the image and XHTML entries of every page, then the
package document (manifest and spine) listing those pages.
"""
from __future__ import annotations

import logging
import uuid
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from lxml import etree

from .errors import ConversionError, PackageWriteError
from .pages import PAGE_MEDIA_TYPE, image_path, page_href, page_path
from .types_ import PageResource

logger = logging.getLogger(__name__)

MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
CONTENT_DIR = "OPS"
CONTENT_OPF_PATH = f"{CONTENT_DIR}/content.opf"
OPF_MEDIA_TYPE = "application/oebps-package+xml"

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"

BOOK_TITLE = "Converted CBZ"
BOOK_CREATOR = "Unknown Author"
BOOK_LANGUAGE = "en"
IDENTIFIER_ID = "bookid"


def _serialize(root) -> bytes:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def container_xml() -> bytes:
    """Return the `META-INF/container.xml` document pointing at the package document."""
    container = etree.Element(
        f"{{{CONTAINER_NS}}}container", nsmap={None: CONTAINER_NS}, version="1.0"
    )
    rootfiles = etree.SubElement(container, f"{{{CONTAINER_NS}}}rootfiles")
    etree.SubElement(
        rootfiles,
        f"{{{CONTAINER_NS}}}rootfile",
        {"full-path": CONTENT_OPF_PATH, "media-type": OPF_MEDIA_TYPE},
    )
    return _serialize(container)


def content_opf(
    page_ids: Sequence[str],
    *,
    identifier: Optional[str] = None,
    modified: Optional[datetime] = None,
) -> bytes:
    """Return the package document for `page_ids`.

    The manifest holds one XHTML item per page and the spine references
    every item, both in the order of `page_ids`.

    Args:
        page_ids: page ids in reading order.
        identifier: book identifier; a random `urn:uuid:` when omitted.
        modified: `dcterms:modified` timestamp; now (UTC) when omitted.
    """
    if identifier is None:
        identifier = f"urn:uuid:{uuid.uuid4()}"
    if modified is None:
        modified = datetime.now(timezone.utc)

    package = etree.Element(
        f"{{{OPF_NS}}}package",
        nsmap={None: OPF_NS},
        version="3.0",
        attrib={"unique-identifier": IDENTIFIER_ID},
    )

    metadata = etree.SubElement(package, f"{{{OPF_NS}}}metadata", nsmap={"dc": DC_NS})
    ident = etree.SubElement(metadata, f"{{{DC_NS}}}identifier", id=IDENTIFIER_ID)
    ident.text = identifier
    for tag, value in (("title", BOOK_TITLE), ("creator", BOOK_CREATOR), ("language", BOOK_LANGUAGE)):
        etree.SubElement(metadata, f"{{{DC_NS}}}{tag}").text = value
    meta = etree.SubElement(metadata, f"{{{OPF_NS}}}meta", property="dcterms:modified")
    meta.text = modified.strftime("%Y-%m-%dT%H:%M:%SZ")

    manifest = etree.SubElement(package, f"{{{OPF_NS}}}manifest")
    spine = etree.SubElement(package, f"{{{OPF_NS}}}spine")
    for page_id in page_ids:
        etree.SubElement(
            manifest,
            f"{{{OPF_NS}}}item",
            {"id": page_id, "href": page_href(page_id), "media-type": PAGE_MEDIA_TYPE},
        )
        etree.SubElement(spine, f"{{{OPF_NS}}}itemref", idref=page_id)

    return _serialize(package)


def assemble(pages: Iterable[PageResource], output_path: str | Path) -> None:
    """Write the EPUB package for `pages` to `output_path`.

    `pages` is consumed lazily, so a generator that transforms one image at a
    time keeps a single page in memory. Exceptions raised by the generator
    propagate unchanged.

    A partially written file is left in place on failure.

    Raises:
        PackageWriteError: on any I/O failure while creating or writing the
            archive, or when a page id appears twice.
    """
    page_ids: List[str] = []
    seen: Set[str] = set()
    try:
        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as z:
            z.writestr("mimetype", MIMETYPE, compress_type=zipfile.ZIP_STORED)
            z.writestr(CONTAINER_PATH, container_xml())

            for page in pages:
                if page.page_id in seen:
                    raise PackageWriteError(f"duplicate page id in package: {page.page_id}")
                seen.add(page.page_id)

                z.writestr(f"{CONTENT_DIR}/{image_path(page.page_id)}", page.image_bytes)
                z.writestr(f"{CONTENT_DIR}/{page_path(page.page_id)}", page.markup_bytes)
                page_ids.append(page.page_id)
                logger.debug("packaged page %s", page.page_id)

            z.writestr(CONTENT_OPF_PATH, content_opf(page_ids))
    except ConversionError:
        raise
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise PackageWriteError(f"Cannot write {output_path}: {e}") from e

    logger.debug("wrote %s with %d page(s)", output_path, len(page_ids))
