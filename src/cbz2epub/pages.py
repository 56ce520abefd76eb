"""Page building: JPEG-encode a page raster and wrap it in an XHTML page."""
from __future__ import annotations

import io
import logging
from urllib.parse import quote

from lxml import etree
from PIL import Image

from .errors import ImageDecodeError
from .types_ import PageResource

logger = logging.getLogger(__name__)

XHTML_NS = "http://www.w3.org/1999/xhtml"

JPEG_QUALITY = 90
IMAGE_EXTENSION = ".jpg"
IMAGE_MEDIA_TYPE = "image/jpeg"
PAGE_MEDIA_TYPE = "application/xhtml+xml"
PAGE_TITLE = "Image Page"

IMAGES_DIR = "images"
PAGES_DIR = "pages"


def image_path(page_id: str) -> str:
    """Zip entry name of the page image, relative to the content directory."""
    return f"{IMAGES_DIR}/{page_id}{IMAGE_EXTENSION}"


def page_path(page_id: str) -> str:
    """Zip entry name of the XHTML page, relative to the content directory."""
    return f"{PAGES_DIR}/{page_id}.xhtml"


def image_href(page_id: str) -> str:
    """URL of the page image, relative to the package document.

    Reserved characters are percent-encoded so the reference resolves to the
    unescaped entry name.

    >>> image_href('page1')
    'images/page1.jpg'
    >>> image_href('ch1#001')
    'images/ch1%23001.jpg'
    """
    return quote(image_path(page_id))


def page_href(page_id: str) -> str:
    """URL of the XHTML page, relative to the package document.

    >>> page_href('a%41')
    'pages/a%2541.xhtml'
    """
    return quote(page_path(page_id))


def encode_image(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    try:
        image.save(buf, "JPEG", quality=JPEG_QUALITY)
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Cannot encode page image: {e}") from e
    return buf.getvalue()


def page_markup(page_id: str) -> bytes:
    """Return the XHTML document showing the image of `page_id`."""
    html = etree.Element(f"{{{XHTML_NS}}}html", nsmap={None: XHTML_NS})
    head = etree.SubElement(html, f"{{{XHTML_NS}}}head")
    title = etree.SubElement(head, f"{{{XHTML_NS}}}title")
    title.text = PAGE_TITLE
    body = etree.SubElement(html, f"{{{XHTML_NS}}}body")
    block = etree.SubElement(body, f"{{{XHTML_NS}}}div")
    etree.SubElement(
        block,
        f"{{{XHTML_NS}}}img",
        src=f"../{image_href(page_id)}",
        alt="",
    )
    return etree.tostring(
        html,
        xml_declaration=True,
        encoding="UTF-8",
        doctype="<!DOCTYPE html>",
        pretty_print=True,
    )


def build_page(page_id: str, image: Image.Image) -> PageResource:
    """Encode `image` and build the XHTML page that embeds it."""
    image_bytes = encode_image(image)
    markup = page_markup(page_id)
    logger.debug("built page %s (%d bytes image)", page_id, len(image_bytes))
    return PageResource(page_id=page_id, image_bytes=image_bytes, markup_bytes=markup)
