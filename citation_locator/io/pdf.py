"""
Source layout extraction and page rendering using PyMuPDF (fitz).

PyMuPDF reports span boxes with a top-left origin. The engine works in a
bottom-up frame, so every span is flipped against the page height on the way
in: the item's ``y`` is the distance from the page bottom to the span's top
edge, and the box extends downward by its height.
"""

import logging
from pathlib import Path
from typing import List

import fitz  # PyMuPDF
import numpy as np

from citation_locator.types import RenderScale, SourceLayout, SourcePage, TextItem

logger = logging.getLogger(__name__)

# PDF user space is 72 units per inch
PDF_DPI = 72.0


def render_scale_for_dpi(dpi: float) -> RenderScale:
    """Document units to image pixels for a page rendered at dpi."""
    zoom = dpi / PDF_DPI
    return RenderScale(x=zoom, y=zoom)


def _open(pdf_path: Path) -> fitz.Document:
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")
    return fitz.open(pdf_path)


def render_page(pdf_path: Path, page_number: int, dpi: int = 150) -> np.ndarray:
    """
    Render a PDF page to a NumPy image array at the specified DPI.

    Args:
        pdf_path: Path to the PDF file
        page_number: One-based page number to render
        dpi: Dots per inch for rendering

    Returns:
        NumPy array of shape (height, width, 3) in BGR format

    Raises:
        FileNotFoundError: If pdf_path does not exist
        IndexError: If page_number is out of range
    """
    doc = _open(pdf_path)

    page_count = len(doc)
    if page_number < 1 or page_number > page_count:
        doc.close()
        raise IndexError(f"Page {page_number} out of range (1-{page_count})")

    page = doc.load_page(page_number - 1)
    zoom = dpi / PDF_DPI
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)

    img_data = np.frombuffer(pix.samples, dtype=np.uint8)
    img_rgb = img_data.reshape(pix.height, pix.width, pix.n)

    # RGB to BGR for OpenCV
    if pix.n == 3:
        img_bgr = img_rgb[:, :, ::-1].copy()
    else:
        img_bgr = img_rgb.copy()

    doc.close()
    return img_bgr


def _page_items(page: fitz.Page) -> List[TextItem]:
    page_height = page.rect.height
    items = []

    # "dict" mode returns blocks -> lines -> spans in reading order
    text_dict = page.get_text("dict")
    for block in text_dict.get("blocks", []):
        # Skip image blocks
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue
                x0, y0, x1, y1 = span.get("bbox", (0, 0, 0, 0))
                items.append(TextItem(
                    x=x0,
                    y=page_height - y0,
                    width=x1 - x0,
                    height=y1 - y0,
                    text=text,
                ))
    return items


def extract_source_layout(pdf_path: Path) -> SourceLayout:
    """
    Extract every page's text spans as a SourceLayout.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        SourceLayout with one SourcePage per PDF page, 1-based, carrying the
        page size in PDF points

    Raises:
        FileNotFoundError: If pdf_path does not exist
    """
    doc = _open(pdf_path)

    pages = []
    for index in range(len(doc)):
        page = doc.load_page(index)
        items = _page_items(page)
        pages.append(SourcePage(
            page_number=index + 1,
            width=page.rect.width,
            height=page.rect.height,
            items=tuple(items),
        ))
        logger.debug("Page %d: %d text items", index + 1, len(items))

    doc.close()
    return SourceLayout(pages=tuple(pages))
