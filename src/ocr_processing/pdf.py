"""
Hybrid PDF Extractor
====================

Two-tier text extraction for PDFs:

1. Direct pass: read the embedded text layer of each selected page (PyMuPDF).
   Exact and fast, so it always wins when it yields any text.
2. Rendered-OCR pass: only when the direct pass is blank (scanned PDFs),
   render each selected page at a fixed DPI and run the OCR engine on it.

Both passes label pages the same way:

    --- Page 2 ---
    text of page two

    --- Page 5 ---
    text of page five
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

import fitz  # PyMuPDF
from PIL import Image

from ocr_processing.exceptions import EngineError, SourceError
from ocr_processing.pages import PageSelection, resolve_pages, validate_selection

logger = logging.getLogger(__name__)

PDF_RENDER_DPI = 300

# (page image, language hint) -> recognised text
PageOcrFn = Callable[[Image.Image, str | None], str]


def page_marker(page_number: int) -> str:
    """Separator line for a 1-indexed page number."""
    return f"--- Page {page_number} ---"


def join_pages(page_texts: list[tuple[int, str]]) -> str:
    """Join (1-indexed page, text) pairs, skipping blank pages."""
    parts = [
        f"{page_marker(page_number)}\n{text.strip()}"
        for page_number, text in page_texts
        if text and text.strip()
    ]
    return "\n\n".join(parts)


@dataclass
class PdfExtraction:
    """Outcome of a hybrid PDF extraction."""

    text: str
    method: str  # "direct" or "ocr"
    total_pages: int
    pages: list[int] = field(default_factory=list)  # 1-indexed pages processed


class HybridPdfExtractor:
    """Direct text extraction with a rendered-OCR fallback."""

    def __init__(self, ocr_page: PageOcrFn, dpi: int = PDF_RENDER_DPI):
        """
        Args:
            ocr_page: Function that runs OCR on one rendered page image
            dpi: Render resolution for the OCR pass
        """
        self.ocr_page = ocr_page
        self.dpi = dpi

    def extract(
        self,
        pdf_bytes: bytes,
        selection: PageSelection | None = None,
        language: str | None = None,
    ) -> PdfExtraction:
        """
        Extract text from the selected pages of a PDF.

        Raises:
            SourceError: if the bytes are not a readable PDF
            EngineError: if PyMuPDF fails on an individual page
            PageSelectionError: if the selection does not fit the document
        """
        doc = self._open(pdf_bytes)
        try:
            total_pages = len(doc)
            logger.info("PDF loaded with %d pages", total_pages)

            validate_selection(selection, total_pages)
            page_indexes = resolve_pages(selection, total_pages)
            page_numbers = [index + 1 for index in page_indexes]

            direct_text = self._extract_direct(doc, page_indexes)
            if direct_text.strip():
                logger.info("Direct text extraction successful for %d pages", len(page_indexes))
                return PdfExtraction(
                    text=direct_text,
                    method="direct",
                    total_pages=total_pages,
                    pages=page_numbers,
                )

            logger.info("No direct text found, falling back to OCR for scanned PDF")
            ocr_text = self._extract_via_ocr(doc, page_indexes, language)
            return PdfExtraction(
                text=ocr_text,
                method="ocr",
                total_pages=total_pages,
                pages=page_numbers,
            )
        finally:
            doc.close()

    def _open(self, pdf_bytes: bytes) -> fitz.Document:
        try:
            return fitz.open(stream=pdf_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise SourceError(f"Failed to open PDF: {e}") from e

    def _extract_direct(self, doc: fitz.Document, page_indexes: list[int]) -> str:
        """Read the text layer one page at a time."""
        page_texts = [
            (index + 1, self._read_page(doc, index, lambda page: page.get_text()))
            for index in page_indexes
        ]
        return join_pages(page_texts)

    def _extract_via_ocr(
        self,
        doc: fitz.Document,
        page_indexes: list[int],
        language: str | None,
    ) -> str:
        """Render each page and OCR it, strictly in page order."""
        page_texts: list[tuple[int, str]] = []
        for index in page_indexes:
            logger.debug("OCR processing PDF page %d of %d", index + 1, len(doc))
            image = self._read_page(doc, index, self.render_page)
            page_texts.append((index + 1, self.ocr_page(image, language)))
        return join_pages(page_texts)

    def _read_page(self, doc: fitz.Document, index: int, read: Callable[[fitz.Page], object]):
        """Run a PyMuPDF page operation, mapping its errors to EngineError."""
        try:
            return read(doc[index])
        except (RuntimeError, ValueError) as e:
            raise EngineError(f"Failed to read PDF page {index + 1}: {e}") from e

    def render_page(self, page: fitz.Page) -> Image.Image:
        """Render a PDF page to a PIL Image at the configured DPI."""
        # PDF default is 72 DPI
        zoom = self.dpi / 72
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)
