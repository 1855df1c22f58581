"""
Tests for HybridPdfExtractor
============================

Unit tests for the direct/rendered-OCR PDF extraction tiers.
"""

from unittest.mock import MagicMock, patch

import fitz
import pytest
from PIL import Image

from ocr_processing import EngineError, HybridPdfExtractor, PageSelection, SourceError
from ocr_processing.exceptions import PageSelectionError
from ocr_processing.pdf import join_pages, page_marker


@pytest.mark.unit
class TestJoinPages:
    """Test page labelling and concatenation."""

    def test_page_marker(self):
        assert page_marker(7) == "--- Page 7 ---"

    def test_every_page_with_text_is_labelled(self):
        text = join_pages([(1, "first"), (2, "second")])
        assert text == "--- Page 1 ---\nfirst\n\n--- Page 2 ---\nsecond"

    def test_blank_pages_are_skipped(self):
        text = join_pages([(1, "first"), (2, "   \n"), (3, "third")])
        assert "--- Page 2 ---" not in text
        assert text.count("--- Page") == 2

    def test_all_blank_is_empty(self):
        assert join_pages([(1, ""), (2, " ")]) == ""


@pytest.mark.unit
class TestDirectExtraction:
    """Test PDFs with an embedded text layer."""

    def test_text_pdf_never_calls_ocr(self, create_text_pdf):
        ocr_page = MagicMock(return_value="should not be used")
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=72)

        result = extractor.extract(create_text_pdf(["Alpha page", "Beta page"]))

        ocr_page.assert_not_called()
        assert result.method == "direct"
        assert result.total_pages == 2
        assert result.pages == [1, 2]
        assert "--- Page 1 ---\nAlpha page" in result.text
        assert "--- Page 2 ---\nBeta page" in result.text

    def test_range_selection(self, create_text_pdf):
        extractor = HybridPdfExtractor(ocr_page=MagicMock(), dpi=72)
        pdf = create_text_pdf([f"Content {i}" for i in range(1, 6)])

        result = extractor.extract(pdf, PageSelection(start_page=2, end_page=3))

        assert result.pages == [2, 3]
        assert "Content 2" in result.text
        assert "Content 3" in result.text
        assert "Content 1" not in result.text
        assert "Content 4" not in result.text

    def test_pages_in_ascending_order(self, create_text_pdf):
        extractor = HybridPdfExtractor(ocr_page=MagicMock(), dpi=72)
        pdf = create_text_pdf([f"Content {i}" for i in range(1, 6)])

        result = extractor.extract(pdf, PageSelection(pages=[5, 1, 3]))

        assert result.pages == [1, 3, 5]
        assert result.text.index("--- Page 1 ---") < result.text.index("--- Page 3 ---")
        assert result.text.index("--- Page 3 ---") < result.text.index("--- Page 5 ---")

    def test_blank_page_in_text_pdf_is_skipped(self, create_text_pdf):
        extractor = HybridPdfExtractor(ocr_page=MagicMock(), dpi=72)

        result = extractor.extract(create_text_pdf(["One", "", "Three"]))

        assert result.method == "direct"
        assert "--- Page 2 ---" not in result.text
        assert result.text.count("--- Page") == 2


@pytest.mark.unit
class TestOcrExtraction:
    """Test scanned PDFs without a text layer."""

    def test_scanned_pdf_renders_and_ocrs_each_page(self, create_scanned_pdf):
        ocr_page = MagicMock(side_effect=["text one", "text two", "text three"])
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=72)

        result = extractor.extract(create_scanned_pdf(pages=3), language="deu")

        assert result.method == "ocr"
        assert ocr_page.call_count == 3
        image, language = ocr_page.call_args.args
        assert isinstance(image, Image.Image)
        assert language == "deu"
        assert result.text == (
            "--- Page 1 ---\ntext one\n\n--- Page 2 ---\ntext two\n\n--- Page 3 ---\ntext three"
        )

    def test_single_discrete_page_of_five(self, create_scanned_pdf):
        ocr_page = MagicMock(return_value="only page two")
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=72)

        result = extractor.extract(create_scanned_pdf(pages=5), PageSelection(pages=[2]))

        assert ocr_page.call_count == 1
        assert result.text.count("--- Page 2 ---") == 1
        assert result.text.count("--- Page") == 1
        assert result.pages == [2]

    def test_render_uses_configured_dpi(self, create_scanned_pdf):
        ocr_page = MagicMock(return_value="x")
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=144)

        extractor.extract(create_scanned_pdf(pages=1))

        image = ocr_page.call_args.args[0]
        # A4 is 595pt wide
        assert image.width > 1000

    def test_engine_error_propagates(self, create_scanned_pdf):
        ocr_page = MagicMock(side_effect=EngineError("boom"))
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=72)

        with pytest.raises(EngineError):
            extractor.extract(create_scanned_pdf(pages=1))


@pytest.mark.unit
class TestExtractorErrors:
    """Test unreadable input and invalid selections."""

    def test_garbage_bytes_raise_source_error(self):
        extractor = HybridPdfExtractor(ocr_page=MagicMock())
        with pytest.raises(SourceError, match="Failed to open PDF"):
            extractor.extract(b"definitely not a pdf")

    def test_page_text_failure_raises_engine_error(self, create_text_pdf):
        extractor = HybridPdfExtractor(ocr_page=MagicMock())

        with patch.object(fitz.Page, "get_text", side_effect=RuntimeError("broken content stream")):
            with pytest.raises(EngineError, match="Failed to read PDF page 2"):
                extractor.extract(create_text_pdf(["a", "b"]), PageSelection(pages=[2]))

    def test_page_render_failure_raises_engine_error(self, create_scanned_pdf):
        ocr_page = MagicMock()
        extractor = HybridPdfExtractor(ocr_page=ocr_page, dpi=72)

        with patch.object(fitz.Page, "get_pixmap", side_effect=RuntimeError("cannot decode image")):
            with pytest.raises(EngineError, match="Failed to read PDF page 1"):
                extractor.extract(create_scanned_pdf(pages=1))
        ocr_page.assert_not_called()

    def test_selection_beyond_page_count(self, create_text_pdf):
        ocr_page = MagicMock()
        extractor = HybridPdfExtractor(ocr_page=ocr_page)

        with pytest.raises(PageSelectionError):
            extractor.extract(create_text_pdf(["a", "b"]), PageSelection(pages=[3]))
        ocr_page.assert_not_called()
