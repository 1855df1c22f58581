"""
Tests for TesseractProvider
===========================

Unit tests for the local Tesseract OCR provider. pytesseract is mocked;
no tesseract binary is needed.
"""

from unittest.mock import patch

import pytesseract
import pytest
from PIL import Image

from ocr_processing import EngineError, ExtractionRequest, ProviderType
from ocr_processing.providers import TesseractProvider


@pytest.mark.unit
class TestTesseractProviderInit:
    """Test TesseractProvider initialization."""

    def test_defaults(self):
        provider = TesseractProvider(data_path="/usr/share/tessdata")
        assert provider.provider_type == ProviderType.TESSERACT
        assert provider.name == "Tesseract"
        assert provider.lang == "eng"
        assert provider.psm == 3
        assert provider.oem == 1

    def test_tesseract_path_sets_command(self):
        with patch.object(pytesseract.pytesseract, "tesseract_cmd", "tesseract"):
            TesseractProvider(tesseract_path="/opt/bin/tesseract")
            assert pytesseract.pytesseract.tesseract_cmd == "/opt/bin/tesseract"

    def test_fixed_capabilities(self):
        provider = TesseractProvider()
        assert provider.supports("image/webp")
        assert provider.supports("application/pdf")
        assert not provider.supports("image/svg+xml")
        assert len(provider.get_supported_languages()) == 13
        assert "chi_tra" in provider.get_supported_languages()


@pytest.mark.unit
class TestTesseractAvailability:
    """Availability follows the tessdata configuration."""

    def test_available_with_data_path(self):
        assert TesseractProvider(data_path="/usr/share/tessdata").is_available() is True

    @pytest.mark.parametrize("data_path", [None, "", "   "])
    def test_unavailable_without_data_path(self, data_path):
        assert TesseractProvider(data_path=data_path).is_available() is False


@pytest.mark.unit
class TestTesseractOcr:
    """Test OCR calls into pytesseract."""

    def test_build_config(self):
        provider = TesseractProvider(data_path="/data/tess", psm=6, oem=3)
        assert provider.build_config() == '--tessdata-dir "/data/tess" --psm 6 --oem 3'

    def test_build_config_without_data_path(self):
        assert TesseractProvider().build_config() == "--psm 3 --oem 1"

    @patch("ocr_processing.providers.tesseract.pytesseract.image_to_string")
    def test_ocr_image_uses_language_hint(self, mock_ocr):
        mock_ocr.return_value = "  Hallo Welt \n"
        provider = TesseractProvider(data_path="/data/tess")
        image = Image.new("RGB", (10, 10))

        text = provider.ocr_image(image, "deu")

        assert text == "Hallo Welt"
        mock_ocr.assert_called_once_with(
            image, lang="deu", config='--tessdata-dir "/data/tess" --psm 3 --oem 1'
        )

    @patch("ocr_processing.providers.tesseract.pytesseract.image_to_string")
    def test_ocr_image_defaults_to_configured_language(self, mock_ocr):
        mock_ocr.return_value = "text"
        provider = TesseractProvider(data_path="/data/tess", lang="fra")

        provider.ocr_image(Image.new("RGB", (10, 10)))

        assert mock_ocr.call_args.kwargs["lang"] == "fra"

    @patch("ocr_processing.providers.tesseract.pytesseract.image_to_string")
    def test_tesseract_error_becomes_engine_error(self, mock_ocr):
        mock_ocr.side_effect = pytesseract.TesseractError(1, "Failed loading language 'xyz'")
        provider = TesseractProvider(data_path="/data/tess")

        with pytest.raises(EngineError, match="Tesseract OCR failed") as exc_info:
            provider.ocr_image(Image.new("RGB", (10, 10)), "xyz")
        assert exc_info.value.retryable is True
        assert exc_info.value.provider_type == ProviderType.TESSERACT

    @patch("ocr_processing.providers.tesseract.pytesseract.image_to_string")
    def test_missing_binary_becomes_failure_result(self, mock_ocr, png_bytes):
        mock_ocr.side_effect = pytesseract.TesseractNotFoundError()
        provider = TesseractProvider(data_path="/data/tess")

        result = provider.extract_text(ExtractionRequest(image_bytes=png_bytes, document_id="d7"))

        assert result.success is False
        assert result.retryable is True
        assert result.provider == ProviderType.TESSERACT
        assert result.document_id == "d7"

    @patch("ocr_processing.providers.tesseract.pytesseract.image_to_string")
    def test_request_without_language_uses_default(self, mock_ocr, png_bytes):
        mock_ocr.return_value = "receipt"
        provider = TesseractProvider(data_path="/data/tess", lang="deu")

        result = provider.extract_text(ExtractionRequest(image_bytes=png_bytes, mime_type="image/png"))

        assert result.success is True
        assert result.metadata["language"] == "deu"
        assert mock_ocr.call_args.kwargs["lang"] == "deu"
