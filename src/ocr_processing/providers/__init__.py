"""
OCR Providers
=============

Interchangeable OCR backends behind one contract.

Available Providers:
- TesseractProvider: Local Tesseract OCR (offline, free)
- GeminiProvider: Cloud OCR via Google Gemini API (native multimodal)

Usage:
    from ocr_processing.models import ExtractionRequest
    from ocr_processing.providers import TesseractProvider

    tesseract = TesseractProvider(data_path="/usr/share/tesseract-ocr/5/tessdata")
    if tesseract.is_available():
        result = tesseract.extract_text(
            ExtractionRequest(image_url="https://example.com/scan.pdf")
        )
"""

from .base import PDF_MIME_TYPE, BaseOcrProvider
from .gemini import GeminiProvider, GeminiRetryableError
from .tesseract import TesseractProvider

__all__ = [
    "BaseOcrProvider",
    "PDF_MIME_TYPE",
    "GeminiProvider",
    "GeminiRetryableError",
    "TesseractProvider",
]
