"""
Tesseract OCR Provider
======================

Local OCR using Tesseract. Free, offline, good for simple documents.
This is the provider free accounts without credits are routed to.
"""

import logging

import pytesseract
from PIL import Image

from ocr_processing.exceptions import EngineError
from ocr_processing.models import ExtractionRequest, ProviderType
from ocr_processing.pdf import PDF_RENDER_DPI
from ocr_processing.providers.base import (
    DEFAULT_MAX_FILE_SIZE_BYTES,
    PDF_MIME_TYPE,
    BaseOcrProvider,
)

logger = logging.getLogger(__name__)


class TesseractProvider(BaseOcrProvider):
    """
    OCR provider using a local Tesseract installation.

    Good for:
    - Offline processing
    - Simple, clean documents
    - Cost-free OCR

    The provider counts as available only when a tessdata directory is
    configured (TESSERACT_DATA_PATH).
    """

    provider_type = ProviderType.TESSERACT

    SUPPORTED_MIME_TYPES = frozenset({
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/gif",
        "image/bmp",
        "image/tiff",
        "image/webp",
        PDF_MIME_TYPE,
    })

    SUPPORTED_LANGUAGES = (
        "eng", "deu", "fra", "spa", "ita", "por", "nld",
        "pol", "rus", "jpn", "kor", "chi_sim", "chi_tra",
    )

    def __init__(
        self,
        data_path: str | None = None,
        tesseract_path: str | None = None,
        lang: str = "eng",
        psm: int = 3,
        oem: int = 1,
        dpi: int = PDF_RENDER_DPI,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        fetch_timeout: int = 30,
    ):
        """
        Initialize Tesseract provider.

        Args:
            data_path: tessdata directory
            tesseract_path: Path to tesseract binary, None to use PATH
            lang: Default OCR language (e.g., "eng", "deu+eng")
            psm: Page segmentation mode
            oem: OCR engine mode
            dpi: DPI for PDF to image conversion
        """
        super().__init__(
            name="Tesseract",
            max_file_size_bytes=max_file_size_bytes,
            fetch_timeout=fetch_timeout,
            dpi=dpi,
        )
        self.data_path = data_path
        self.lang = lang
        self.psm = psm
        self.oem = oem

        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path

        logger.info("TesseractProvider initialized with datapath: %s", data_path)

    def is_available(self) -> bool:
        """Tesseract is usable once its data path is configured."""
        return bool(self.data_path and self.data_path.strip())

    def resolve_language(self, request: ExtractionRequest) -> str:
        return super().resolve_language(request) or self.lang

    def build_config(self) -> str:
        """Command-line options passed to tesseract."""
        options = [f"--psm {self.psm}", f"--oem {self.oem}"]
        if self.data_path:
            options.insert(0, f'--tessdata-dir "{self.data_path}"')
        return " ".join(options)

    def ocr_image(self, image: Image.Image, language: str | None = None) -> str:
        """Run Tesseract on one image."""
        try:
            text = pytesseract.image_to_string(
                image,
                lang=language or self.lang,
                config=self.build_config(),
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise EngineError(
                f"Tesseract OCR failed: {e}",
                provider_type=self.provider_type,
            ) from e
        return text.strip()
