"""
Text extraction for uploaded proposals and utility bills.

Born-digital PDFs are read through their text layer with pdfplumber; scanned
pages and photographed bills go through image preprocessing and Tesseract OCR.
"""
import asyncio
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

import pdfplumber
import pytesseract
import structlog
from PIL import Image, ImageFilter, ImageOps

from solarlens.config import get_settings
from solarlens.exceptions import ExtractionFailure
from solarlens.middleware.logging import log_performance

logger = structlog.get_logger(__name__)

# Pages with less text than this are treated as scanned
SCANNED_PAGE_MIN_CHARS = 50
OCR_RESOLUTION = 300


class DocumentKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"


@dataclass
class DocumentSource:
    """An uploaded document as handed over by the upload layer."""

    path: Path
    filename: str
    size: int
    mime_type: str

    @property
    def kind(self) -> Optional[DocumentKind]:
        """Extraction path picked from the declared MIME type only."""
        mime = (self.mime_type or "").lower()
        if mime == "application/pdf":
            return DocumentKind.PDF
        if mime.startswith("image/"):
            return DocumentKind.IMAGE
        return None


@dataclass
class ExtractedText:
    """Plain text pulled from a document plus timing for the caller."""

    text: str
    kind: DocumentKind
    pages_processed: int = 1
    total_pages: int = 1
    ocr_pages: List[int] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def char_count(self) -> int:
        return len(self.text)


def preprocess_image(image: Image.Image, threshold: int = 128) -> Image.Image:
    """
    Prepare a photographed or scanned page for OCR.

    Grayscale, stretch contrast, sharpen, then binarize at a fixed threshold.
    """
    gray = ImageOps.grayscale(image)
    gray = ImageOps.autocontrast(gray)
    gray = gray.filter(ImageFilter.SHARPEN)
    return gray.point(lambda p: 255 if p >= threshold else 0)


@contextmanager
def preprocessed_image(image_path: Path, threshold: int = 128) -> Iterator[Path]:
    """
    Write a preprocessed copy of an image to a temporary file.

    The file is removed when the block exits, whether OCR succeeded or not.
    """
    with Image.open(image_path) as original:
        processed = preprocess_image(original, threshold)

    handle = tempfile.NamedTemporaryFile(prefix="preprocessed-", suffix=".png", delete=False)
    temp_path = Path(handle.name)
    handle.close()
    try:
        processed.save(temp_path, format="PNG")
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


class TextExtractor:
    """
    Turns a PDF or image document into plain text.

    Only the first ``max_pages`` pages of a PDF are read; proposals and bills
    carry their fields up front.
    """

    def __init__(
        self,
        max_pages: Optional[int] = None,
        threshold: Optional[int] = None,
        tesseract_cmd: Optional[str] = None,
    ):
        settings = get_settings()
        self.max_pages = max_pages or settings.pdf_max_pages
        self.threshold = threshold if threshold is not None else settings.ocr_binarize_threshold
        self._tesseract_available = self._check_tesseract(tesseract_cmd or settings.tesseract_cmd)

    def _check_tesseract(self, tesseract_cmd: Optional[str]) -> bool:
        """Check if Tesseract OCR is available."""
        try:
            if tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
            pytesseract.get_tesseract_version()
            return True
        except Exception as e:
            logger.warning("tesseract_unavailable", error=str(e))
            return False

    def extract(self, source: DocumentSource) -> ExtractedText:
        """
        Extract text from a document.

        Raises:
            ExtractionFailure: The MIME type maps to no extraction path, or the
                file could not be read or decoded.
        """
        kind = source.kind
        if kind is DocumentKind.PDF:
            return self.extract_pdf(source.path)
        if kind is DocumentKind.IMAGE:
            return self.extract_image(source.path)
        raise ExtractionFailure(
            f"Unsupported document type: {source.mime_type}",
            details={"filename": source.filename},
        )

    async def extract_async(self, source: DocumentSource) -> ExtractedText:
        """Run extraction in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.extract, source)

    @log_performance("pdf_text_extraction")
    def extract_pdf(self, pdf_path: Path) -> ExtractedText:
        start = time.perf_counter()
        texts: List[str] = []
        ocr_pages: List[int] = []

        try:
            with pdfplumber.open(pdf_path) as pdf:
                total_pages = len(pdf.pages)
                pages = pdf.pages[: self.max_pages]
                for page_num, page in enumerate(pages, start=1):
                    page_text = page.extract_text() or ""
                    if len(page_text.strip()) < SCANNED_PAGE_MIN_CHARS and self._tesseract_available:
                        logger.info("page_appears_scanned", page=page_num)
                        page_text = self._ocr_pdf_page(page, page_num)
                        ocr_pages.append(page_num)
                    texts.append(page_text)
        except Exception as e:
            logger.error("pdf_extraction_failed", path=str(pdf_path), error=str(e))
            raise ExtractionFailure(f"Failed to parse PDF: {e}", cause=e) from e

        text = "\n".join(texts).strip()
        result = ExtractedText(
            text=text,
            kind=DocumentKind.PDF,
            pages_processed=len(texts),
            total_pages=total_pages,
            ocr_pages=ocr_pages,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        logger.info(
            "pdf_text_extracted",
            chars=result.char_count,
            pages=result.pages_processed,
            total_pages=result.total_pages,
            duration_ms=result.duration_ms,
        )
        return result

    def _ocr_pdf_page(self, page, page_num: int) -> str:
        """OCR a rendered PDF page; an unreadable page contributes no text."""
        try:
            rendered = page.to_image(resolution=OCR_RESOLUTION).original
            return pytesseract.image_to_string(preprocess_image(rendered, self.threshold))
        except Exception as e:
            logger.error("page_ocr_failed", page=page_num, error=str(e))
            return ""

    @log_performance("image_text_extraction")
    def extract_image(self, image_path: Path) -> ExtractedText:
        if not self._tesseract_available:
            raise ExtractionFailure("OCR is not available for image documents")

        start = time.perf_counter()
        try:
            with preprocessed_image(image_path, self.threshold) as processed_path:
                text = pytesseract.image_to_string(str(processed_path))
        except Exception as e:
            logger.error("image_extraction_failed", path=str(image_path), error=str(e))
            raise ExtractionFailure(f"Failed to perform OCR: {e}", cause=e) from e

        result = ExtractedText(
            text=(text or "").strip(),
            kind=DocumentKind.IMAGE,
            ocr_pages=[1],
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        logger.info("image_text_extracted", chars=result.char_count, duration_ms=result.duration_ms)
        return result


# Singleton instance
_text_extractor_instance: Optional[TextExtractor] = None


def get_text_extractor() -> TextExtractor:
    """Get singleton TextExtractor instance."""
    global _text_extractor_instance
    if _text_extractor_instance is None:
        _text_extractor_instance = TextExtractor()
    return _text_extractor_instance
