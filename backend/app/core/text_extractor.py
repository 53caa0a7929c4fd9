
#backend/app/core/text_extractor.py
import logging
import re
import unicodedata
from io import BytesIO
from pathlib import PurePath
from typing import Callable, Optional

from PyPDF2 import PdfReader

from backend.app.config import settings
from backend.app.core.errors import ExtractionFailed
from backend.app.core.ocr import OcrEngine

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".gif", ".webp"}
# Formats that may carry no text layer at all (scans, photos of a resume)
SCANNABLE_EXTENSIONS = {".pdf"} | IMAGE_EXTENSIONS


class TextExtractor:
    """Turns a resume file buffer into plain text.

    The direct path (PDF text layer, or decoding the buffer as UTF-8) is always
    tried first. OCR runs only for scannable formats whose direct text is
    shorter than ``min_length``.
    """

    def __init__(
        self,
        ocr_factory: Callable[[], OcrEngine] = OcrEngine,
        min_length: Optional[int] = None,
        max_chars: Optional[int] = None,
    ):
        self.ocr_factory = ocr_factory
        self.min_length = settings.MIN_TEXT_LENGTH if min_length is None else min_length
        self.max_chars = max_chars or settings.MAX_EXTRACTED_CHARS

    def extract(self, file_bytes: bytes, file_name: str) -> str:
        if not file_bytes:
            raise ExtractionFailed(f"Empty file: {file_name}")
        ext = PurePath(file_name or "").suffix.lower()
        logger.info("Extracting text from %s (%d bytes)", file_name, len(file_bytes))

        text = self._clean(self._direct_text(file_bytes, ext))
        if _readable_length(text) < self.min_length and ext in SCANNABLE_EXTENSIONS:
            logger.info("%s has minimal text (%d chars), using OCR", file_name, _readable_length(text))
            text = self._clean(self._ocr_text(file_bytes, file_name))

        if _readable_length(text) < self.min_length:
            raise ExtractionFailed(
                f"Could not extract readable text from resume ({_readable_length(text)} chars, need {self.min_length})"
            )
        return text

    # -------- Direct path --------
    def _direct_text(self, file_bytes: bytes, ext: str) -> str:
        if ext == ".pdf":
            return self._pdf_text(file_bytes)
        if ext in IMAGE_EXTENSIONS:
            return ""
        # Legacy encodings (cp1252 exports) keep their ASCII text; stray bytes become U+FFFD
        return file_bytes.decode("utf-8-sig", errors="replace")

    def _pdf_text(self, file_bytes: bytes) -> str:
        try:
            reader = PdfReader(BytesIO(file_bytes))
            text = ""
            for page in reader.pages:
                page_text = page.extract_text()
                if page_text:
                    text += page_text + "\n"
            return text
        except Exception as e:
            # Broken or unusual text layer; OCR still gets a chance
            logger.warning("PDF text layer unreadable: %s", e)
            return ""

    # -------- OCR fallback --------
    def _ocr_text(self, file_bytes: bytes, file_name: str) -> str:
        try:
            with self.ocr_factory() as engine:
                return engine.recognize(file_bytes, file_name)
        except ExtractionFailed:
            raise
        except Exception as e:
            logger.error("OCR failed for %s: %s", file_name, e)
            raise ExtractionFailed(f"Failed to extract text from file: {e}", cause=e) from e

    def _clean(self, text: str) -> str:
        if not text or not text.strip():
            return ""
        t = unicodedata.normalize("NFC", text)
        t = t.replace("\x00", "")
        t = re.sub(r"[ \t]+", " ", t)
        t = re.sub(r"\n\s*\n\s*\n", "\n\n", t)
        t = t.strip()
        if len(t) > self.max_chars:
            logger.warning("Extracted text truncated from %d to %d chars", len(t), self.max_chars)
            t = t[:self.max_chars]
        return t


def _readable_length(text: str) -> int:
    return len(text) - text.count("\ufffd")
