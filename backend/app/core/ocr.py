# backend/app/core/ocr.py

import logging
from io import BytesIO
from typing import List

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageSequence

from backend.app.config import settings

logger = logging.getLogger(__name__)


class OcrEngine:
    """Tesseract OCR over PDF pages or image files.

    Use as a context manager: rendered pages and opened documents are held by
    the engine and released in ``close()`` whatever way the block exits.
    """

    def __init__(
        self,
        lang: str = None,
        dpi: int = None,
        max_pages: int = None,
        timeout: float = None,
    ):
        self.lang = lang or settings.OCR_LANG
        self.dpi = dpi or settings.OCR_DPI
        self.max_pages = max_pages or settings.OCR_MAX_PAGES
        self.timeout = settings.OCR_TIMEOUT if timeout is None else timeout
        self._documents: List[fitz.Document] = []
        self._images: List[Image.Image] = []
        self.closed = False

    def __enter__(self) -> "OcrEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def recognize(self, file_bytes: bytes, file_name: str) -> str:
        if self.closed:
            raise RuntimeError("OCR engine already released")
        if file_name.lower().endswith(".pdf"):
            pages = self._render_pdf(file_bytes)
        else:
            pages = self._load_image(file_bytes)
        parts = []
        for idx, image in enumerate(pages, start=1):
            text = pytesseract.image_to_string(image, lang=self.lang, timeout=self.timeout)
            logger.debug("OCR page %d of %s: %d chars", idx, file_name, len(text))
            if text.strip():
                parts.append(text.strip())
        return "\n\n".join(parts)

    def _render_pdf(self, file_bytes: bytes) -> List[Image.Image]:
        doc = fitz.open(stream=file_bytes, filetype="pdf")
        self._documents.append(doc)
        pages = []
        for page_index in range(min(doc.page_count, self.max_pages)):
            pix = doc.load_page(page_index).get_pixmap(dpi=self.dpi)
            image = Image.open(BytesIO(pix.tobytes("png")))
            self._images.append(image)
            pages.append(image)
        return pages

    def _load_image(self, file_bytes: bytes) -> List[Image.Image]:
        image = Image.open(BytesIO(file_bytes))
        self._images.append(image)
        pages = []
        # Multi-frame TIFFs are one frame per page
        for frame in ImageSequence.Iterator(image):
            if len(pages) >= self.max_pages:
                break
            page = frame.convert("RGB")
            self._images.append(page)
            pages.append(page)
        return pages

    def close(self) -> None:
        if self.closed:
            return
        for image in self._images:
            image.close()
        for doc in self._documents:
            doc.close()
        self._images.clear()
        self._documents.clear()
        self.closed = True
