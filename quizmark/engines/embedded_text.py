"""
Embedded-text engine.

Reads the text layer of born-digital PDFs with PyMuPDF. No rasterization;
scanned PDFs simply come back empty.
"""

from __future__ import annotations

from typing import List

from ..models import OcrNamingContext, OcrResult
from ..utils.text_utils import sanitize
from .base import OCREngine
from .rasterizer import open_pdf


def extract_page_texts(pdf_bytes: bytes) -> List[str]:
    """Raw embedded text of every page, in page order."""
    doc = open_pdf(pdf_bytes)
    try:
        return [doc.load_page(i).get_text("text") or "" for i in range(doc.page_count)]
    finally:
        doc.close()


class EmbeddedTextEngine(OCREngine):
    """Text layer extraction for born-digital documents."""

    name = "pdf-text"

    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        page_texts = extract_page_texts(pdf_bytes)
        text = sanitize("\n".join(page_texts))
        return OcrResult.success(
            self.name,
            text,
            pages_total=len(page_texts),
            pages_kept=sum(1 for t in page_texts if t.strip()),
            page_texts=[sanitize(t) for t in page_texts],
        )
