"""
Cloud Vision native-PDF engine.

Submits the PDF itself to Google Cloud Vision DOCUMENT_TEXT_DETECTION.
Inline file requests are limited to five pages, so the document is sent
in five-page windows and the per-page text is stitched back together.
"""

from __future__ import annotations

from typing import List, Optional

from google.cloud import vision

from ..config import Config
from ..exceptions import OCREngineError
from ..models import OcrNamingContext, OcrResult
from ..utils.text_utils import sanitize
from .base import OCREngine
from .rasterizer import page_count

PAGES_PER_REQUEST = 5


class VisionPdfEngine(OCREngine):
    """Whole-document OCR through Cloud Vision file annotation."""

    name = "vision-pdf"

    def __init__(self, config: Optional[Config] = None, client=None):
        super().__init__(config)
        self._client = client

    @property
    def client(self) -> vision.ImageAnnotatorClient:
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        total = page_count(pdf_bytes)
        input_config = vision.InputConfig(content=pdf_bytes, mime_type="application/pdf")
        feature = vision.Feature(type_=vision.Feature.Type.DOCUMENT_TEXT_DETECTION)

        page_texts: List[str] = [""] * total
        for start in range(1, total + 1, PAGES_PER_REQUEST):
            pages = list(range(start, min(start + PAGES_PER_REQUEST, total + 1)))
            request = vision.AnnotateFileRequest(
                input_config=input_config,
                features=[feature],
                pages=pages,
            )
            response = self.client.batch_annotate_files(requests=[request])

            for file_response in response.responses:
                if file_response.error.message:
                    raise OCREngineError(file_response.error.message, engine=self.name, page_number=start)
                # Image responses come back in the order of the requested pages
                for page_number, image_response in zip(pages, file_response.responses):
                    if image_response.error.message:
                        self.log_warning(
                            "Vision page error",
                            page=page_number,
                            error=image_response.error.message,
                        )
                        continue
                    page_texts[page_number - 1] = sanitize(image_response.full_text_annotation.text)

        return OcrResult.from_pages(self.name, page_texts)
