"""
Local Tesseract engine, the last-resort fallback.

Pages are rasterized with pdf2image into a temporary folder and read
twice (block and single-line segmentation modes); the longer reading wins.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import List, Optional

import pytesseract
from pdf2image import convert_from_bytes
from PIL import Image

from ..config import Config
from ..models import OcrNamingContext, OcrResult
from ..utils.text_utils import sanitize, is_meaningful
from .base import OCREngine


class TesseractEngine(OCREngine):
    """pytesseract over 300 DPI page images."""

    name = "tesseract"

    def __init__(self, config: Optional[Config] = None):
        super().__init__(config)
        if self.config.ocr.tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = self.config.ocr.tesseract_path
        self._available: Optional[bool] = None

    def is_available(self) -> bool:
        if self._available is None:
            try:
                version = pytesseract.get_tesseract_version()
                self.log_debug("Tesseract found", version=version)
                self._available = True
            except (pytesseract.TesseractNotFoundError, OSError) as e:
                self.log_warning("Tesseract not available", error=e)
                self._available = False
        return self._available

    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        ocr = self.config.ocr
        page_texts: List[str] = []

        with tempfile.TemporaryDirectory(prefix="quizmark_tess_", dir=str(ocr.scratch_root())) as tmp:
            image_paths = convert_from_bytes(
                pdf_bytes,
                dpi=ocr.tesseract_dpi,
                output_folder=tmp,
                fmt="jpeg",
                paths_only=True,
            )
            for page_number, image_path in enumerate(image_paths, start=1):
                text = self.read_page(Path(image_path))
                if text and is_meaningful(text):
                    page_texts.append(text)
                else:
                    page_texts.append("")
                    self.log_debug("Page below quality gate", page=page_number, chars=len(text))

        return OcrResult.from_pages(self.name, page_texts)

    def read_page(self, image_path: Path) -> str:
        """Longest sanitized text over the configured PSM passes."""
        best = ""
        with Image.open(image_path) as img:
            for psm in self.config.ocr.tesseract_psm_passes:
                try:
                    raw = pytesseract.image_to_string(
                        img,
                        lang=self.config.ocr.tesseract_languages,
                        config=f"--oem 1 --psm {psm}",
                    )
                except (pytesseract.TesseractError, RuntimeError) as e:
                    self.log_warning("Tesseract pass failed", psm=psm, error=e)
                    continue
                text = sanitize(raw)
                if len(text) > len(best):
                    best = text
        return best
