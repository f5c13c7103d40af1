"""
Cloud Vision multi-variant image engine.

The heaviest strategy and the one most likely to recover handwriting:
each page is rasterized, expanded into preprocessing variants, and every
variant is OCR'd twice with different language hints. Variant outputs are
scored, the best one leads, and lines from the other meaningful variants
are merged in without duplicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from google.cloud import vision

from ..config import Config
from ..exceptions import OCREngineError
from ..models import OcrNamingContext, OcrResult
from ..utils.text_utils import sanitize, is_meaningful
from .base import OCREngine
from .rasterizer import PageRasterizer, RasterPage, remove_quietly
from .variants import ImageVariant, VariantGenerator

SCORE_LENGTH_CAP = 10000
MEANINGFUL_BONUS = 1000


@dataclass(frozen=True)
class VariantText:
    """Best text read from one variant."""
    variant: str
    text: str
    score: int


def score_variant_text(text: str) -> int:
    """Length (capped) plus a bonus for passing the quality gate."""
    return min(len(text), SCORE_LENGTH_CAP) + (MEANINGFUL_BONUS if is_meaningful(text) else 0)


def merge_variant_texts(results: Sequence[VariantText]) -> str:
    """
    Fuse variant outputs into one page text.

    The top-scoring variant goes first; lines from other meaningful
    variants are appended when their trimmed form has not been seen yet.
    """
    if not results:
        return ""
    ranked = sorted(results, key=lambda r: r.score, reverse=True)

    seen = set()
    merged: List[str] = []

    def add_lines(text: str) -> None:
        for line in text.splitlines():
            key = line.strip()
            if key and key not in seen:
                seen.add(key)
                merged.append(line)

    add_lines(ranked[0].text)
    for result in ranked[1:]:
        if is_meaningful(result.text):
            add_lines(result.text)

    return sanitize("\n".join(merged))


class VisionImagesEngine(OCREngine):
    """Page-image OCR over preprocessing variants with language-hint passes."""

    name = "images"

    def __init__(
        self,
        config: Optional[Config] = None,
        client=None,
        variant_generator: Optional[VariantGenerator] = None,
    ):
        super().__init__(config)
        self._client = client
        self.variants = variant_generator or VariantGenerator(self.config.ocr)

    @property
    def client(self) -> vision.ImageAnnotatorClient:
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        ocr = self.config.ocr
        page_texts: List[str] = []

        with PageRasterizer(
            pdf_bytes,
            dpi=ocr.images_dpi,
            fmt="jpg",
            scratch_root=ocr.scratch_root(),
            prefix="vision",
        ) as pages:
            for page in pages:
                try:
                    page_text = self.ocr_page(page)
                finally:
                    remove_quietly(page.path)

                if page_text and is_meaningful(page_text):
                    page_texts.append(page_text)
                    self.log_debug("Page kept", page=page.index + 1, chars=len(page_text))
                else:
                    page_texts.append("")
                    self.log_info("Page low quality, skipping", page=page.index + 1)

        return OcrResult.from_pages(self.name, page_texts)

    def ocr_page(self, page: RasterPage) -> str:
        """OCR every variant of one page and fuse the results."""
        with self.variants.generate(page.path) as variants:
            results = [r for r in (self.ocr_variant(v) for v in variants) if r is not None]
        return merge_variant_texts(results)

    def ocr_variant(self, variant: ImageVariant) -> Optional[VariantText]:
        """Longest text over the language-hint passes, or None if all passes were empty."""
        try:
            content = variant.path.read_bytes()
        except OSError as e:
            self.log_warning("Vision variant unreadable", variant=variant.name, error=e)
            return None

        best = ""
        for hints in self.config.ocr.language_hint_passes:
            try:
                text = self.detect_text(content, hints)
            except Exception as e:
                self.log_warning("Vision variant pass failed", variant=variant.name, error=e)
                continue
            if len(text) > len(best):
                best = text
        if not best:
            return None
        return VariantText(variant=variant.name, text=best, score=score_variant_text(best))

    def detect_text(self, content: bytes, hints: Sequence[str]) -> str:
        response = self.client.document_text_detection(
            image=vision.Image(content=content),
            image_context=vision.ImageContext(language_hints=list(hints)),
        )
        if response.error.message:
            raise OCREngineError(response.error.message, engine=self.name)
        return sanitize(response.full_text_annotation.text)
