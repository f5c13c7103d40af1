"""
OCR engines.

Each engine implements the OCREngine interface and turns PDF bytes into
best-effort text:
- EmbeddedTextEngine: text layer of born-digital PDFs (PyMuPDF)
- VisionPdfEngine: Cloud Vision over the PDF itself
- VisionImagesEngine: Cloud Vision over preprocessed page-image variants
- TesseractEngine: local Tesseract over page images
- OpenAIVisionEngine / GeminiVisionEngine: multimodal model OCR with
  Name/Roll header injection
"""

from .base import OCREngine
from .embedded_text import EmbeddedTextEngine, extract_page_texts
from .vision_pdf import VisionPdfEngine
from .vision_images import VisionImagesEngine
from .tesseract import TesseractEngine
from .llm_vision import OpenAIVisionEngine, GeminiVisionEngine
from .variants import VariantGenerator, ImageVariant
from .rasterizer import PageRasterizer, RasterPage

__all__ = [
    "OCREngine",
    "EmbeddedTextEngine",
    "extract_page_texts",
    "VisionPdfEngine",
    "VisionImagesEngine",
    "TesseractEngine",
    "OpenAIVisionEngine",
    "GeminiVisionEngine",
    "VariantGenerator",
    "ImageVariant",
    "PageRasterizer",
    "RasterPage",
]
