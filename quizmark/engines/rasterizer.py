"""
PDF rasterizer.

Renders PDF pages to image files in a private scratch directory using
PyMuPDF. Everything the rasterizer writes (and anything callers drop into
the same directory) is deleted when the context exits, whether or not the
OCR that consumed the images succeeded.
"""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF

from ..exceptions import PDFProcessingError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RasterPage:
    """A rendered page image on disk."""
    index: int  # 0-based page index
    path: Path
    width: int
    height: int


def open_pdf(pdf_bytes: bytes) -> fitz.Document:
    """Open PDF bytes, raising PDFProcessingError on garbage input."""
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        raise PDFProcessingError(f"Failed to open PDF: {e}") from e


def page_count(pdf_bytes: bytes) -> int:
    doc = open_pdf(pdf_bytes)
    try:
        return doc.page_count
    finally:
        doc.close()


class PageRasterizer:
    """
    Render every page of a PDF at a fixed DPI.

    Usage:
        with PageRasterizer(pdf_bytes, dpi=350, fmt="jpg") as pages:
            for page in pages:
                ...
    """

    def __init__(
        self,
        pdf_bytes: bytes,
        dpi: int = 300,
        fmt: str = "png",
        scratch_root: Optional[Path] = None,
        prefix: str = "page",
    ):
        self.pdf_bytes = pdf_bytes
        self.dpi = dpi
        self.fmt = fmt.lower().lstrip(".")
        self.scratch_root = scratch_root
        self.prefix = prefix
        self.work_dir: Optional[Path] = None
        self.pages: List[RasterPage] = []

    def __enter__(self) -> List[RasterPage]:
        root = str(self.scratch_root) if self.scratch_root else None
        self.work_dir = Path(tempfile.mkdtemp(prefix=f"quizmark_{self.prefix}_", dir=root))
        try:
            self.pages = self._render()
        except Exception:
            self.cleanup()
            raise
        return self.pages

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def _render(self) -> List[RasterPage]:
        doc = open_pdf(self.pdf_bytes)
        try:
            zoom = self.dpi / 72.0
            matrix = fitz.Matrix(zoom, zoom)
            rendered: List[RasterPage] = []

            for page_index in range(doc.page_count):
                page = doc.load_page(page_index)
                pix = page.get_pixmap(matrix=matrix, alpha=False)

                output_path = self.work_dir / f"{self.prefix}-{page_index + 1:03d}.{self.fmt}"
                pix.save(str(output_path))

                rendered.append(RasterPage(
                    index=page_index,
                    path=output_path,
                    width=pix.width,
                    height=pix.height,
                ))
            logger.debug(f"Rendered {len(rendered)} pages at {self.dpi} DPI into {self.work_dir}")
            return rendered
        finally:
            doc.close()

    def cleanup(self) -> None:
        """Remove the scratch directory; failures are logged, not raised."""
        if self.work_dir is None:
            return
        try:
            shutil.rmtree(self.work_dir)
        except OSError as e:
            logger.warning(f"Failed to remove temp dir {self.work_dir}: {e}")
        self.work_dir = None


def remove_quietly(path: Path) -> None:
    """Delete one temp file, logging instead of raising."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temp file {path}: {e}")
