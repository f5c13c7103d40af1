"""
Composite PDF assembly.

build_composite_pack: Solution?, Best, Avg and Low representative pages,
one page each, annotated and tagged.

build_full_roster: every page of the source in order, with the first page
of each student's block annotated and the rest copied untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import fitz  # PyMuPDF

from ..engines.rasterizer import open_pdf
from ..exceptions import NoGradedResultsError
from ..logger import get_logger
from ..models import StudentRecord
from .annotator import PageAnnotator
from .selection import Selection, map_representatives, select_roles

logger = get_logger(__name__)


@dataclass
class CompositeResult:
    """Rendered pack plus the selection it was built from."""
    pdf_bytes: bytes
    selection: Selection
    page_indices: List[int] = field(default_factory=list)


def _copy_page(out: fitz.Document, src: fitz.Document, page_index: int) -> fitz.Page:
    out.insert_pdf(src, from_page=page_index, to_page=page_index)
    return out[out.page_count - 1]


def build_composite_pack(
    src_pdf: bytes,
    graded: Sequence[StudentRecord],
    pages_per_student: int = 1,
    first_is_solution: bool = True,
    annotator: Optional[PageAnnotator] = None,
    quiz_id: Optional[str] = None,
) -> CompositeResult:
    """
    Build the Solution/Best/Avg/Low pack.

    Raises:
        NoGradedResultsError: graded is empty, or no student fits the page count
        PDFProcessingError: source PDF cannot be opened
    """
    if not graded:
        raise NoGradedResultsError(quiz_id)

    annotator = annotator or PageAnnotator()
    src = open_pdf(src_pdf)
    out = fitz.open()
    try:
        mapped = map_representatives(graded, src.page_count, pages_per_student)
        if not mapped:
            raise NoGradedResultsError(quiz_id)

        selection = select_roles(mapped, first_is_solution)
        for role, entry in selection.ordered():
            page = _copy_page(out, src, entry.page_index)
            annotator.annotate(page, entry.student, role=role)
            logger.debug(f"{role}: page {entry.page_index + 1} ({entry.student.display_name})")

        logger.info(
            f"Composite pack built: {out.page_count} pages from {len(mapped)} mapped students "
            f"(pages={[i + 1 for i in selection.page_indices]})"
        )
        return CompositeResult(out.tobytes(garbage=3, deflate=True), selection, selection.page_indices)
    finally:
        out.close()
        src.close()


def build_full_roster(
    src_pdf: bytes,
    graded: Sequence[StudentRecord],
    pages_per_student: int = 1,
    annotator: Optional[PageAnnotator] = None,
) -> bytes:
    """
    Copy every page, annotating the first page of each block.

    Blocks beyond the graded list get an empty record (0/0, "Student").
    """
    pps = max(1, int(pages_per_student or 1))
    annotator = annotator or PageAnnotator()
    src = open_pdf(src_pdf)
    out = fitz.open()
    try:
        out.insert_pdf(src)
        annotated = 0
        for idx in range(out.page_count):
            if idx % pps != 0:
                continue
            student_index = idx // pps
            student = graded[student_index] if student_index < len(graded) else StudentRecord()
            annotator.annotate(out[idx], student)
            annotated += 1

        logger.info(f"Full roster built: {out.page_count} pages, {annotated} annotated")
        return out.tobytes(garbage=3, deflate=True)
    finally:
        out.close()
        src.close()
