"""
Student/page segmentation.

Decides which pages of a scanned bundle belong to which graded student.
Three sources, strongest first:

1. explicit  - every student record already carries page_indices
2. headers   - pages whose text holds both "name:" and "roll:" start a block
3. even      - pages split as evenly as possible across the students

Every list produced here is unique, ascending and within [0, page_count).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .engines.embedded_text import extract_page_texts
from .logger import get_logger
from .models import StudentRecord

logger = get_logger(__name__)

SOURCE_EXPLICIT = "explicit"
SOURCE_HEADERS = "headers"
SOURCE_EVEN = "even"


@dataclass
class PageMapping:
    """Page index lists, one per student, plus how they were derived."""
    pages: List[List[int]] = field(default_factory=list)
    source: str = SOURCE_EVEN

    def __len__(self) -> int:
        return len(self.pages)

    def __getitem__(self, index: int) -> List[int]:
        return self.pages[index]

    def first_pages(self) -> List[Optional[int]]:
        return [p[0] if p else None for p in self.pages]


def block_start_indices(page_count: int, pages_per_student: int, student_count: int) -> List[int]:
    """
    Representative (first) page of each student's block.

    Example:
        >>> block_start_indices(10, 2, 5)
        [0, 2, 4, 6, 8]
    """
    pps = max(1, int(pages_per_student or 1))
    usable = min(max(0, student_count), max(0, page_count) // pps)
    return [i * pps for i in range(usable)]


def normalize_indices(indices: Iterable, page_count: int) -> List[int]:
    """Keep integer indices inside [0, page_count), deduplicated and sorted."""
    kept = {
        i for i in indices
        if isinstance(i, int) and not isinstance(i, bool) and 0 <= i < page_count
    }
    return sorted(kept)


def even_split(page_count: int, n: int) -> List[List[int]]:
    """
    Split pages 0..page_count-1 into n contiguous runs whose sizes differ by at most one.

    The first `page_count % n` students get the extra page.
    """
    if n <= 0:
        return []
    if page_count <= 0:
        return [[] for _ in range(n)]

    base, remainder = divmod(page_count, n)
    out: List[List[int]] = []
    cursor = 0
    for i in range(n):
        size = base + (1 if i < remainder else 0)
        out.append(list(range(cursor, cursor + size)))
        cursor += size
    return out


def is_header_page(text: Optional[str]) -> bool:
    lowered = (text or "").lower()
    return "name:" in lowered and "roll:" in lowered


def infer_blocks_from_page_texts(page_texts: Sequence[str]) -> List[List[int]]:
    """Contiguous page ranges starting at each Name/Roll header page."""
    starts = [i for i, text in enumerate(page_texts) if is_header_page(text)]
    blocks: List[List[int]] = []
    for n, start in enumerate(starts):
        end = starts[n + 1] if n + 1 < len(starts) else len(page_texts)
        blocks.append(list(range(start, end)))
    return blocks


def _align_blocks(blocks: List[List[int]], page_count: int, n: int) -> List[List[int]]:
    """Assign inferred blocks in order, then spread uncovered pages over the rest."""
    if len(blocks) == n:
        return blocks

    if len(blocks) < n:
        # A missed header would otherwise fold every later student into the last block
        closed = blocks[:-1]
        cap = max((len(b) for b in closed), default=1)
        blocks = closed + [blocks[-1][:cap]]

    assigned = blocks[:n]
    covered = {i for block in assigned for i in block}
    leftover = [i for i in range(page_count) if i not in covered]

    remaining = n - len(assigned)
    if remaining <= 0:
        return assigned

    spill = even_split(len(leftover), remaining)
    return assigned + [[leftover[i] for i in run] for run in spill]


def map_pages_to_students(
    page_count: int,
    students: Sequence[StudentRecord],
    page_texts: Optional[Sequence[str]] = None,
) -> PageMapping:
    """
    Page index lists for every student, in roster order.

    Args:
        page_count: Pages in the source PDF
        students: Graded records, in detection order
        page_texts: Per-page text used for header inference (optional)

    Returns:
        PageMapping with one list per student
    """
    n = len(students)
    if n == 0:
        return PageMapping([], SOURCE_EVEN)

    if all(s.page_indices for s in students):
        pages = [normalize_indices(s.page_indices or [], page_count) for s in students]
        logger.debug(f"Using explicit page indices for {n} students")
        return PageMapping(pages, SOURCE_EXPLICIT)

    if page_texts:
        blocks = infer_blocks_from_page_texts(list(page_texts)[:page_count])
        if blocks:
            if len(blocks) != n:
                logger.warning(
                    f"Header inference found {len(blocks)} blocks for {n} students; "
                    f"spreading uncovered pages"
                )
            aligned = _align_blocks(blocks, page_count, n)
            pages = [normalize_indices(p, page_count) for p in aligned]
            return PageMapping(pages, SOURCE_HEADERS)

    pages = [normalize_indices(p, page_count) for p in even_split(page_count, n)]
    return PageMapping(pages, SOURCE_EVEN)


def map_pdf_pages_to_students(
    pdf_bytes: bytes,
    students: Sequence[StudentRecord],
    page_texts: Optional[Sequence[str]] = None,
) -> PageMapping:
    """
    map_pages_to_students for a PDF.

    Header inference reads the stored per-page OCR text when it carries
    any Name/Roll header; the PDF's own text layer is the fallback, which
    only helps born-digital bundles.
    """
    text_layer = extract_page_texts(pdf_bytes)
    count = len(text_layer)

    ocr_texts = list(page_texts or [])[:count]
    if any(is_header_page(t) for t in ocr_texts):
        ocr_texts += [""] * (count - len(ocr_texts))
        return map_pages_to_students(count, students, ocr_texts)
    return map_pages_to_students(count, students, text_layer)
