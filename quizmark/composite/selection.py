"""
Representative-page selection for the composite result pack.

Graded records are trusted in arrival order: student i owns the block that
starts at page i * pages_per_student. Only that first page is selected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..models import StudentRecord, StudentRole
from ..segmentation import block_start_indices

ROLE_SOLUTION = "Solution"
ROLE_BEST = "Best"
ROLE_AVG = "Avg"
ROLE_LOW = "Low"


@dataclass
class MappedStudent:
    """A graded record tied to the first page of its block."""
    index: int
    page_index: int
    student: StudentRecord


@dataclass
class Selection:
    """Picked representatives; best/avg/low are None only when nothing was mapped."""
    solution: Optional[MappedStudent] = None
    best: Optional[MappedStudent] = None
    avg: Optional[MappedStudent] = None
    low: Optional[MappedStudent] = None
    pool: List[MappedStudent] = field(default_factory=list)

    def ordered(self) -> List[Tuple[str, MappedStudent]]:
        """(role tag, entry) pairs in output order: Solution?, Best, Avg, Low."""
        out: List[Tuple[str, MappedStudent]] = []
        if self.solution is not None:
            out.append((ROLE_SOLUTION, self.solution))
        for tag, entry in ((ROLE_BEST, self.best), (ROLE_AVG, self.avg), (ROLE_LOW, self.low)):
            if entry is not None:
                out.append((tag, entry))
        return out

    @property
    def page_indices(self) -> List[int]:
        return [entry.page_index for _, entry in self.ordered()]


def map_representatives(
    graded: Sequence[StudentRecord],
    page_count: int,
    pages_per_student: int,
) -> List[MappedStudent]:
    """First page of each student's block, truncated to what the PDF can hold."""
    starts = block_start_indices(page_count, pages_per_student, len(graded))
    return [MappedStudent(i, page_index, graded[i]) for i, page_index in enumerate(starts)]


def pick_solution(mapped: Sequence[MappedStudent]) -> Optional[MappedStudent]:
    """First SOLUTION-role record, else first UNKNOWN-role record, else mapped[0]."""
    if not mapped:
        return None
    for role in (StudentRole.SOLUTION, StudentRole.UNKNOWN):
        for entry in mapped:
            if entry.student.role == role:
                return entry
    return mapped[0]


def rank_by_score(pool: Sequence[MappedStudent]) -> List[MappedStudent]:
    """Descending total_score; equal scores keep arrival order."""
    return sorted(pool, key=lambda m: m.student.total_score or 0, reverse=True)


def select_roles(mapped: Sequence[MappedStudent], first_is_solution: bool) -> Selection:
    """
    Pick Solution (optional), Best, Avg and Low.

    Avg is the middle entry of the ranked pool, an actual paper rather than
    a computed mean. With an empty pool all three fall back to the solution
    entry (or the first mapped one).
    """
    mapped = list(mapped)
    solution = pick_solution(mapped) if first_is_solution else None
    pool = [m for m in mapped if m is not solution]

    ranked = rank_by_score(pool)
    fallback = pool[0] if pool else (mapped[0] if mapped else None)

    if not ranked:
        return Selection(solution, fallback, fallback, fallback, pool)

    return Selection(
        solution=solution,
        best=ranked[0],
        avg=ranked[len(ranked) // 2],
        low=ranked[-1],
        pool=pool,
    )
