"""
OCR run models: the per-request naming context, per-engine results and
the run report returned by the cascade.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any, TYPE_CHECKING

from ..utils.text_utils import (
    is_meaningful,
    solution_sentinel,
    unknown_sentinel,
)

if TYPE_CHECKING:
    from .quiz import Quiz


@dataclass(frozen=True)
class OcrNamingContext:
    """
    Hints that shape the Name/Roll header the LLM engines prepend.

    Built once per OCR request and passed down to every engine.
    """
    first_is_solution: bool = False
    quiz_title: Optional[str] = None
    section: Optional[str] = None
    pages_per_student: int = 1

    @classmethod
    def neutral(cls) -> "OcrNamingContext":
        return cls()

    @classmethod
    def for_quiz(cls, quiz: "Quiz") -> "OcrNamingContext":
        return cls(
            first_is_solution=quiz.first_paper_is_solution,
            quiz_title=quiz.title or None,
            section=quiz.section or None,
            pages_per_student=max(1, quiz.pages_per_student),
        )

    @property
    def block_size(self) -> int:
        return max(1, int(self.pages_per_student or 1))

    @property
    def solution_name(self) -> str:
        return solution_sentinel(self.quiz_title, self.section)

    @property
    def unknown_name(self) -> str:
        return unknown_sentinel(self.quiz_title, self.section)

    def is_block_start(self, page_index: int) -> bool:
        return page_index % self.block_size == 0

    def is_solution_page(self, page_index: int) -> bool:
        return self.first_is_solution and page_index == 0


@dataclass
class OcrResult:
    """
    Outcome of one engine over one document.

    `page_texts` holds one entry per source page, in page order, with ""
    for pages the engine dropped; `text` joins the kept pages.
    """
    engine: str
    text: str = ""
    ok: bool = True
    reason: str = ""
    pages_total: int = 0
    pages_kept: int = 0
    duration_sec: float = 0.0
    page_texts: List[str] = field(default_factory=list)

    @classmethod
    def success(
        cls,
        engine: str,
        text: str,
        pages_total: int = 0,
        pages_kept: int = 0,
        page_texts: Optional[List[str]] = None,
    ) -> "OcrResult":
        return cls(
            engine=engine,
            text=text,
            ok=True,
            pages_total=pages_total,
            pages_kept=pages_kept,
            page_texts=list(page_texts or []),
        )

    @classmethod
    def from_pages(cls, engine: str, page_texts: List[str]) -> "OcrResult":
        """Success result from page-aligned texts ("" marks a dropped page)."""
        kept = [t for t in page_texts if t]
        return cls.success(
            engine,
            "\n\n".join(kept),
            pages_total=len(page_texts),
            pages_kept=len(kept),
            page_texts=page_texts,
        )

    @classmethod
    def failure(cls, engine: str, reason: str) -> "OcrResult":
        return cls(engine=engine, text="", ok=False, reason=reason)

    @property
    def is_meaningful(self) -> bool:
        return is_meaningful(self.text)


@dataclass
class EngineAttempt:
    """One step of a cascade run, kept for the run report."""
    engine: str
    ok: bool
    meaningful: bool
    chars: int
    reason: str = ""
    duration_sec: float = 0.0

    @classmethod
    def from_result(cls, result: OcrResult) -> "EngineAttempt":
        return cls(
            engine=result.engine,
            ok=result.ok,
            meaningful=result.is_meaningful,
            chars=len(result.text),
            reason=result.reason or ("" if result.is_meaningful else "below quality gate"),
            duration_sec=round(result.duration_sec, 3),
        )


@dataclass
class OcrRunReport:
    """Everything a caller needs to decide whether to retry with another engine."""
    mode: str
    text: str = ""
    winner: Optional[str] = None
    attempts: List[EngineAttempt] = field(default_factory=list)
    duration_sec: float = 0.0
    # Page-aligned text from the engine whose output was kept
    page_texts: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def low_quality(self) -> bool:
        return self.winner is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "winner": self.winner,
            "chars": len(self.text),
            "pages_with_text": sum(1 for t in self.page_texts if t),
            "low_quality": self.low_quality,
            "duration_sec": round(self.duration_sec, 3),
            "attempts": [asdict(a) for a in self.attempts],
        }
