"""
Quiz and graded-result data models.

Graded records come back from the grading model as loosely shaped JSON,
so every `from_dict` here is tolerant: missing numbers become 0 (or None
where the annotator shows a placeholder), missing strings become "",
missing lists become [].
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Any, List, Union

from ..utils.text_utils import is_solution_sentinel, is_unknown_sentinel

Number = Union[int, float]


def _as_number(value: Any, default: Optional[Number] = 0) -> Optional[Number]:
    """Coerce JSON-ish values to int/float, falling back to default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
        try:
            number = float(value)
        except ValueError:
            return default
        return int(number) if number.is_integer() else number
    return default


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


class StudentRole(str, enum.Enum):
    """Who a graded paper belongs to."""
    SOLUTION = "solution"
    UNKNOWN = "unknown"
    STUDENT = "student"

    @classmethod
    def from_identity(cls, name: Optional[str], roll: Optional[str] = None) -> "StudentRole":
        """Derive a role from the identity sentinels written during OCR."""
        if is_solution_sentinel(name) or is_solution_sentinel(roll):
            return cls.SOLUTION
        if is_unknown_sentinel(name) or is_unknown_sentinel(roll):
            return cls.UNKNOWN
        return cls.STUDENT

    @classmethod
    def parse(cls, value: Any) -> Optional["StudentRole"]:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass
class Subpart:
    """Marks for one labelled subpart of a question (e.g. 'a', 'ii')."""
    label: str = ""
    marks: Number = 0
    max_marks: Optional[Number] = None
    remarks: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Subpart":
        if not isinstance(data, dict):
            return cls()
        return cls(
            label=_as_text(data.get("label")),
            marks=_as_number(data.get("marks")),
            max_marks=_as_number(data.get("max_marks"), None),
            remarks=_as_text(data.get("remarks")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "marks": self.marks,
            "max_marks": self.max_marks,
            "remarks": self.remarks,
        }


@dataclass
class Question:
    """Marks awarded for one rubric question."""
    number: Optional[Number] = None
    marks: Number = 0
    max_marks: Optional[Number] = None
    topic: str = ""
    remarks: str = ""
    subparts: List[Subpart] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Question":
        if not isinstance(data, dict):
            return cls()
        return cls(
            number=_as_number(data.get("number"), None),
            marks=_as_number(data.get("marks")),
            max_marks=_as_number(data.get("max_marks"), None),
            topic=_as_text(data.get("topic")),
            remarks=_as_text(data.get("remarks")),
            subparts=[Subpart.from_dict(s) for s in _as_list(data.get("subparts"))],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "number": self.number,
            "marks": self.marks,
            "max_marks": self.max_marks,
            "remarks": self.remarks,
        }
        if self.topic:
            data["topic"] = self.topic
        if self.subparts:
            data["subparts"] = [s.to_dict() for s in self.subparts]
        return data


@dataclass
class StudentRecord:
    """
    One graded paper, in the order the grader detected it.

    `role` is set from an explicit "role" key when the record carries one,
    otherwise from the identity sentinels in name/roll.
    """
    student_name: str = ""
    roll_number: str = ""
    total_score: Number = 0
    max_score: Number = 0
    remarks: str = ""
    questions: List[Question] = field(default_factory=list)
    role: StudentRole = StudentRole.STUDENT

    # Explicit page assignment, when the caller already knows it
    page_indices: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "StudentRecord":
        if isinstance(data, StudentRecord):
            return data
        if not isinstance(data, dict):
            return cls()

        name = _as_text(data.get("student_name") or data.get("name"))
        roll = _as_text(data.get("roll_number") or data.get("roll"))
        role = StudentRole.parse(data.get("role")) if data.get("role") else None

        page_indices = data.get("page_indices")
        if isinstance(page_indices, (list, tuple)):
            page_indices = [i for i in page_indices if isinstance(i, int) and not isinstance(i, bool)]
        else:
            page_indices = None

        return cls(
            student_name=name,
            roll_number=roll,
            total_score=_as_number(data.get("total_score")),
            max_score=_as_number(data.get("max_score")),
            remarks=_as_text(data.get("remarks")),
            questions=[Question.from_dict(q) for q in _as_list(data.get("questions"))],
            role=role or StudentRole.from_identity(name, roll),
            page_indices=page_indices,
        )

    @property
    def display_name(self) -> str:
        return self.student_name or "Student"

    @property
    def display_roll(self) -> str:
        return self.roll_number or "-"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "student_name": self.student_name,
            "roll_number": self.roll_number,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "remarks": self.remarks,
            "questions": [q.to_dict() for q in self.questions],
            "role": self.role.value,
        }
        if self.page_indices is not None:
            data["page_indices"] = list(self.page_indices)
        return data


@dataclass
class Quiz:
    """A quiz row: the scanned answer scripts plus OCR and grading output."""
    id: str
    title: str = ""
    section: str = ""
    original_pdf: str = ""
    pages_per_student: int = 1
    first_paper_is_solution: bool = True
    extracted_text: str = ""
    # Per-page OCR text, aligned with the PDF pages
    page_texts: List[str] = field(default_factory=list)
    graded: List[StudentRecord] = field(default_factory=list)
    created_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Quiz":
        """Build from a database row using the stored column names."""
        pages = _as_number(row.get("no_of_pages"), 1) or 1
        graded_raw = row.get("graded_json")
        return cls(
            id=str(row.get("id", "")),
            title=_as_text(row.get("title")),
            section=_as_text(row.get("section")),
            original_pdf=_as_text(row.get("original_pdf")),
            pages_per_student=max(1, int(pages)),
            # Only an explicit false disables the solution key
            first_paper_is_solution=row.get("read_first_paper_is_solution") is not False,
            extracted_text=row.get("extracted_text") or "",
            page_texts=[_as_text(t) for t in _as_list(row.get("page_texts"))],
            graded=[StudentRecord.from_dict(r) for r in _as_list(graded_raw)],
            created_at=str(row.get("created_at") or ""),
        )
