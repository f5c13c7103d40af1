"""
Helpers around the grading model's output.

The grader itself is an external collaborator. These functions turn its
loosely formatted reply into StudentRecords, enforce full marks on the
solution key, validate instructor-supplied rubrics and export results.
"""

from __future__ import annotations

import copy
import io
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from .exceptions import ValidationError
from .models import StudentRecord, StudentRole

SOLUTION_QUESTION_REMARK = "Solution key (full marks)"
SOLUTION_PAPER_REMARK = "Solution paper (awarded full marks)."

CSV_COLUMNS = [
    "quiz_id",
    "created_at",
    "student_name",
    "roll_number",
    "total_score",
    "max_score",
    "remarks",
]

MAX_RUBRIC_QUESTIONS = 60
MAX_QUESTION_MARKS = 200
MAX_SUBPARTS = 10
MAX_SUBPART_LABEL = 10
MAX_SUBPART_MARKS = 100

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


def strip_code_fences(text: str) -> str:
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def _json_slice(text: str) -> Any:
    """Parse the outermost [...] (preferred) or {...} span of text."""
    for open_ch, close_ch in (("[", "]"), ("{", "}")):
        start, end = text.find(open_ch), text.rfind(close_ch)
        if start != -1 and end > start:
            parsed = _loads(text[start:end + 1])
            if parsed is not None:
                return parsed
    return None


def normalize_graded_to_array(raw: Union[str, list, dict, None]) -> List[dict]:
    """
    Coerce a grader reply into a list of record dicts.

    Accepts an already-parsed list or dict, or text that may be wrapped in
    Markdown code fences or surrounded by prose. Returns [] when nothing
    parseable is found.
    """
    if raw is None:
        return []

    parsed: Any = raw
    if isinstance(raw, str):
        text = strip_code_fences(raw.strip())
        if not text:
            return []
        parsed = _loads(text)
        if parsed is None:
            parsed = _json_slice(text)

    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, dict)]


def parse_graded(raw: Union[str, list, dict, None]) -> List[StudentRecord]:
    return [StudentRecord.from_dict(item) for item in normalize_graded_to_array(raw)]


def _append_remark(existing: str, remark: str) -> str:
    return f"{existing} | {remark}" if existing else remark


def force_solution_full_marks(record: StudentRecord) -> StudentRecord:
    """
    Copy of record with every question at its maximum.

    Questions with subparts score the sum of their subpart maxima.
    """
    solved = copy.deepcopy(record)

    total = 0
    computed_max = 0
    for q in solved.questions:
        if q.subparts:
            sub_total = 0
            for sp in q.subparts:
                sp.marks = sp.max_marks or 0
                sp.remarks = _append_remark(sp.remarks, SOLUTION_QUESTION_REMARK)
                sub_total += sp.marks
            q.marks = sub_total
            computed_max += sub_total
        else:
            q.marks = q.max_marks or 0
            computed_max += q.marks
        q.remarks = _append_remark(q.remarks, SOLUTION_QUESTION_REMARK)
        total += q.marks

    solved.total_score = total
    if not solved.max_score or solved.max_score <= 0:
        solved.max_score = computed_max or total
    solved.remarks = _append_remark(solved.remarks, SOLUTION_PAPER_REMARK)
    solved.role = StudentRole.SOLUTION
    return solved


def apply_solution_key(records: Sequence[StudentRecord], first_is_solution: bool) -> List[StudentRecord]:
    """Award full marks to the first record when it is the solution key."""
    records = list(records)
    if first_is_solution and records:
        records[0] = force_solution_full_marks(records[0])
    return records


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _rubric_error(message: str, field_name: str, value: Any = None, expected: Optional[str] = None):
    return ValidationError(message, field_name=field_name, field_value=value, expected=expected)


def validate_rubric(rubric: Optional[List[Dict[str, Any]]]) -> None:
    """
    Check a instructor-supplied rubric before it goes into a grading prompt.

    A missing rubric is valid.

    Raises:
        ValidationError: on the first violation found
    """
    if rubric is None:
        return
    if not isinstance(rubric, list):
        raise _rubric_error("Rubric must be a list", "rubric", type(rubric).__name__, "list")
    if len(rubric) > MAX_RUBRIC_QUESTIONS:
        raise _rubric_error("Too many rubric questions", "rubric", len(rubric), f"<= {MAX_RUBRIC_QUESTIONS}")

    for i, item in enumerate(rubric):
        where = f"rubric[{i}]"
        if not isinstance(item, dict):
            raise _rubric_error("Rubric item must be an object", where)

        number = item.get("number")
        if not _is_number(number) or number <= 0:
            raise _rubric_error("Question number must be positive", f"{where}.number", number, "> 0")

        max_marks = item.get("max_marks")
        if max_marks is not None and (not _is_number(max_marks) or not 0 <= max_marks <= MAX_QUESTION_MARKS):
            raise _rubric_error(
                "Invalid max_marks", f"{where}.max_marks", max_marks, f"0..{MAX_QUESTION_MARKS}"
            )

        topic = item.get("topic")
        if topic is not None and not isinstance(topic, str):
            raise _rubric_error("Topic must be text", f"{where}.topic", topic)

        subparts = item.get("subparts")
        if subparts is None:
            continue
        if not isinstance(subparts, list) or len(subparts) > MAX_SUBPARTS:
            raise _rubric_error("Invalid subparts", f"{where}.subparts", expected=f"list of <= {MAX_SUBPARTS}")

        for j, sp in enumerate(subparts):
            sp_where = f"{where}.subparts[{j}]"
            if not isinstance(sp, dict):
                raise _rubric_error("Subpart must be an object", sp_where)
            label = sp.get("label")
            if not isinstance(label, str) or len(label) > MAX_SUBPART_LABEL:
                raise _rubric_error(
                    "Invalid subpart label", f"{sp_where}.label", label, f"text of <= {MAX_SUBPART_LABEL} chars"
                )
            sp_max = sp.get("max_marks")
            if not _is_number(sp_max) or not 0 <= sp_max <= MAX_SUBPART_MARKS:
                raise _rubric_error(
                    "Invalid subpart max_marks", f"{sp_where}.max_marks", sp_max, f"0..{MAX_SUBPART_MARKS}"
                )


def results_frame(quiz_id: str, created_at: str, records: Sequence[StudentRecord]) -> pd.DataFrame:
    rows = [
        {
            "quiz_id": quiz_id,
            "created_at": created_at,
            "student_name": r.student_name,
            "roll_number": r.roll_number,
            "total_score": r.total_score,
            "max_score": r.max_score,
            "remarks": r.remarks,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_results_csv(quiz_id: str, created_at: str, records: Sequence[StudentRecord]) -> str:
    """One CSV row per graded record."""
    buffer = io.StringIO()
    results_frame(quiz_id, created_at, records).to_csv(buffer, index=False, lineterminator="\n")
    return buffer.getvalue()
