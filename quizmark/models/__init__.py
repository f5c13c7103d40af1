"""
Data models for the quiz grading backend.

These models mirror the stored quiz row and the grader's per-student JSON
and are designed to round-trip through JSON columns.
"""

from .quiz import Quiz, StudentRecord, Question, Subpart, StudentRole
from .ocr import OcrNamingContext, OcrResult, EngineAttempt, OcrRunReport

__all__ = [
    # Quiz models
    "Quiz",
    "StudentRecord",
    "Question",
    "Subpart",
    "StudentRole",

    # OCR run models
    "OcrNamingContext",
    "OcrResult",
    "EngineAttempt",
    "OcrRunReport",
]
