"""
Utility functions for the quiz grading backend.
"""

from .text_utils import (
    sanitize,
    clean_extracted_text,
    is_meaningful,
    slugify,
    solution_sentinel,
    unknown_sentinel,
    to_win_ansi,
    wrap_lines,
)

from .timing import (
    Timer,
    format_duration,
)

__all__ = [
    # Text utilities
    "sanitize",
    "clean_extracted_text",
    "is_meaningful",
    "slugify",
    "solution_sentinel",
    "unknown_sentinel",
    "to_win_ansi",
    "wrap_lines",

    # Timing utilities
    "Timer",
    "format_duration",
]
