"""
Text normalization helpers shared by the OCR engines and the PDF annotator.

All functions are pure and never raise on odd input.
"""

from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Union

# Printable ASCII plus newline
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")
_MULTI_SPACE = re.compile(r"\s{2,}")
_MULTI_NEWLINE = re.compile(r"\n{3,}")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")

MEANINGFUL_MIN_ALNUM = 30

SOLUTION_PREFIX = "solution_paper"
UNKNOWN_PREFIX = "unknown"

# Replacements applied before the WinAnsi range filter
_WIN_ANSI_MAP = (
    (re.compile(r"[‘’′]"), "'"),
    (re.compile(r"[“”″]"), '"'),
    (re.compile(r"[–—]"), "-"),
    (re.compile(r"[•·]"), "-"),
    (re.compile(r"…"), "..."),
    (re.compile(r"[↳↵→⇒➜➔➤⟶⟹]"), "->"),
    (re.compile(r"[←⟵]"), "<-"),
    (re.compile(r"[▲△▴▵]"), "^"),
    (re.compile(r"[▼▽▾▿]"), "v"),
    (re.compile(r"[✓✔✅]"), "v"),
    (re.compile(r"[✗✘❌]"), "x"),
)
_NON_WIN_ANSI = re.compile(r"[^\n\r\x20-\x7E]")
_SPACES_TABS = re.compile(r"[ \t]+")


def sanitize(text: Optional[str]) -> str:
    """Drop characters outside printable ASCII + newline, collapse whitespace runs, trim."""
    if not text:
        return ""
    text = _NON_PRINTABLE.sub("", text)
    text = _MULTI_SPACE.sub(" ", text)
    return text.strip()


def clean_extracted_text(text: Optional[str]) -> str:
    """Final normalization applied to cascade output before it is persisted."""
    if not text:
        return ""
    text = _NON_PRINTABLE.sub("", text)
    text = _MULTI_SPACE.sub(" ", text)
    text = _MULTI_NEWLINE.sub("\n\n", text)
    return text.strip()


def alnum_count(text: Optional[str]) -> int:
    """Number of ASCII letters and digits in text."""
    if not text:
        return 0
    return len(_NON_ALNUM.sub("", text))


def is_meaningful(text: Optional[str]) -> bool:
    """Quality gate: at least 30 ASCII alphanumeric characters."""
    return alnum_count(text) >= MEANINGFUL_MIN_ALNUM


def slugify(value: Optional[str]) -> str:
    """Lowercase, trim, whitespace runs to '_', keep only [a-z0-9_-]."""
    value = (value or "").lower().strip()
    value = re.sub(r"\s+", "_", value)
    return re.sub(r"[^a-z0-9_\-]", "", value)


def _sentinel(prefix: str, title: Optional[str], section: Optional[str]) -> str:
    title_slug = slugify(title)
    section_slug = slugify(section)
    name = f"{prefix}_{title_slug}"
    if section_slug:
        name += f"_{section_slug}"
    return name.strip("_")


def solution_sentinel(title: Optional[str], section: Optional[str] = None) -> str:
    """Identity string written in place of name/roll on the solution key paper."""
    return _sentinel(SOLUTION_PREFIX, title, section)


def unknown_sentinel(title: Optional[str], section: Optional[str] = None) -> str:
    """Identity string used when no student name/roll is legible."""
    return _sentinel(UNKNOWN_PREFIX, title, section)


def _has_prefix(value: str, prefix: str) -> bool:
    value = value.strip().lower()
    return value == prefix or value.startswith(prefix + "_")


def is_solution_sentinel(value: Optional[str]) -> bool:
    return _has_prefix(value or "", SOLUTION_PREFIX)


def is_unknown_sentinel(value: Optional[str]) -> bool:
    return _has_prefix(value or "", UNKNOWN_PREFIX)


def to_win_ansi(text: Optional[str]) -> str:
    """
    Fold text into the range the standard PDF base-14 fonts can render.

    Smart quotes, dashes, bullets, arrows and check marks map to ASCII
    look-alikes; anything else outside printable ASCII is dropped.
    """
    if not text:
        return ""
    s = unicodedata.normalize("NFKD", str(text))
    for pattern, replacement in _WIN_ANSI_MAP:
        s = pattern.sub(replacement, s)
    s = _NON_WIN_ANSI.sub("", s)
    s = _SPACES_TABS.sub(" ", s)
    return s.strip()


def wrap_lines(text: Optional[str], max_chars: int = 90) -> List[str]:
    """Greedy word wrap at max_chars; a single over-long word gets its own line."""
    folded = to_win_ansi(text)
    if not folded:
        return []
    out: List[str] = []
    current = ""
    for word in folded.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chars:
            if current:
                out.append(current)
            current = word
        else:
            current = candidate
    if current:
        out.append(current)
    return out


def format_number(value: Union[int, float, None], missing: str = "0") -> str:
    """Render a score without a trailing '.0' for whole numbers."""
    if value is None:
        return missing
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
