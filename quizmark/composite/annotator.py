"""
PyMuPDF drawing for graded pages.

Draws onto a page already copied into the output document:
- a purple "CHECKED" stamp in the centre
- a green score badge in the top-right corner
- a white feedback panel along the bottom edge
- a footer with the student's identity
- an optional yellow role tag in the top-left corner

PyMuPDF coordinates grow downwards from the top-left corner. Only the
base-14 fonts are used, so every string goes through to_win_ansi first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from ..models import StudentRecord
from ..utils.text_utils import to_win_ansi, wrap_lines, format_number

Color = Tuple[float, float, float]

GREEN: Color = (0.05, 0.55, 0.05)
PURPLE: Color = (0.55, 0.2, 0.85)
RED_PEN: Color = (0.85, 0.05, 0.05)
YELLOW: Color = (1, 1, 0.55)
WHITE: Color = (1, 1, 1)
INK: Color = (0.15, 0.15, 0.15)
TAG_BORDER: Color = (0.2, 0.2, 0.2)

FONT_REGULAR = "helv"
FONT_BOLD = "hebo"
FONT_HAND = "heit"
FONT_HAND_BOLD = "hebi"

MARGIN = 36
WRAP_CHARS = 90
SOLUTION_TITLE_PREFIX = "Solution Paper"


@dataclass
class PanelLine:
    text: str
    small: bool = False


def panel_lines(student: StudentRecord) -> List[PanelLine]:
    """Question breakdown and feedback lines for the bottom panel."""
    lines: List[PanelLine] = []

    for q in student.questions:
        number = format_number(q.number, missing="?")
        head = f"Q{number}: {format_number(q.marks)}/{format_number(q.max_marks, missing='-')}"
        if q.topic:
            head += f" - {q.topic}"
        lines.append(PanelLine(to_win_ansi(head)))

        if q.subparts:
            # Fold each piece separately; to_win_ansi collapses the layout spaces
            subs = "   ".join(
                to_win_ansi(f"{s.label or '?'}:{format_number(s.marks)}/{format_number(s.max_marks, missing='-')}")
                for s in q.subparts
            )
            lines.append(PanelLine(f"   - {subs}", small=True))

        for wrapped in wrap_lines(q.remarks, WRAP_CHARS):
            lines.append(PanelLine(f"   -> {wrapped}", small=True))

    if student.remarks:
        lines.append(PanelLine(""))
        lines.append(PanelLine("Feedback:"))
        lines.extend(PanelLine(w, small=True) for w in wrap_lines(student.remarks, WRAP_CHARS))

    return lines


def fit_to_width(text: str, fontname: str, fontsize: float, max_width: float) -> str:
    """Trim text from the right until it fits max_width points."""
    if fitz.get_text_length(text, fontname=fontname, fontsize=fontsize) <= max_width:
        return text
    while text and fitz.get_text_length(text + "...", fontname=fontname, fontsize=fontsize) > max_width:
        text = text[:-1]
    return text + "..." if text else ""


class PageAnnotator:
    """Draws the graded overlay on one page."""

    def __init__(
        self,
        panel_height: float = 200,
        panel_max_width: float = 460,
        font_size: float = 11,
        small_size: float = 9,
        badge_radius: float = 48,
        stamp_radius: float = 90,
    ):
        self.panel_height = panel_height
        self.panel_max_width = panel_max_width
        self.font_size = font_size
        self.small_size = small_size
        self.badge_radius = badge_radius
        self.stamp_radius = stamp_radius

    def annotate(self, page: fitz.Page, student: StudentRecord, role: Optional[str] = None) -> None:
        """Full overlay; `role` adds the corner tag and, for Solution, the panel prefix."""
        self.draw_checked_stamp(page)
        self.draw_score_badge(page, student)
        prefix = SOLUTION_TITLE_PREFIX if role == "Solution" else None
        self.draw_feedback_panel(page, student, title_prefix=prefix)
        self.draw_footer(page, student)
        if role:
            self.draw_role_tag(page, role)

    def draw_checked_stamp(self, page: fitz.Page) -> None:
        rect = page.rect
        center = fitz.Point(rect.width / 2, rect.height / 2)
        r = self.stamp_radius

        page.draw_circle(center, r, color=None, fill=PURPLE, fill_opacity=0.12, width=0)
        for radius, width in ((r, 3), (r - 8, 2), (r - 16, 1.5)):
            page.draw_circle(center, radius, color=PURPLE, width=width, stroke_opacity=0.9)

        text = "CHECKED"
        size = 22
        text_width = fitz.get_text_length(text, fontname=FONT_BOLD, fontsize=size)
        origin = fitz.Point(center.x - text_width / 2, center.y + size / 2 - 4)
        page.insert_text(
            origin,
            text,
            fontsize=size,
            fontname=FONT_BOLD,
            color=PURPLE,
            fill_opacity=0.9,
            morph=(center, fitz.Matrix(-18)),
        )

        for dy in (-(r - 16), r - 16):
            page.draw_circle(fitz.Point(center.x, center.y + dy), 3.2, color=None, fill=PURPLE, fill_opacity=0.9)

    def draw_score_badge(self, page: fitz.Page, student: StudentRecord) -> None:
        rect = page.rect
        r = self.badge_radius
        center = fitz.Point(rect.width - r - MARGIN, r + MARGIN)
        page.draw_circle(center, r, color=GREEN, width=4)

        score = to_win_ansi(f"{format_number(student.total_score)}/{format_number(student.max_score)}")
        score_width = fitz.get_text_length(score, fontname=FONT_BOLD, fontsize=16)
        page.insert_text(
            fitz.Point(center.x - score_width / 2, center.y + 6),
            score,
            fontsize=16,
            fontname=FONT_BOLD,
            color=GREEN,
        )

        label_width = fitz.get_text_length("Marks", fontname=FONT_REGULAR, fontsize=9)
        page.insert_text(
            fitz.Point(center.x - label_width / 2, center.y + 22),
            "Marks",
            fontsize=9,
            fontname=FONT_REGULAR,
            color=GREEN,
        )

    def panel_rect(self, page: fitz.Page) -> fitz.Rect:
        rect = page.rect
        width = min(self.panel_max_width, rect.width - MARGIN * 2)
        bottom = rect.height - MARGIN
        return fitz.Rect(MARGIN, bottom - self.panel_height, MARGIN + width, bottom)

    def draw_feedback_panel(
        self,
        page: fitz.Page,
        student: StudentRecord,
        title_prefix: Optional[str] = None,
    ) -> int:
        """Draw the panel; returns how many body lines fit."""
        panel = self.panel_rect(page)
        page.draw_rect(panel, color=GREEN, fill=WHITE, width=2, fill_opacity=0.98)

        text_width = panel.width - 20
        header = (
            f"{student.display_name} ({student.display_roll}) - "
            f"{format_number(student.total_score)} / {format_number(student.max_score)}"
        )
        if title_prefix:
            header = f"{title_prefix} {header}"
        page.insert_text(
            fitz.Point(panel.x0 + 10, panel.y0 + 20),
            fit_to_width(to_win_ansi(header), FONT_HAND_BOLD, 13, text_width),
            fontsize=13,
            fontname=FONT_HAND_BOLD,
            color=RED_PEN,
        )

        drawn = 0
        cursor = panel.y0 + 38
        for line in panel_lines(student):
            if cursor > panel.y1 - 12:
                break
            size = self.small_size if line.small else self.font_size
            if line.text:
                page.insert_text(
                    fitz.Point(panel.x0 + 10, cursor),
                    fit_to_width(line.text, FONT_HAND, size, text_width),
                    fontsize=size,
                    fontname=FONT_HAND,
                    color=RED_PEN,
                )
            drawn += 1
            cursor += size + 3
        return drawn

    def draw_footer(self, page: fitz.Page, student: StudentRecord) -> None:
        rect = page.rect
        footer = to_win_ansi(f"{student.display_name} ({student.display_roll})")
        width = fitz.get_text_length(footer, fontname=FONT_REGULAR, fontsize=9)
        page.insert_text(
            fitz.Point(rect.width - width - MARGIN, rect.height - 24),
            footer,
            fontsize=9,
            fontname=FONT_REGULAR,
            color=INK,
        )

    def draw_role_tag(self, page: fitz.Page, role: str) -> None:
        # Top-left keeps the tag clear of the score badge
        tag = fitz.Rect(MARGIN, MARGIN, MARGIN + 110, MARGIN + 28)
        page.draw_rect(tag, color=TAG_BORDER, fill=YELLOW, width=1.5, fill_opacity=0.95)

        text = to_win_ansi(role)
        size = 12
        width = fitz.get_text_length(text, fontname=FONT_BOLD, fontsize=size)
        page.insert_text(
            fitz.Point(tag.x0 + (tag.width - width) / 2, tag.y0 + (tag.height + size) / 2 - 3),
            text,
            fontsize=size,
            fontname=FONT_BOLD,
            color=INK,
        )
