"""
System instructions for the vision-language OCR engines.

The header convention here ("Name: ...", "Roll: ...", "----" on the first
page of each student's block) is what page segmentation later looks for,
and the sentinel values are what composite selection recognises.
"""

from __future__ import annotations

from ..models import OcrNamingContext

BASE_OCR_PROMPT = (
    "You are an OCR engine. Extract ALL legible text from the provided page image. "
    "Preserve line breaks and reading order. Include printed and handwritten text, math, "
    "labels in diagrams, and table cells (use tabs between cells). Do NOT summarize or omit content. "
    "If a page is blank or unreadable, return an empty string."
)

NO_HEADER_RULES = (
    "Return raw text only for this page. Do NOT prepend any Name/Roll header for this page."
)

USER_INSTRUCTION = "Extract the text following the instructions above."


def build_header_rules(page_index: int, naming: OcrNamingContext) -> str:
    """Header instruction for one page, depending on its role in the student block."""
    if not naming.is_block_start(page_index):
        return NO_HEADER_RULES

    is_solution = naming.is_solution_page(page_index)
    if is_solution:
        value_rule = (
            "- If CURRENT_PAPER_IS_SOLUTION is true, set BOTH Name and Roll to "
            f"'{naming.solution_name}'.\n"
        )
    else:
        value_rule = (
            "- If CURRENT_PAPER_IS_SOLUTION is false, try to read the student's name/roll "
            "from the page. If none is clearly present, set BOTH Name and Roll to "
            f"'{naming.unknown_name}'.\n"
        )

    return (
        "Additionally, ALWAYS prepend a normalized header to your output EXACTLY like:\n"
        "Name: <value>\n"
        "Roll: <value>\n"
        "----\n"
        "Rules for <value>:\n"
        f"- CURRENT_PAPER_IS_SOLUTION = {'true' if is_solution else 'false'}.\n"
        f"{value_rule}"
        "Do not invent different values. Use the exact strings above when required."
    )


def build_system_prompt(page_index: int, naming: OcrNamingContext) -> str:
    return f"{BASE_OCR_PROMPT}\n\n{build_header_rules(page_index, naming)}"
