"""
Composite result PDFs: page selection, annotation and assembly.
"""

from .selection import (
    MappedStudent,
    Selection,
    map_representatives,
    pick_solution,
    rank_by_score,
    select_roles,
    ROLE_SOLUTION,
    ROLE_BEST,
    ROLE_AVG,
    ROLE_LOW,
)
from .annotator import PageAnnotator, PanelLine, panel_lines
from .builder import CompositeResult, build_composite_pack, build_full_roster

__all__ = [
    "MappedStudent",
    "Selection",
    "map_representatives",
    "pick_solution",
    "rank_by_score",
    "select_roles",
    "ROLE_SOLUTION",
    "ROLE_BEST",
    "ROLE_AVG",
    "ROLE_LOW",
    "PageAnnotator",
    "PanelLine",
    "panel_lines",
    "CompositeResult",
    "build_composite_pack",
    "build_full_roster",
]
