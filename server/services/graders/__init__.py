"""Type graders, one module per answer shape."""

from .exact_choice import grade_exact_choice
from .fuzzy_text import grade_fuzzy_text
from .placement import grade_placement
from .rank_similarity import grade_rank_similarity
from .set_overlap import grade_set_overlap

__all__ = [
    "grade_exact_choice",
    "grade_fuzzy_text",
    "grade_placement",
    "grade_rank_similarity",
    "grade_set_overlap",
]
