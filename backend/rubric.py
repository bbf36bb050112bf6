"""
Nielsen's 10 usability heuristics with their relative weights.

Every score in the project is aggregated against this one table, so the
normalizer and the recomputation engine always agree on ids and weights.
"""
from __future__ import annotations
from typing import Dict, List, Tuple
import random

from backend.models import HeuristicDefinition

NIELSEN_HEURISTICS: Tuple[HeuristicDefinition, ...] = (
    HeuristicDefinition(id=1, name="Visibility of system status", weight=1.0,
                        description="The design should always keep users informed about what is going on."),
    HeuristicDefinition(id=2, name="Match between system and real world", weight=1.0,
                        description="The design should speak the users' language. Use words, phrases, and concepts familiar to the user."),
    HeuristicDefinition(id=3, name="User control and freedom", weight=1.2,
                        description="Users often perform actions by mistake. They need a clearly marked 'emergency exit' to leave the unwanted action."),
    HeuristicDefinition(id=4, name="Consistency and standards", weight=1.0,
                        description="Users should not have to wonder whether different words, situations, or actions mean the same thing."),
    HeuristicDefinition(id=5, name="Error prevention", weight=1.5,
                        description="Good error messages are important, but the best designs carefully prevent problems from occurring in the first place."),
    HeuristicDefinition(id=6, name="Recognition rather than recall", weight=1.0,
                        description="Minimize the user's memory load by making elements, actions, and options visible."),
    HeuristicDefinition(id=7, name="Flexibility and efficiency of use", weight=1.0,
                        description="Shortcuts, hidden from novice users, may speed up the interaction for the expert user."),
    HeuristicDefinition(id=8, name="Aesthetic and minimalist design", weight=0.8,
                        description="Interfaces should not contain information that is irrelevant or rarely needed."),
    HeuristicDefinition(id=9, name="Help users recognize, diagnose, and recover from errors", weight=1.2,
                        description="Error messages should be expressed in plain language (no error codes), precisely indicate the problem, and constructively suggest a solution."),
    HeuristicDefinition(id=10, name="Help and documentation", weight=0.8,
                        description="It's best if the system doesn't need any additional explanation. However, it may be necessary to provide documentation."),
)

HEURISTIC_IDS: Tuple[int, ...] = tuple(h.id for h in NIELSEN_HEURISTICS)

_BY_ID: Dict[int, HeuristicDefinition] = {h.id: h for h in NIELSEN_HEURISTICS}

WEIGHT_DESCRIPTION = (
    "The Overall UX Score is a weighted average of all 10 Nielsen Heuristics. "
    "Critical factors like 'Error Prevention' and 'User Control' carry higher weights "
    "(1.5x and 1.2x respectively) because they impact the usability floor more significantly "
    "than 'Aesthetic Design' or 'Help/Documentation' (0.8x). Formula: Σ(Score * Weight) / ΣWeights."
)

# (label, lower bound, description); checked top-down
GRADE_BANDS: List[Tuple[str, float, str]] = [
    ("PASS", 8.0, "Optimal UX. Zero friction detected. High consistency."),
    ("PARTIAL", 5.0, "Minor violations present. Introduced cognitive load."),
    ("FAIL", 0.0, "Critical violations. User flow blocked or severe confusion."),
]

UI_UX_FUN_FACTS: List[str] = [
    "Did you know... the term 'user experience' was coined by Don Norman at Apple in the early '90s?",
    "Did you know... 88% of online consumers won't return to a site after a bad experience?",
    "Did you know... the average human attention span is now just 8 seconds, making concise UI vital?",
    "Did you know... Hick's Law states decision time increases with the number of choices?",
    "Did you know... Fitts's Law explains why larger, closer targets are easier to click?",
    "Did you know... the 'Save' icon is a floppy disk, an object many users have never seen?",
    "Did you know... 'above the fold' is a newspaper term for content visible without scrolling?",
    "Did you know... good color usage can improve readership by 40% and comprehension by 70%?",
    "Did you know... rounded corners are easier for our brains to process than sharp ones?",
    "Did you know... the hamburger menu icon was designed for the Xerox Star back in 1981?",
]


def heuristic_by_id(heuristic_id: int) -> HeuristicDefinition:
    """Return the rubric entry for an id. Raises KeyError for ids outside 1..10."""
    return _BY_ID[heuristic_id]


def total_weight() -> float:
    return sum(h.weight for h in NIELSEN_HEURISTICS)


def grade_for_score(score: float) -> Dict[str, str]:
    for label, lower, description in GRADE_BANDS:
        if score >= lower:
            return {"label": label, "description": description}
    label, _, description = GRADE_BANDS[-1]
    return {"label": label, "description": description}


def random_fun_fact() -> str:
    return random.choice(UI_UX_FUN_FACTS)
