"""
Weighted scoring and resolution recomputation.

A heuristic's score moves linearly from the score the model assigned
(``initial_score``) toward 10 as its findings are marked resolved:

    score = initial + (10 - initial) * resolved / total

The overall score is the weighted mean of all ten heuristic scores,
rounded half-up to one decimal. Both are recomputed from the current
resolved/unresolved partition only, so any sequence of toggles that ends
in the same partition produces the same scores.
"""
from __future__ import annotations
from typing import Mapping
import math

from backend.models import HeuristicDetail, ScreenAnalysis
from backend.rubric import NIELSEN_HEURISTICS

MIN_SCORE = 0.0
MAX_SCORE = 10.0


def clamp_score(value: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, value))


def round_one_decimal(value: float) -> float:
    """Round half-up to one decimal place (2.25 -> 2.3, not banker's 2.2)."""
    return math.floor(value * 10 + 0.5) / 10


def weighted_overall_score(heuristics: Mapping[int, HeuristicDetail]) -> float:
    """
    Weighted mean over the full rubric.

    An id missing from ``heuristics`` counts as score 0 with its normal
    weight, so a partial mapping can never inflate the result.
    """
    weighted_sum = 0.0
    total_weights = 0.0
    for h in NIELSEN_HEURISTICS:
        detail = heuristics.get(h.id)
        score = clamp_score(detail.score) if detail is not None else 0.0
        weighted_sum += score * h.weight
        total_weights += h.weight

    if total_weights <= 0:
        return 0.0
    return round_one_decimal(weighted_sum / total_weights)


def recompute_heuristic_score(detail: HeuristicDetail) -> float:
    total = detail.total_count
    if total == 0:
        # No findings means fully compliant
        return MAX_SCORE
    resolved = detail.resolved_count
    if resolved == total:
        return MAX_SCORE
    initial = detail.initial_score
    return clamp_score(initial + (MAX_SCORE - initial) * (resolved / total))


def toggle_resolution(analysis: ScreenAnalysis, heuristic_id: int, observation_index: int) -> ScreenAnalysis:
    """
    Flip one finding's ``resolved`` flag and return a new analysis with the
    heuristic score and overall score recomputed.

    Addresses come from the rendered list, so an unknown heuristic or an
    out-of-range index returns ``analysis`` untouched instead of raising.
    """
    detail = analysis.heuristics.get(heuristic_id)
    if detail is None:
        return analysis
    if isinstance(observation_index, bool) or not isinstance(observation_index, int):
        return analysis
    if observation_index < 0 or observation_index >= len(detail.observations):
        return analysis

    observations = list(detail.observations)
    target = observations[observation_index]
    observations[observation_index] = target.model_copy(update={"resolved": not target.resolved})

    updated = detail.model_copy(update={"observations": observations})
    updated.score = recompute_heuristic_score(updated)

    heuristics = dict(analysis.heuristics)
    heuristics[heuristic_id] = updated

    return analysis.model_copy(update={
        "heuristics": heuristics,
        "overall_score": weighted_overall_score(heuristics),
    })
