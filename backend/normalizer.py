"""
Turn a raw, loosely-shaped model payload into a complete ScreenAnalysis.

The payload comes from a generative model, so nothing about its shape is
trusted: every field is coerced one at a time and a missing heuristic
degrades to a zero score instead of failing the audit.
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Union
import math

from backend.errors import AnalysisError
from backend.json_utils import parse_json_lenient
from backend.models import ErrorKind, HeuristicDetail, Observation, ScreenAnalysis
from backend.rubric import NIELSEN_HEURISTICS
from backend.scoring import clamp_score, weighted_overall_score

DEFAULT_SUMMARY = "No summary provided."

BOX_MIN = 0.0
BOX_MAX = 1000.0


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def normalize_bounding_box(value: Any) -> Optional[List[float]]:
    """Return [ymin, xmin, ymax, xmax] clamped to 0-1000, or None if unusable."""
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    coords = [_as_number(v) for v in value]
    if any(c is None for c in coords):
        return None
    y_min, x_min, y_max, x_max = (min(BOX_MAX, max(BOX_MIN, c)) for c in coords)
    if y_min > y_max:
        y_min, y_max = y_max, y_min
    if x_min > x_max:
        x_min, x_max = x_max, x_min
    return [y_min, x_min, y_max, x_max]


def normalize_observation(raw: Any) -> Optional[Observation]:
    if isinstance(raw, str):
        return Observation(finding=raw.strip()) if raw.strip() else None
    if not isinstance(raw, Mapping):
        return None
    # resolved is never taken from upstream; every finding starts open
    return Observation(
        finding=_as_text(raw.get("finding")),
        recommendation=_as_text(raw.get("recommendation")),
        bounding_box=normalize_bounding_box(raw.get("boundingBox", raw.get("bounding_box"))),
        resolved=False,
    )


def normalize_detail(raw: Any) -> HeuristicDetail:
    """
    Coerce one heuristic entry.

    A heuristic with no usable findings is scored 10.0 whatever score the
    model gave it, the same value recomputation would produce. The model's
    number is still kept in ``initial_score``, so a low score reported
    without any findings is visible there but does not reach the aggregate.
    """
    if not isinstance(raw, Mapping):
        return HeuristicDetail(score=0.0, initial_score=0.0, observations=[])

    initial = _as_number(raw.get("score"))
    if initial is None:
        initial = 0.0

    raw_observations = raw.get("observations")
    observations: List[Observation] = []
    if isinstance(raw_observations, (list, tuple)):
        for item in raw_observations:
            obs = normalize_observation(item)
            if obs is not None:
                observations.append(obs)

    # Same rule the recomputation engine applies: no findings, fully compliant
    score = clamp_score(initial) if observations else 10.0
    return HeuristicDetail(score=score, initial_score=initial, observations=observations)


def _lookup_heuristic(raw: Mapping[str, Any], heuristic_id: int) -> Any:
    nested = raw.get("heuristics")
    if isinstance(nested, Mapping):
        for key in (str(heuristic_id), heuristic_id):
            if key in nested:
                return nested[key]
    return raw.get(f"heuristic_{heuristic_id}")


def normalize_analysis(raw: Union[str, Mapping[str, Any]]) -> ScreenAnalysis:
    """
    Build a ScreenAnalysis holding exactly the ten rubric ids.

    ``raw`` may be the response text itself; text that is empty or not a
    JSON object raises AnalysisError(GENERIC). A parsed payload never fails.
    """
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        try:
            raw = parse_json_lenient(text)
        except ValueError as e:
            raise AnalysisError(ErrorKind.GENERIC, str(e)) from e
    if not isinstance(raw, Mapping):
        raise AnalysisError(ErrorKind.GENERIC, "AI response was not a JSON object.")

    heuristics: Dict[int, HeuristicDetail] = {}
    for h in NIELSEN_HEURISTICS:
        entry = _lookup_heuristic(raw, h.id)
        if entry is None:
            print(f"[WARN] Heuristic detail missing for ID: {h.id}")
            heuristics[h.id] = HeuristicDetail(score=0.0, initial_score=0.0, observations=[])
            continue
        heuristics[h.id] = normalize_detail(entry)

    summary = _as_text(raw.get("summary")) or DEFAULT_SUMMARY

    return ScreenAnalysis(
        heuristics=heuristics,
        summary=summary,
        overall_score=weighted_overall_score(heuristics),
    )
