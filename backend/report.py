from __future__ import annotations
from typing import Any, Dict, List, Optional

from backend.models import HeuristicDetail, ScreenAnalysis
from backend.rubric import NIELSEN_HEURISTICS, WEIGHT_DESCRIPTION, grade_for_score


def resolution_label(detail: HeuristicDetail) -> str:
    if detail.total_count == 0:
        return "Verified"
    return f"{detail.resolved_count}/{detail.total_count} Resolved"


def build_report(analysis: ScreenAnalysis, model_used: Optional[str] = None,
                 file_name: Optional[str] = None) -> Dict[str, Any]:
    """Flatten an analysis into the scoring report the exporter and CLI write out."""
    rows: List[Dict[str, Any]] = []
    for h in NIELSEN_HEURISTICS:
        detail = analysis.heuristics.get(h.id) or HeuristicDetail()
        rows.append({
            "id": h.id,
            "name": h.name,
            "weight": h.weight,
            "score": round(detail.score, 2),
            "initialScore": detail.initial_score,
            "resolved": detail.resolved_count,
            "total": detail.total_count,
            "status": resolution_label(detail),
            "grade": grade_for_score(detail.score)["label"],
            "observations": [obs.model_dump(by_alias=True) for obs in detail.observations],
        })

    return {
        "fileName": file_name,
        "modelUsed": model_used,
        "overallScore": analysis.overall_score,
        "grade": grade_for_score(analysis.overall_score),
        "summary": analysis.summary,
        "methodology": WEIGHT_DESCRIPTION,
        "heuristics": rows,
    }
