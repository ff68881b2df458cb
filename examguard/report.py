from typing import Any, Dict, Sequence

from .matching import MatchCandidate
from .similarity import HIGH, MEDIUM, LOW

REPORT_TOP_N = 10


def generate_match_report(matches: Sequence[MatchCandidate]) -> Dict[str, Any]:
    """
    Summarize a ranked match list.

    The input is expected in the orchestrator's order; it is not re-sorted
    and the preview keeps the first ``REPORT_TOP_N`` entries as given.
    """
    if not matches:
        return {
            "total_matches": 0,
            "high_confidence_matches": 0,
            "medium_confidence_matches": 0,
            "low_confidence_matches": 0,
            "report": "No matches found",
        }

    breakdown: Dict[str, int] = {}
    for m in matches:
        breakdown[m.exam_code] = breakdown.get(m.exam_code, 0) + 1

    return {
        "total_matches": len(matches),
        "high_confidence_matches": sum(1 for m in matches if m.confidence == HIGH),
        "medium_confidence_matches": sum(1 for m in matches if m.confidence == MEDIUM),
        "low_confidence_matches": sum(1 for m in matches if m.confidence == LOW),
        "exam_code_breakdown": breakdown,
        "matches": [m.to_dict() for m in matches[:REPORT_TOP_N]],
    }
