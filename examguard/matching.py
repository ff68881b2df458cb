"""
Matching orchestrator.

Scores one query text against a snapshot of stored questions and decides
the outcome: confirmed matches, near-misses with a relaxed threshold
suggestion, or a degenerate "no match" result. Pure function of its inputs;
it never reads or writes storage, never logs, and never mutates the corpus
it is given. Callers record the outcome.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from .normalize import normalize_text
from .schema import validate_corpus_entry
from .similarity import calculate_text_similarity, get_confidence_level

SUCCESS = "SUCCESS"
NO_CONFIRMED_MATCH = "NO_CONFIRMED_MATCH"
NO_MATCH = "NO_MATCH"
NO_MATCHES_IN_CORPUS = "NO_MATCHES_IN_CORPUS"

DEFAULT_TEXT_THRESHOLD = 0.55
THRESHOLD_RELAXATION = 0.10
DEBUG_TOP_N = 3
MATCH_PREVIEW_CHARS = 300
DEBUG_PREVIEW_CHARS = 100


@dataclass(frozen=True)
class CorpusEntry:
    """A stored question as seen by the matching engine."""

    id: str
    exam_code: str
    raw_text: str
    image_url: Optional[str] = None
    timestamp: Optional[Union[datetime, str]] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CorpusEntry":
        errors = validate_corpus_entry(record)
        if errors:
            raise ValueError(f"Invalid corpus entry: {'; '.join(errors)}")
        return cls(
            id=record["id"],
            exam_code=record["exam_code"],
            raw_text=record["raw_text"] or "",
            image_url=record.get("image_url"),
            timestamp=record.get("timestamp"),
        )


@dataclass(frozen=True)
class MatchCandidate:
    question_id: str
    exam_code: str
    score: float
    confidence: str
    matched_text: str
    image_url: Optional[str]
    uploaded_at: Optional[Union[datetime, str]]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if isinstance(self.uploaded_at, datetime):
            d["uploaded_at"] = self.uploaded_at.isoformat()
        return d


@dataclass
class MatchOutcome:
    status: str
    results: List[MatchCandidate] = field(default_factory=list)
    top_match: Optional[MatchCandidate] = None
    reason: Optional[str] = None
    suggested_threshold: Optional[float] = None
    debug_info: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "reason": self.reason,
            "results": [m.to_dict() for m in self.results],
            "top_match": self.top_match.to_dict() if self.top_match else None,
            "suggested_threshold": self.suggested_threshold,
            "debug_info": self.debug_info,
        }


def _candidate(entry: CorpusEntry, score: float) -> MatchCandidate:
    return MatchCandidate(
        question_id=entry.id,
        exam_code=entry.exam_code,
        score=score,
        confidence=get_confidence_level(score),
        matched_text=entry.raw_text[:MATCH_PREVIEW_CHARS],
        image_url=entry.image_url,
        uploaded_at=entry.timestamp,
    )


def score_corpus(normalized_query: str, corpus: Sequence[CorpusEntry]) -> List[float]:
    """Combined score of every entry, in corpus order.

    Stored text is re-normalized each time so scores always reflect the
    current normalizer, whatever was cached at upload time.
    """
    return [
        calculate_text_similarity(normalized_query, normalize_text(entry.raw_text))
        for entry in corpus
    ]


def match(
    query_raw_text: Optional[str],
    corpus: Sequence[CorpusEntry],
    threshold: float = DEFAULT_TEXT_THRESHOLD,
) -> MatchOutcome:
    """
    Match a query text against a corpus snapshot.

    Args:
        query_raw_text: Raw (OCR) text of the query image
        corpus: Stored questions to compare against
        threshold: Minimum combined score for a confirmed match

    Returns:
        MatchOutcome. Results are sorted best first; entries with equal
        scores keep their corpus order.
    """
    if not corpus:
        return MatchOutcome(
            status=NO_MATCHES_IN_CORPUS,
            reason="No questions in database to compare against",
        )

    normalized_query = normalize_text(query_raw_text)
    if not normalized_query:
        return MatchOutcome(
            status=NO_MATCH,
            reason="Could not extract text from uploaded image",
            debug_info={
                "ocr_output": query_raw_text or "",
                "normalized_length": 0,
            },
        )

    scores = score_corpus(normalized_query, corpus)

    # sorted() is stable, so equal scores keep corpus order
    ranked = sorted(zip(corpus, scores), key=lambda pair: pair[1], reverse=True)
    confirmed = [_candidate(entry, score) for entry, score in ranked if score >= threshold]

    if confirmed:
        return MatchOutcome(status=SUCCESS, results=confirmed, top_match=confirmed[0])

    best_score = ranked[0][1]
    return MatchOutcome(
        status=NO_CONFIRMED_MATCH,
        reason=f"No matches found above text similarity threshold ({threshold})",
        suggested_threshold=best_score - THRESHOLD_RELAXATION,
        debug_info={
            "top_text_matches": [
                {
                    "question_id": entry.id,
                    "exam_code": entry.exam_code,
                    "text_similarity": score,
                    "extracted_text_preview": entry.raw_text[:DEBUG_PREVIEW_CHARS],
                }
                for entry, score in ranked[:DEBUG_TOP_N]
            ],
        },
    )
