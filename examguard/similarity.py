"""
Text similarity metrics and the combined scorer.

All metrics take strings that have already been through
``normalize.normalize_text`` and return a float in [0, 1].
"""

import math
from collections import Counter
from typing import Dict, List, Any

COSINE_WEIGHT = 0.40
JACCARD_WEIGHT = 0.30
LEVENSHTEIN_WEIGHT = 0.30

HIGH_CONFIDENCE = 0.85
MEDIUM_CONFIDENCE = 0.70

FUZZY_TOKEN_THRESHOLD = 0.85

HIGH = "HIGH"
MEDIUM = "MEDIUM"
LOW = "LOW"


def round_score(value: float) -> float:
    """Round half-up to 2 decimals."""
    return math.floor(value * 100 + 0.5) / 100


def cosine_similarity(text1: str, text2: str) -> float:
    """Cosine of the term-frequency vectors of both texts."""
    tokens1 = text1.split()
    tokens2 = text2.split()
    if not tokens1 or not tokens2:
        return 0.0

    counts1 = Counter(tokens1)
    counts2 = Counter(tokens2)
    vocabulary = set(counts1) | set(counts2)

    dot_product = sum(counts1[t] * counts2[t] for t in vocabulary)
    magnitude1 = math.sqrt(sum(v * v for v in counts1.values()))
    magnitude2 = math.sqrt(sum(v * v for v in counts2.values()))

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0
    return dot_product / (magnitude1 * magnitude2)


def jaccard_similarity(text1: str, text2: str) -> float:
    set1 = set(text1.split())
    set2 = set(text2.split())
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            insert = current[j - 1] + 1
            delete = previous[j] + 1
            substitute = previous[j - 1] + (ca != cb)
            current.append(min(insert, delete, substitute))
        previous = current
    return previous[-1]


def levenshtein_similarity(text1: str, text2: str) -> float:
    max_len = max(len(text1), len(text2))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein_distance(text1, text2) / max_len


def fuzzy_token_match(tokens1: List[str], tokens2: List[str]) -> float:
    """
    Token overlap that tolerates small OCR misreads.

    Each token of ``tokens1`` counts 1.0 for an exact hit in ``tokens2``, or
    its edit similarity for the first near-hit at or above
    ``FUZZY_TOKEN_THRESHOLD``. The sum is divided by the longer list length.
    """
    if not tokens1 or not tokens2:
        return 0.0

    matches = 0.0
    for token1 in tokens1:
        for token2 in tokens2:
            if token1 == token2:
                matches += 1
                break
            similarity = levenshtein_similarity(token1, token2)
            if similarity >= FUZZY_TOKEN_THRESHOLD:
                matches += similarity
                break

    return matches / max(len(tokens1), len(tokens2))


def calculate_text_similarity(text1: str, text2: str) -> float:
    """Weighted blend of cosine, Jaccard and Levenshtein, rounded to 2 decimals."""
    if not text1 or not text2:
        return 0.0

    combined = (
        COSINE_WEIGHT * cosine_similarity(text1, text2)
        + JACCARD_WEIGHT * jaccard_similarity(text1, text2)
        + LEVENSHTEIN_WEIGHT * levenshtein_similarity(text1, text2)
    )
    return round_score(combined)


def get_confidence_level(score: float) -> str:
    if score >= HIGH_CONFIDENCE:
        return HIGH
    if score >= MEDIUM_CONFIDENCE:
        return MEDIUM
    return LOW


def find_text_matches(query_text: str, documents: List[Dict[str, Any]], threshold: float = 0.6) -> List[Dict[str, Any]]:
    """Score documents carrying a ``normalized_text`` field against a normalized query.

    Returns new dicts with a ``text_similarity`` key, filtered by threshold and
    sorted best first. Input dicts are left untouched.
    """
    scored = [
        {**doc, "text_similarity": calculate_text_similarity(query_text, doc.get("normalized_text") or "")}
        for doc in documents
    ]
    matches = [doc for doc in scored if doc["text_similarity"] >= threshold]
    return sorted(matches, key=lambda d: d["text_similarity"], reverse=True)
