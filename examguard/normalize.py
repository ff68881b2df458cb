import re
from typing import List, Optional

ACCENT_FOLDS = [
    (re.compile("[éèêë]"), "e"),
    (re.compile("[áàâäã]"), "a"),
    (re.compile("[íìîï]"), "i"),
    (re.compile("[óòôöõ]"), "o"),
    (re.compile("[úùûü]"), "u"),
]

# ASCII word characters only; anything else outside whitespace is dropped
NON_WORD = re.compile(r"[^A-Za-z0-9_\s]")
WHITESPACE = re.compile(r"\s+")

STOPWORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "can", "this", "that",
    "these", "those", "which", "who", "what", "when", "where", "why", "how",
}

MIN_TOKEN_LENGTH = 3


def normalize_text(s: Optional[str]) -> str:
    """Canonical form used for every comparison. Idempotent."""
    if not s:
        return ""
    text = s.lower()
    for pattern, base in ACCENT_FOLDS:
        text = pattern.sub(base, text)
    text = NON_WORD.sub("", text)
    return WHITESPACE.sub(" ", text).strip()


def clean_ocr_text(text: Optional[str]) -> str:
    """Collapse noisy whitespace and repeated punctuation in raw OCR output."""
    if not text:
        return ""
    text = re.sub(r"\s{3,}", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"([.!?])\1{2,}", r"\1", text)
    return text.strip()


def extract_tokens(text: Optional[str]) -> List[str]:
    normalized = normalize_text(text)
    if not normalized:
        return []
    return [t for t in normalized.split() if len(t) >= MIN_TOKEN_LENGTH]


def clean_text_for_comparison(text: Optional[str]) -> str:
    return " ".join(t for t in extract_tokens(text) if t not in STOPWORDS)
