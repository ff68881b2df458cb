"""
Image fingerprinting for stored questions.

The fingerprint is a SHA-256 digest of an 8x8 grayscale thumbnail. It is
not a gradient or DCT perceptual hash: any pixel-level change, including
lossless re-encoding that alters decoded pixels, produces a different
digest. The score is kept separate from the text similarity score.
"""

import hashlib
import io
from pathlib import Path
from typing import Any, Dict, List, Union

from PIL import Image

from .similarity import round_score

HASH_SIZE = 8


def generate_image_hash(image: Union[str, Path, bytes]) -> str:
    """
    Fingerprint an image given as a file path or raw encoded bytes.

    Raises:
        FileNotFoundError: If a path is given and does not exist
    """
    if isinstance(image, bytes):
        source = io.BytesIO(image)
    else:
        source = Path(image)
        if not source.exists():
            raise FileNotFoundError(f"Image file not found: {source}")

    with Image.open(source) as img:
        thumb = img.resize((HASH_SIZE, HASH_SIZE)).convert("L")
        return hashlib.sha256(thumb.tobytes()).hexdigest()


def hamming_distance(hash1: str, hash2: str) -> int:
    if len(hash1) != len(hash2):
        return max(len(hash1), len(hash2))
    return sum(1 for a, b in zip(hash1, hash2) if a != b)


def calculate_image_similarity(hash1: str, hash2: str) -> float:
    max_distance = max(len(hash1), len(hash2))
    if max_distance == 0:
        return 1.0
    similarity = 1 - hamming_distance(hash1, hash2) / max_distance
    return round_score(similarity)


def find_image_matches(query_hash: str, documents: List[Dict[str, Any]], threshold: float = 0.6) -> List[Dict[str, Any]]:
    """Documents whose ``image_hash`` is at least ``threshold`` similar, best first."""
    scored = [
        {**doc, "image_similarity": calculate_image_similarity(query_hash, doc.get("image_hash") or "")}
        for doc in documents
    ]
    matches = [doc for doc in scored if doc["image_similarity"] >= threshold]
    return sorted(matches, key=lambda d: d["image_similarity"], reverse=True)
