"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List

from PIL import Image, ImageDraw

from examguard.matching import CorpusEntry
from examguard.ocr import OcrResult
from examguard.storage import ExamStore


@pytest.fixture
def sample_question_text() -> str:
    """Raw OCR text of a typical exam question."""
    return (
        "Question 4: Explain the difference between a process and a thread. "
        "Give one example where threads are preferred."
    )


@pytest.fixture
def corpus() -> List[CorpusEntry]:
    """Three stored questions across two exam codes."""
    base = datetime(2024, 5, 1, 9, 0, 0)
    return [
        CorpusEntry(
            id="q-1",
            exam_code="CS101",
            raw_text="Explain the difference between a process and a thread.",
            image_url="/uploads/q-1.png",
            timestamp=base,
        ),
        CorpusEntry(
            id="q-2",
            exam_code="CS101",
            raw_text="Describe how a hash table resolves collisions.",
            image_url="/uploads/q-2.png",
            timestamp=base + timedelta(minutes=5),
        ),
        CorpusEntry(
            id="q-3",
            exam_code="MATH200",
            raw_text="Prove that the square root of two is irrational.",
            image_url="/uploads/q-3.png",
            timestamp=base + timedelta(minutes=10),
        ),
    ]


@pytest.fixture
def store(tmp_path) -> ExamStore:
    """Empty store backed by a temporary SQLite file."""
    return ExamStore(tmp_path / "exams.db")


@pytest.fixture
def make_image(tmp_path) -> Callable[..., Path]:
    """Factory writing a small PNG to tmp_path."""
    def _make(name: str = "question.png", color: str = "white", label: str = "") -> Path:
        img = Image.new("RGB", (64, 32), color)
        if label:
            ImageDraw.Draw(img).text((2, 10), label, fill="black")
        path = tmp_path / name
        img.save(path)
        return path
    return _make


@pytest.fixture
def fake_ocr(monkeypatch) -> Callable[[str], None]:
    """Replace the OCR step used by the app layer with a fixed text."""
    def _set(text: str, confidence: float = 0.9) -> None:
        def _extract(image_path, lang="eng"):
            if not Path(image_path).exists():
                from examguard.ocr import OcrError
                raise OcrError(f"Image file not found: {image_path}")
            return OcrResult(text=text, confidence=confidence if text else None)
        monkeypatch.setattr("examguard.app.extract_text_from_image", _extract)
    return _set
