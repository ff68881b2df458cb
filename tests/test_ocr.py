"""
Tests for the OCR collaborator. Tesseract itself is stubbed out.
"""

import pytest
import pytesseract

from examguard.ocr import (
    OcrError,
    OcrResult,
    extract_text_from_image,
    assess_ocr_quality,
)


@pytest.fixture
def tesseract_stub(monkeypatch):
    """Stub pytesseract so tests run without the tesseract binary.

    Words are (text, conf) pairs or (text, conf, block, line) tuples.
    Returns the list of image_to_data calls.
    """
    calls = []

    def _install(words=None, error: Exception = None):
        rows = [w if len(w) == 4 else (w[0], w[1], 1, 1) for w in (words or [])]

        def _to_data(image, lang="eng", output_type=None, **kwargs):
            calls.append(lang)
            if error is not None:
                raise error
            return {
                "text": [r[0] for r in rows],
                "conf": [r[1] for r in rows],
                "block_num": [r[2] for r in rows],
                "par_num": [1 for _ in rows],
                "line_num": [r[3] for r in rows],
            }

        def _to_string(image, **kwargs):
            raise AssertionError("image_to_string should not be called")

        monkeypatch.setattr(pytesseract, "image_to_string", _to_string)
        monkeypatch.setattr(pytesseract, "image_to_data", _to_data)
        return calls
    return _install


class TestExtractTextFromImage:
    """Test text extraction and error mapping."""

    def test_cleans_text_and_reports_confidence(self, make_image, tesseract_stub):
        tesseract_stub(words=[("", -1), ("Define", 90), ("entropy....", 80)])
        result = extract_text_from_image(make_image())
        assert result == OcrResult(text="Define entropy.", confidence=0.85)

    def test_single_tesseract_pass(self, make_image, tesseract_stub):
        calls = tesseract_stub(words=[("Define", 90), ("entropy.", 80)])
        extract_text_from_image(make_image(), lang="fra")
        assert calls == ["fra"]

    def test_keeps_line_and_block_layout(self, make_image, tesseract_stub):
        tesseract_stub(words=[
            ("Question", 95, 1, 1), ("1", 95, 1, 1),
            ("Define", 90, 1, 2), ("entropy.", 90, 1, 2),
            ("(5", 70, 2, 1), ("marks)", 70, 2, 1),
        ])
        result = extract_text_from_image(make_image())
        assert result.text == "Question 1\nDefine entropy.\n\n(5 marks)"

    def test_empty_page_is_not_an_error(self, make_image, tesseract_stub):
        tesseract_stub(words=[("", -1), ("  ", -1)])
        result = extract_text_from_image(make_image())
        assert result.text == ""
        assert result.confidence is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(OcrError, match="not found"):
            extract_text_from_image(tmp_path / "nope.png")

    def test_not_an_image(self, tmp_path, tesseract_stub):
        tesseract_stub(words=[("text", 90)])
        bogus = tmp_path / "bogus.png"
        bogus.write_text("this is not a png")
        with pytest.raises(OcrError, match="Not a readable image"):
            extract_text_from_image(bogus)

    def test_tesseract_failure(self, make_image, tesseract_stub):
        tesseract_stub(error=pytesseract.TesseractError(1, "boom"))
        with pytest.raises(OcrError, match="OCR extraction failed"):
            extract_text_from_image(make_image())


class TestAssessOcrQuality:
    """Test the glyph-pattern quality heuristic."""

    def test_empty(self):
        assert assess_ocr_quality("") == "VERY_LOW"
        assert assess_ocr_quality(None) == "VERY_LOW"

    def test_clean_text(self):
        assert assess_ocr_quality("What is the derivative of x squared with respect to x") == "HIGH"

    def test_noisy_text(self):
        assert assess_ocr_quality("OO ll ~~ 00") == "VERY_LOW"
