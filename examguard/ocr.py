"""
OCR collaborator: image file -> cleaned text and engine confidence.

Runs Tesseract through pytesseract. Failures are raised as OcrError so
callers can tell an unreadable image apart from a comparison with no match.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pytesseract
from PIL import Image, UnidentifiedImageError

from .logger import get_logger
from .normalize import clean_ocr_text

logger = get_logger()

SUSPICIOUS_GLYPHS = re.compile(r"[0O]{2,}|[1l|]{2,}|[~`^]{2,}")


class OcrError(Exception):
    """Raised when text extraction fails for reasons other than an empty page."""
    pass


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: Optional[float] = None  # mean word confidence, 0-1


def configure_tesseract(cmd: Optional[str]) -> None:
    if cmd:
        pytesseract.pytesseract.tesseract_cmd = cmd


def _layout_text(data: Dict[str, List[Any]]) -> str:
    """Rebuild page text from word boxes: one line per Tesseract line, blank line between blocks."""
    blocks: List[List[str]] = []
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    for i, word in enumerate(data["text"]):
        word = (word or "").strip()
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)

    current_block = None
    for (block, _, _), words in lines.items():
        if block != current_block:
            blocks.append([])
            current_block = block
        blocks[-1].append(" ".join(words))
    return "\n\n".join("\n".join(block_lines) for block_lines in blocks)


def _mean_confidence(data: Dict[str, List[Any]]) -> Optional[float]:
    confs = []
    for text, conf in zip(data["text"], data["conf"]):
        # Tesseract reports -1 for layout boxes without text
        if (text or "").strip() and float(conf) >= 0:
            confs.append(float(conf))
    if not confs:
        return None
    return round(sum(confs) / len(confs) / 100, 3)


def extract_text_from_image(image_path: Union[str, Path], lang: str = "eng") -> OcrResult:
    """
    Extract text from an image file.

    Args:
        image_path: Path to the image file
        lang: Tesseract language code

    Returns:
        OcrResult with cleaned text. Text is empty when the image holds
        nothing readable; that case is not an error.

    Raises:
        OcrError: Missing file, undecodable image or Tesseract failure
    """
    path = Path(image_path)
    if not path.exists():
        logger.record_ocr_failure("FileNotFound")
        raise OcrError(f"Image file not found: {path}")

    logger.record_ocr_run()
    logger.info("Starting OCR", image=path.name, lang=lang)
    try:
        with Image.open(path) as image:
            # One Tesseract pass yields both the words and their confidences
            data = pytesseract.image_to_data(image, lang=lang, output_type=pytesseract.Output.DICT)
        raw_text = _layout_text(data)
        confidence = _mean_confidence(data)
    except UnidentifiedImageError as e:
        logger.record_ocr_failure("UnidentifiedImage")
        logger.error("Image could not be decoded", image=path.name)
        raise OcrError(f"Not a readable image: {path.name}") from e
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        logger.record_ocr_failure(type(e).__name__)
        logger.error("Tesseract failed", image=path.name, error=str(e))
        raise OcrError(f"OCR extraction failed: {e}") from e

    if not raw_text.strip():
        logger.warning("Tesseract returned empty text", image=path.name)
        return OcrResult(text="")

    cleaned = clean_ocr_text(raw_text)
    logger.info(
        "OCR completed",
        image=path.name,
        chars=len(cleaned),
        confidence=confidence,
    )
    logger.debug("OCR preview", preview=cleaned[:100])
    return OcrResult(text=cleaned, confidence=confidence)


def assess_ocr_quality(text: Optional[str]) -> str:
    """Heuristic quality label from common Tesseract misread patterns."""
    if not text:
        return "VERY_LOW"

    suspicious_count = len(SUSPICIOUS_GLYPHS.findall(text))
    ratio = suspicious_count / (len(text) / 10)

    if ratio < 0.1:
        return "HIGH"
    if ratio < 0.3:
        return "MEDIUM"
    if ratio < 0.5:
        return "LOW"
    return "VERY_LOW"
