import argparse
import json
import shutil
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import __version__
from .env import Settings, load_env
from .image_hash import generate_image_hash
from .logger import get_logger
from .matching import DEFAULT_TEXT_THRESHOLD, match
from .normalize import normalize_text
from .ocr import OcrError, assess_ocr_quality, configure_tesseract, extract_text_from_image
from .report import generate_match_report
from .schema import validate_exam_code, validate_threshold
from .storage import ExamStore, StorageError

logger = get_logger()

MIN_UPLOAD_CHARS = 5
GOOD_OCR_CHARS = 50

UPLOAD_SUGGESTIONS = [
    "Use higher quality image (JPG preferred over PNG)",
    "Ensure image has black text on white/light background",
    "Make sure text is horizontal (not rotated)",
    "Increase image contrast if text is faint",
    "Crop image to show only the text area",
    "Minimum recommended image width: 300 pixels",
]


class InsufficientTextError(Exception):
    """Raised when an uploaded question image yields too little text to store."""

    def __init__(self, extracted_chars: int, suggestions: Optional[List[str]] = None):
        super().__init__(f"Could not extract sufficient text from image ({extracted_chars} chars)")
        self.extracted_chars = extracted_chars
        self.suggestions = suggestions or UPLOAD_SUGGESTIONS


def save_upload(image_path: Path, upload_dir: Path) -> Tuple[Path, str]:
    """Copy an image into the upload directory under a unique name.

    Returns the stored path and its public URL.
    """
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = f"{int(time.time() * 1000)}-{uuid.uuid4()}{image_path.suffix.lower()}"
    stored = upload_dir / name
    shutil.copyfile(image_path, stored)
    return stored, f"/uploads/{name}"


def upload_question(
    store: ExamStore,
    exam_code: str,
    image_path: Path,
    upload_dir: Path,
    lang: str = "eng",
) -> Dict[str, Any]:
    """
    OCR a question image and store it under an exam code.

    Raises:
        ValueError: Invalid exam code
        OcrError: Text extraction failed
        InsufficientTextError: Fewer than MIN_UPLOAD_CHARS characters extracted
        StorageError: Unknown exam code or database failure
    """
    errors = validate_exam_code(exam_code)
    if errors:
        raise ValueError("; ".join(errors))
    exam_code = exam_code.strip()

    ocr = extract_text_from_image(image_path, lang=lang)
    if len(ocr.text.strip()) < MIN_UPLOAD_CHARS:
        logger.warning("Upload rejected: insufficient text", exam_code=exam_code, chars=len(ocr.text))
        raise InsufficientTextError(len(ocr.text))

    stored_path, image_url = save_upload(image_path, upload_dir)
    try:
        question = store.store_question(
            exam_code=exam_code,
            image_url=image_url,
            extracted_text=ocr.text,
            normalized_text=normalize_text(ocr.text),
            image_hash=generate_image_hash(stored_path),
            ocr_confidence=ocr.confidence,
        )
    except Exception:
        stored_path.unlink(missing_ok=True)
        raise

    text = question["extracted_text"]
    return {
        "question": {
            "id": question["id"],
            "exam_code": question["exam_code"],
            "image_url": question["image_url"],
            "extracted_text": text[:200],
            "extracted_char_count": len(text),
            "uploaded_at": question["created_at"],
        },
        "ocr_quality": {
            "extracted_chars": len(text),
            "status": "GOOD" if len(text) > GOOD_OCR_CHARS else "FAIR",
            "glyph_quality": assess_ocr_quality(text),
            "engine_confidence": ocr.confidence,
        },
    }


def compare_image(
    store: ExamStore,
    image_path: Path,
    threshold: float = DEFAULT_TEXT_THRESHOLD,
    exam_code: Optional[str] = None,
    lang: str = "eng",
) -> Dict[str, Any]:
    """
    Compare a scanned image against stored questions.

    OCR and storage failures propagate as OcrError / StorageError; only the
    matching engine decides between the "no match" outcomes.
    """
    errors = validate_threshold(threshold)
    if errors:
        raise ValueError("; ".join(errors))

    ocr = extract_text_from_image(image_path, lang=lang)
    corpus = store.fetch_corpus(exam_code)
    outcome = match(ocr.text, corpus, threshold)
    logger.record_comparison(outcome.status)
    logger.info(
        "Comparison completed",
        status=outcome.status,
        corpus_size=len(corpus),
        threshold=threshold,
        matches=len(outcome.results),
        top_score=outcome.top_match.score if outcome.top_match else None,
    )
    report = generate_match_report(outcome.results)
    result = outcome.to_dict()

    return {
        "status": outcome.status,
        "reason": outcome.reason,
        "uploaded_text_preview": ocr.text[:300],
        "uploaded_text_length": len(ocr.text),
        "ocr_confidence": ocr.confidence,
        "top_match": result["top_match"],
        "thresholds_used": {"text_threshold": threshold},
        "suggested_thresholds": (
            {"text_threshold": outcome.suggested_threshold}
            if outcome.suggested_threshold is not None else None
        ),
        "report": report,
        "results": result["results"],
        "debug_info": outcome.debug_info,
    }


def _open_store(args: argparse.Namespace) -> ExamStore:
    return ExamStore(Path(args.db))


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


def cmd_create_exam(args: argparse.Namespace) -> None:
    errors = validate_exam_code(args.code)
    if errors:
        raise SystemExit("; ".join(errors))
    try:
        exam = _open_store(args).create_exam_code(args.code.strip())
    except StorageError as e:
        raise SystemExit(str(e))
    print(f"Exam code created: {exam['exam_code']} ({exam['id']})")


def cmd_list_exams(args: argparse.Namespace) -> None:
    exams = _open_store(args).get_all_exam_codes()
    if not exams:
        print("No exam codes registered.")
        return
    print(f"Found {len(exams)} exam codes:\n")
    for exam in exams:
        print(f"{exam['exam_code']}  questions={exam['question_count']}  created={exam['created_at']:%Y-%m-%d %H:%M}")


def cmd_upload(args: argparse.Namespace, settings: Settings) -> None:
    image_path = Path(args.image)
    if not image_path.exists():
        raise SystemExit(f"Image file not found: {image_path}")
    try:
        outcome = upload_question(
            _open_store(args),
            args.exam,
            image_path,
            Path(args.upload_dir),
            lang=settings.ocr_lang,
        )
    except InsufficientTextError as e:
        lines = [str(e), "Suggestions:"] + [f" - {s}" for s in e.suggestions]
        raise SystemExit("\n".join(lines))
    except (ValueError, OcrError, StorageError) as e:
        raise SystemExit(str(e))

    question = outcome["question"]
    quality = outcome["ocr_quality"]
    print(f"Question: {question['id']}")
    print(f"Exam: {question['exam_code']}")
    print(f"Image: {question['image_url']}")
    print(f"OCR: {quality['extracted_chars']} chars ({quality['status']})")


def cmd_questions(args: argparse.Namespace) -> None:
    questions = _open_store(args).get_questions_by_exam_code(args.exam)
    if not questions:
        print(f"No questions stored for {args.exam}.")
        return
    print(f"Found {len(questions)} questions for {args.exam}:\n")
    for q in questions:
        print(f"ID: {q['id']}")
        print(f"  Image: {q['image_url']}")
        print(f"  Created: {q['created_at']}")
        print(f"  Text ({len(q['extracted_text'])} chars): {q['extracted_text'][:120]}")
        print()


def cmd_compare(args: argparse.Namespace, settings: Settings) -> None:
    image_path = Path(args.image)
    if not image_path.exists():
        raise SystemExit(f"Image file not found: {image_path}")
    threshold = args.threshold if args.threshold is not None else settings.text_threshold
    try:
        payload = compare_image(
            _open_store(args),
            image_path,
            threshold=threshold,
            exam_code=args.exam,
            lang=settings.ocr_lang,
        )
    except (ValueError, OcrError, StorageError) as e:
        raise SystemExit(str(e))

    if args.json:
        _print_json(payload)
        return

    print(f"Status: {payload['status']}")
    if payload["reason"]:
        print(f"Reason: {payload['reason']}")
    for m in payload["results"]:
        print(f"[{m['confidence']}] {m['score']:.2f}  {m['exam_code']}  {m['question_id']}")
    if payload["suggested_thresholds"]:
        print(f"Suggested threshold: {payload['suggested_thresholds']['text_threshold']:.2f}")
    if payload["debug_info"] and payload["debug_info"].get("top_text_matches"):
        print("Closest questions:")
        for m in payload["debug_info"]["top_text_matches"]:
            print(f" - {m['text_similarity']:.2f}  {m['exam_code']}  {m['extracted_text_preview'][:60]!r}")


def cmd_delete(args: argparse.Namespace) -> None:
    try:
        deleted = _open_store(args).delete_question(args.id)
    except StorageError as e:
        raise SystemExit(str(e))
    print(f"Deleted {deleted} question.")


def cmd_stats(args: argparse.Namespace) -> None:
    stats = _open_store(args).get_stats()
    if args.json:
        _print_json(stats)
        return
    print(f"Exams: {stats['total_exams']}")
    print(f"Questions: {stats['total_questions']}")
    for exam in stats["exams"]:
        print(f"  {exam['exam_code']}: {exam['question_count']}")


def main():
    # Load .env if present (EXAMGUARD_DB, TESSERACT_CMD, etc.)
    load_env()
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(str(e))
    get_logger().set_level(settings.log_level)
    configure_tesseract(settings.tesseract_cmd)

    parser = argparse.ArgumentParser(prog="examguard", description="Detect reused exam questions from scanned images")
    parser.add_argument("--version", action="store_true", help="Show version")
    db_help = f"Path to SQLite database (default: {settings.db_path})"

    subparsers = parser.add_subparsers(dest="command")
    cre = subparsers.add_parser("create-exam", help="Register a new exam code")
    cre.add_argument("--code", required=True, help="Exam code")
    cre.add_argument("--db", default=str(settings.db_path), help=db_help)
    cre.set_defaults(func=cmd_create_exam)

    lst = subparsers.add_parser("list-exams", help="List registered exam codes")
    lst.add_argument("--db", default=str(settings.db_path), help=db_help)
    lst.set_defaults(func=cmd_list_exams)

    upl = subparsers.add_parser("upload", help="OCR a question image and store it under an exam code")
    upl.add_argument("--exam", required=True, help="Exam code the question belongs to")
    upl.add_argument("--image", required=True, help="Path to the question image")
    upl.add_argument("--upload-dir", default=str(settings.upload_dir), help=f"Where stored images go (default: {settings.upload_dir})")
    upl.add_argument("--db", default=str(settings.db_path), help=db_help)
    upl.set_defaults(func=lambda a: cmd_upload(a, settings))

    qst = subparsers.add_parser("questions", help="List questions stored under an exam code")
    qst.add_argument("--exam", required=True, help="Exam code")
    qst.add_argument("--db", default=str(settings.db_path), help=db_help)
    qst.set_defaults(func=cmd_questions)

    cmp_ = subparsers.add_parser("compare", help="Find stored questions matching a scanned image")
    cmp_.add_argument("--image", required=True, help="Path to the image to compare")
    cmp_.add_argument("--threshold", type=float, help=f"Minimum text similarity 0-1 (default: {settings.text_threshold})")
    cmp_.add_argument("--exam", help="Only compare against this exam code")
    cmp_.add_argument("--json", action="store_true", help="Print the full result as JSON")
    cmp_.add_argument("--db", default=str(settings.db_path), help=db_help)
    cmp_.set_defaults(func=lambda a: cmd_compare(a, settings))

    dlt = subparsers.add_parser("delete", help="Delete a stored question")
    dlt.add_argument("--id", required=True, help="Question id")
    dlt.add_argument("--db", default=str(settings.db_path), help=db_help)
    dlt.set_defaults(func=cmd_delete)

    sts = subparsers.add_parser("stats", help="Show exam and question counts")
    sts.add_argument("--json", action="store_true", help="Print as JSON")
    sts.add_argument("--db", default=str(settings.db_path), help=db_help)
    sts.set_defaults(func=cmd_stats)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
