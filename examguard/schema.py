from datetime import datetime
from typing import Any, Dict, List

REQUIRED_STR_FIELDS = ["id", "exam_code"]
OPTIONAL_STR_FIELDS = ["image_url"]

MAX_EXAM_CODE_LENGTH = 64


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_timestamp(v: Any) -> bool:
    if isinstance(v, datetime):
        return True
    if isinstance(v, str):
        try:
            datetime.fromisoformat(v)
            return True
        except ValueError:
            return False
    return False


def validate_exam_code(code: Any) -> List[str]:
    """Returns a list of validation error messages. Empty list means valid."""
    if not _is_non_empty_str(code):
        return ["examCode is required"]
    errors: List[str] = []
    if len(code.strip()) > MAX_EXAM_CODE_LENGTH:
        errors.append(f"examCode must be at most {MAX_EXAM_CODE_LENGTH} characters")
    if "/" in code:
        errors.append("examCode must not contain '/'")
    return errors


def validate_threshold(value: Any) -> List[str]:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ["Text threshold must be a number"]
    if value < 0 or value > 1:
        return ["Text threshold must be between 0 and 1"]
    return []


def validate_corpus_entry(data: Dict[str, Any]) -> List[str]:
    """
    Check a stored question record before it enters the matching engine.
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    # Empty extracted text is allowed; it simply never matches
    if "raw_text" not in data:
        errors.append("Missing required field: raw_text")
    elif data["raw_text"] is not None and not isinstance(data["raw_text"], str):
        errors.append("Field 'raw_text' must be a string")

    for f in OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    if data.get("timestamp") is not None and not _valid_timestamp(data["timestamp"]):
        errors.append("Field 'timestamp' must be a datetime or ISO-8601 string")

    return errors
