import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env() -> None:
    """Load .env from the working directory if present.

    Variables already set in the environment win over the file.
    """
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("data/exams.db")
    upload_dir: Path = Path("uploads")
    text_threshold: float = 0.55
    log_level: str = "INFO"
    ocr_lang: str = "eng"
    tesseract_cmd: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=Path(os.getenv("EXAMGUARD_DB", "data/exams.db")),
            upload_dir=Path(os.getenv("EXAMGUARD_UPLOAD_DIR", "uploads")),
            text_threshold=_float_env("EXAMGUARD_TEXT_THRESHOLD", 0.55),
            log_level=os.getenv("EXAMGUARD_LOG_LEVEL", "INFO"),
            ocr_lang=os.getenv("EXAMGUARD_OCR_LANG", "eng"),
            tesseract_cmd=os.getenv("TESSERACT_CMD") or None,
        )
