"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for exam and question storage.
"""

import uuid
from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, String, DateTime, Integer, Float, Text, Index
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Exam(Base):
    """Exam code registered by the institution."""

    __tablename__ = "exams"

    id = Column(String, primary_key=True, default=_new_id)
    exam_code = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    question_count = Column(Integer, nullable=False, default=0)


class Question(Base):
    """Uploaded question image and its OCR text."""

    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=_new_id)
    exam_code = Column(String, nullable=False, index=True)
    image_url = Column(String, nullable=False)
    image_hash = Column(String, nullable=True)
    extracted_text = Column(Text, nullable=False)
    normalized_text = Column(Text, nullable=False)  # cache only; matching re-normalizes
    ocr_confidence = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    __table_args__ = (Index("ix_questions_exam_code_created_at", "exam_code", "created_at"),)


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)
    return Session()
