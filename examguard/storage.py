"""
Exam and question store.

ExamStore is the corpus-access object handed to the application layer:
it owns a database path, hands out plain dicts and CorpusEntry snapshots,
and never makes matching decisions.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError

from .database import Exam, Question, init_database, get_session
from .logger import get_logger
from .matching import CorpusEntry
from .retry import exponential_backoff, is_transient_error

logger = get_logger()

_retry_on_lock = exponential_backoff(
    max_retries=3,
    base_delay=0.2,
    exceptions=(OperationalError,),
    retry_if=is_transient_error,
    on_retry=lambda attempt, e, delay: logger.warning(
        "Database busy, retrying", attempt=attempt, delay=delay, error=str(e)
    ),
)


class StorageError(Exception):
    """Base class for store failures surfaced to callers."""
    pass


class ExamExistsError(StorageError):
    pass


class ExamNotFoundError(StorageError):
    pass


class QuestionNotFoundError(StorageError):
    pass


def exam_to_dict(exam: Exam) -> Dict[str, Any]:
    return {
        "id": exam.id,
        "exam_code": exam.exam_code,
        "created_at": exam.created_at,
        "question_count": exam.question_count,
    }


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": q.id,
        "exam_code": q.exam_code,
        "image_url": q.image_url,
        "image_hash": q.image_hash,
        "extracted_text": q.extracted_text,
        "normalized_text": q.normalized_text,
        "ocr_confidence": q.ocr_confidence,
        "created_at": q.created_at,
    }


class ExamStore:
    """SQLite-backed store for exam codes and their question images."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)

    @_retry_on_lock
    def create_exam_code(self, exam_code: str) -> Dict[str, Any]:
        session = get_session(self.db_path)
        try:
            if session.query(Exam).filter_by(exam_code=exam_code).first():
                raise ExamExistsError(f'Exam code "{exam_code}" already exists')
            exam = Exam(exam_code=exam_code, question_count=0)
            session.add(exam)
            session.commit()
            logger.info("Exam code created", exam_code=exam_code)
            return exam_to_dict(exam)
        except IntegrityError as e:
            session.rollback()
            raise ExamExistsError(f'Exam code "{exam_code}" already exists') from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_all_exam_codes(self) -> List[Dict[str, Any]]:
        session = get_session(self.db_path)
        try:
            return [exam_to_dict(e) for e in session.query(Exam).order_by(Exam.created_at).all()]
        finally:
            session.close()

    @_retry_on_lock
    def store_question(
        self,
        exam_code: str,
        image_url: str,
        extracted_text: str,
        normalized_text: str,
        image_hash: Optional[str] = None,
        ocr_confidence: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Persist a question and bump its exam's question count.

        Raises:
            ExamNotFoundError: If the exam code was never created
        """
        session = get_session(self.db_path)
        try:
            exam = session.query(Exam).filter_by(exam_code=exam_code).first()
            if exam is None:
                raise ExamNotFoundError(f'Exam code "{exam_code}" not found')

            question = Question(
                exam_code=exam_code,
                image_url=image_url,
                image_hash=image_hash,
                extracted_text=extracted_text,
                normalized_text=normalized_text,
                ocr_confidence=ocr_confidence,
            )
            session.add(question)
            exam.question_count = exam.question_count + 1
            session.commit()
            logger.record_question_stored()
            logger.info("Question stored", exam_code=exam_code, question_id=question.id)
            return question_to_dict(question)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_questions_by_exam_code(self, exam_code: str) -> List[Dict[str, Any]]:
        session = get_session(self.db_path)
        try:
            rows = session.query(Question).filter_by(exam_code=exam_code).order_by(Question.created_at).all()
            return [question_to_dict(q) for q in rows]
        finally:
            session.close()

    def get_all_questions(self) -> List[Dict[str, Any]]:
        session = get_session(self.db_path)
        try:
            return [question_to_dict(q) for q in session.query(Question).order_by(Question.created_at).all()]
        finally:
            session.close()

    def get_question_by_id(self, question_id: str) -> Optional[Dict[str, Any]]:
        session = get_session(self.db_path)
        try:
            q = session.get(Question, question_id)
            return question_to_dict(q) if q else None
        finally:
            session.close()

    @_retry_on_lock
    def delete_question(self, question_id: str) -> int:
        """
        Delete a question and decrement its exam's question count.

        Returns:
            Number of deleted questions (always 1)

        Raises:
            QuestionNotFoundError: If no question has this id
        """
        session = get_session(self.db_path)
        try:
            q = session.get(Question, question_id)
            if q is None:
                raise QuestionNotFoundError("Question not found")
            exam = session.query(Exam).filter_by(exam_code=q.exam_code).first()
            if exam is not None:
                exam.question_count = max(0, exam.question_count - 1)
            session.delete(q)
            session.commit()
            logger.info("Question deleted", question_id=question_id)
            return 1
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def fetch_corpus(self, exam_code: Optional[str] = None) -> List[CorpusEntry]:
        """Snapshot of stored questions for the matching engine, oldest first."""
        rows = self.get_questions_by_exam_code(exam_code) if exam_code else self.get_all_questions()
        return [
            CorpusEntry.from_record({
                "id": q["id"],
                "exam_code": q["exam_code"],
                "raw_text": q["extracted_text"],
                "image_url": q["image_url"],
                "timestamp": q["created_at"],
            })
            for q in rows
        ]

    def get_stats(self) -> Dict[str, Any]:
        exams = self.get_all_exam_codes()
        session = get_session(self.db_path)
        try:
            total_questions = session.query(Question).count()
        finally:
            session.close()
        return {
            "total_exams": len(exams),
            "total_questions": total_questions,
            "exams": [{"exam_code": e["exam_code"], "question_count": e["question_count"]} for e in exams],
        }
