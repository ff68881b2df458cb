#!/usr/bin/env python3
"""
Recompute the cached normalized_text of every stored question.

Matching always re-normalizes extracted text, so this only refreshes the
cached column after the normalizer changes.

Usage:
    python scripts/rebuild_normalized_text.py --db data/exams.db [--dry-run]
"""

import argparse
import sys
from pathlib import Path

from examguard.database import Question, get_session
from examguard.normalize import normalize_text


def rebuild(db_path: Path, dry_run: bool = False) -> int:
    """
    Rewrite stale normalized_text values.

    Returns:
        Number of questions whose cached text changed
    """
    session = get_session(db_path)
    changed = 0
    try:
        questions = session.query(Question).all()
        print(f"Checking {len(questions)} questions in {db_path}...")
        for q in questions:
            fresh = normalize_text(q.extracted_text)
            if fresh == q.normalized_text:
                continue
            changed += 1
            if dry_run:
                print(f"  [dry-run] {q.id} ({q.exam_code}) would change")
            else:
                q.normalized_text = fresh

        if not dry_run:
            session.commit()
    except Exception as e:
        session.rollback()
        print(f"❌ Rebuild failed: {e}")
        raise
    finally:
        session.close()

    verb = "would change" if dry_run else "updated"
    print(f"✅ {changed} questions {verb}")
    return changed


def main():
    parser = argparse.ArgumentParser(description="Recompute cached normalized question text")
    parser.add_argument("--db", type=Path, default=Path("data/exams.db"),
                        help="Path to SQLite database file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Report changes without writing")

    args = parser.parse_args()

    if not args.db.exists():
        print(f"❌ Database file not found: {args.db}")
        sys.exit(1)

    rebuild(args.db, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
