"""Recompute exam summaries from current marks and re-rank approved cohorts."""
import argparse
import logging

from gradebook.core.database import SessionLocal
from gradebook.services.summary import SummaryService

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--school-id", type=int, default=None, help="Limit to one school")
    parser.add_argument("--exam-id", type=int, default=None, help="Limit to one examination")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        result = SummaryService(db).reconcile(school_id=args.school_id, exam_id=args.exam_id)
        db.commit()
        print(result.message)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
