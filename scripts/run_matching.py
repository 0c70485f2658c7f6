# scripts/run_matching.py
"""
Admin trigger: run one matching cycle against the configured database.
    python scripts/run_matching.py
"""
import logging
import sys

from eventlink.config.settings import settings
from eventlink.domain.errors import MatchingError
from eventlink.infrastructure.db.session import SessionLocal
from eventlink.services.matching_service import MatchingService

logging.basicConfig(level=settings.LOG_LEVEL)


def main() -> int:
    db = SessionLocal()
    try:
        summary = MatchingService(db).run_matching()
    except MatchingError as e:
        print(f"Matching failed: {e}")
        return 1
    finally:
        db.close()

    print(summary.model_dump_json(indent=2))
    return 0 if summary.ok else 2


if __name__ == "__main__":
    sys.exit(main())
