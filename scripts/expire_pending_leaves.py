"""
Expire PENDING leave requests whose start date has passed.
Intended for cron / a scheduler; run from the repository root with .env loaded.

Usage:
  python scripts/expire_pending_leaves.py              # as of today (UTC)
  python scripts/expire_pending_leaves.py 2026-03-01   # as of a given date
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from leavewise.core.logging import setup_logging
from leavewise.db.session import SessionLocal
from leavewise.services.leave_service import expire_stale_leaves


def main():
    setup_logging()
    as_of = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else None

    db = SessionLocal()
    try:
        expired = expire_stale_leaves(db, as_of=as_of)
        print(f"Expired {len(expired)} leave request(s): {[leave.id for leave in expired]}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
