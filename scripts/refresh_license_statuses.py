"""
Recompute the stored status of every license from its expiry date.
Meant to run daily (cron) so lists and stats stay current between restarts.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wilaiety.db import SessionLocal
from wilaiety.logging import setup_logging
from wilaiety.services.licensing import refresh_statuses


def main():
    setup_logging()
    db = SessionLocal()
    try:
        changed = refresh_statuses(db)
        print(f"✅ {changed} license statuses updated")
    finally:
        db.close()


if __name__ == "__main__":
    main()
