import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from database import SessionLocal
from services.janitor import prune_expired

"""
CLI janitor for the portal tables.

Example usage:
    python scripts/prune_expired.py --dry-run
    python scripts/prune_expired.py --codes-older-than-days 30
"""

def main():
    parser = argparse.ArgumentParser(description="Delete expired portal sessions and, optionally, old verification codes.")
    parser.add_argument("--codes-older-than-days", type=int, default=None,
                        help="Also delete verification codes that expired more than N days ago (kept by default for audit)")
    parser.add_argument("--dry-run", action="store_true", help="Only count matching rows")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        counts = prune_expired(db, args.codes_older_than_days, args.dry_run)
    finally:
        db.close()
    print(counts)

if __name__ == "__main__":
    main()
