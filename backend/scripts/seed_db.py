"""CLI script to create the tables and seed the default catalog.

Usage: python scripts/seed_db.py

Seeding is skipped when the database already contains subjects.
"""
import logging
import pathlib
import sys

# Ensure `backend/` is on sys.path so `prep_tracker` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from prep_tracker.config import settings
from prep_tracker.database import engine, create_db_and_tables
from prep_tracker.seed import seed_database


def main():
    logging.basicConfig(level=settings.LOG_LEVEL)
    print("Using database:", settings.DATABASE_URL)
    create_db_and_tables()
    with Session(engine) as session:
        seeded = seed_database(session)
    if seeded:
        print(f"Seeded. Admin credentials: {settings.ADMIN_EMAIL} / (ADMIN_PASSWORD)")
    else:
        print("Database already seeded; nothing to do.")


if __name__ == '__main__':
    main()
