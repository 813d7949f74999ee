#!/usr/bin/env python3
"""
Quick checks so the notify backend can start and actually deliver. Run from backend/:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []
    warnings = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        warnings.append("backend/.env missing. Set DATABASE_URL, CRON_SECRET, CONTENTFUL_* in the environment instead.")
    else:
        print("OK  .env exists")

    # 2) DB connection and tables
    try:
        from sqlalchemy import inspect, text

        from app.db.session import get_engine
        from app.db.tables import ALL_TABLE_NAMES

        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = sorted(set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names()))
        if missing:
            errors.append(f"Missing tables {missing}. Run: alembic upgrade head")
            print("FAIL Tables missing:", ", ".join(missing))
        else:
            print("OK  Tables:", ", ".join(ALL_TABLE_NAMES))
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) App import (catches missing deps, bad imports)
    try:
        from app.main import app  # noqa: F401
        print("OK  App import (app.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    # 4) Credentials the two entry points need
    try:
        from app.config import settings
        from app.services.contentful import ContentfulClient

        if not settings.cron_secret:
            warnings.append("CRON_SECRET not set: /cron/send-scheduled-notifications rejects every call.")
        if not ContentfulClient().is_configured():
            warnings.append("CONTENTFUL_SPACE_ID / CONTENTFUL_ACCESS_TOKEN not set: scheduled push finds no projects.")
        if not settings.scheduled_dispatch_enabled:
            print("INFO In-process scheduler off; an external cron must call /cron/send-scheduled-notifications")
    except Exception as e:
        errors.append(f"Settings: {e}")
        print("FAIL Settings:", e)

    for w in warnings:
        print("WARN", w)

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn app.main:app --host 0.0.0.0 --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
