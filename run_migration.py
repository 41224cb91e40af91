#!/usr/bin/env python3
"""Quick migration runner.

Usage:
    python3 run_migration.py                                   # every file in migrations/, in order
    python3 run_migration.py migrations/0001_messaging_engine.sql
"""
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def migration_files(args: list[str]) -> list[Path]:
    if args:
        return [Path(a) for a in args]
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def main() -> int:
    load_dotenv()

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("❌ DATABASE_URL environment variable not set")
        return 1

    files = migration_files(sys.argv[1:])
    if not files:
        print(f"❌ No migration files found in {MIGRATIONS_DIR}")
        return 1

    print("🔌 Connecting to database...")
    conn = psycopg2.connect(database_url)
    try:
        with conn.cursor() as cursor:
            for path in files:
                sql = path.read_text(encoding="utf-8")
                print(f"📄 {path.name} ({len(sql)} bytes)")
                cursor.execute(sql)
        conn.commit()
        print(f"✅ Applied {len(files)} migration(s)")
        return 0

    except Exception as e:
        conn.rollback()
        print(f"❌ Error running migration: {e}")
        return 1

    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
