#!/usr/bin/env python3
# scripts/setup_database.py
"""
Complete database setup script
- Verifies database connection
- Creates all tables via Alembic migration
- Verifies the crowdfunding tables exist
"""
import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect

from app.core.config import DATABASE_URL, PORT
from app.db.session import engine, test_db_connection

EXPECTED_TABLES = [
    'campaigns',
    'campaign_donators',
    'users',
    'user_donations',
    'alembic_version',
]


def setup():
    print("=" * 70)
    print("🚀 CROWDFUNDING DATABASE SETUP")
    print("=" * 70)

    # Step 1: Test connection
    print("\n1️⃣  Testing database connection...")
    print(f"   Database: {DATABASE_URL.split('@')[1] if '@' in DATABASE_URL else 'hidden'}")

    if not test_db_connection():
        print("   ❌ Database connection failed!")
        print("   Please check:")
        print("   - PostgreSQL is running")
        print("   - Database exists")
        print("   - .env configuration is correct")
        return 1
    print("   ✅ Database connected successfully")

    # Step 2: Run migrations
    print("\n2️⃣  Running database migrations...")
    print("   Execute: alembic upgrade head")
    result = os.system("alembic upgrade head")
    if result != 0:
        print("   ❌ Migration failed!")
        print("   Try manually: alembic upgrade head")
        return 1
    print("   ✅ All migrations applied")

    # Step 3: Verify tables
    print("\n3️⃣  Verifying database tables...")
    try:
        tables = inspect(engine).get_table_names()
        missing = [t for t in EXPECTED_TABLES if t not in tables]

        if missing:
            print(f"   ⚠️  Missing tables: {', '.join(missing)}")
        else:
            print(f"   ✅ All {len(EXPECTED_TABLES)} tables created")
            for table in EXPECTED_TABLES:
                print(f"      ✓ {table}")
    except Exception as e:
        print(f"   ⚠️  Could not verify tables: {e}")

    print("\n" + "=" * 70)
    print("✅ DATABASE SETUP COMPLETE!")
    print("=" * 70)

    print("\n🚀 Start Application:")
    print(f"   python -m uvicorn app.main:app --reload --host 0.0.0.0 --port {PORT}")
    print(f"   Visit: http://localhost:{PORT}/docs")
    print("\n" + "=" * 70)

    return 0


if __name__ == "__main__":
    sys.exit(setup())
