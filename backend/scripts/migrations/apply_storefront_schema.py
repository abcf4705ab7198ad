#!/usr/bin/env python3
"""
Script: apply_storefront_schema.py
Purpose: Apply the storefront schema (sql/001_storefront_schema.sql)

This script:
1. Reports which storefront tables already exist
2. Runs the SQL migration in a single transaction
3. Verifies every table exists afterwards

Usage:
    cd backend
    python scripts/migrations/apply_storefront_schema.py [--dry-run]

Options:
    --dry-run    Show what would be done without making changes
"""

import os
import sys
import argparse
import psycopg2
from pathlib import Path
from datetime import datetime

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).parent.parent.parent
SQL_FILE = Path(__file__).parent / 'sql' / '001_storefront_schema.sql'

# Load environment
env_path = BACKEND_DIR / '.env.development'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv(BACKEND_DIR / '.env')

DATABASE_URL = os.getenv("DATABASE_URL")

EXPECTED_TABLES = [
    'categories',
    'products',
    'orders',
    'order_timeline',
    'contact_messages',
    'user_roles',
]


def print_header(title: str):
    """Print formatted header"""
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")


def print_step(step: int, description: str):
    """Print step indicator"""
    print(f"\n[Step {step}] {description}")
    print("-" * 50)


def check_tables_exist(cursor) -> dict:
    """Check which storefront tables currently exist"""
    result = {}
    for table in EXPECTED_TABLES:
        cursor.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = %s
            )
        """, (table,))
        result[table] = cursor.fetchone()[0]
    return result


def run_sql_migration(cursor, sql: str, dry_run: bool = False) -> None:
    """Execute the SQL migration"""
    if dry_run:
        statements = sql.count(';')
        print(f"  [DRY RUN] Would execute {SQL_FILE.name} (~{statements} statements)")
        return

    print(f"  Executing {SQL_FILE.name}")
    cursor.execute(sql)


def main():
    parser = argparse.ArgumentParser(description='Apply the storefront schema')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    args = parser.parse_args()

    dry_run = args.dry_run

    print_header("Migration 001: Storefront Schema")
    print(f"Timestamp: {datetime.now().isoformat()}")
    print(f"Mode: {'DRY RUN' if dry_run else 'EXECUTE'}")

    if not DATABASE_URL:
        print("\nERROR: DATABASE_URL not set")
        sys.exit(1)

    if not SQL_FILE.exists():
        print(f"\nERROR: SQL file not found: {SQL_FILE}")
        sys.exit(1)

    sql = SQL_FILE.read_text()

    print_step(1, "Connecting to database")
    try:
        conn = psycopg2.connect(DATABASE_URL)
        conn.autocommit = False
        cursor = conn.cursor()
        print("  Connected successfully")
    except psycopg2.Error as e:
        print(f"  ERROR: {e}")
        sys.exit(1)

    print_step(2, "Checking current database state")
    before_state = check_tables_exist(cursor)
    for table, exists in before_state.items():
        print(f"    {table}: {'EXISTS' if exists else 'not found'}")

    print_step(3, "Executing SQL migration")
    try:
        run_sql_migration(cursor, sql, dry_run)
        if not dry_run:
            conn.commit()
            print("  Migration committed successfully")
    except psycopg2.Error as e:
        conn.rollback()
        print(f"  ERROR: {e}")
        print("  Migration rolled back")
        cursor.close()
        conn.close()
        sys.exit(1)

    print_step(4, "Verifying database changes")
    after_state = check_tables_exist(cursor)
    missing = [table for table, exists in after_state.items() if not exists]
    for table, exists in after_state.items():
        if exists and not before_state[table]:
            print(f"  + Created table: {table}")
        elif exists:
            print(f"  - Table already present: {table}")
        else:
            print(f"  x Missing table: {table}")

    cursor.close()
    conn.close()

    print_header("Summary")
    if dry_run:
        print("DRY RUN COMPLETE - No changes were made")
        print("\nRun without --dry-run to execute changes")
    elif missing:
        print(f"MIGRATION INCOMPLETE - missing tables: {', '.join(missing)}")
        sys.exit(1)
    else:
        print("MIGRATION COMPLETE")


if __name__ == '__main__':
    main()
