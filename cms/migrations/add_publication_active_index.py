#!/usr/bin/env python3
"""
Migration: Enforce one active publication per scope target.

Databases created before the partial unique index existed may hold several
active publications for the same (tenant, role, scope, target). This
migration keeps the most recently published row of each such group active,
deactivates the rest, then creates ux_publications_active_target.

Run this script to upgrade an existing database:
    python -m cms.migrations.add_publication_active_index

Or import and call migrate() from Python:
    from cms.migrations.add_publication_active_index import migrate
    migrate('/path/to/cms.db')
"""

import os
import sqlite3
import sys

INDEX_NAME = 'ux_publications_active_target'


def get_db_path():
    """Get the SQLite database path."""
    cms_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.environ.get('CMS_DATABASE_PATH', os.path.join(cms_dir, 'data', 'cms.db'))


def index_exists(cursor, index_name):
    """Check if an index exists in the database."""
    cursor.execute("""
        SELECT name FROM sqlite_master
        WHERE type='index' AND name=?
    """, (index_name,))
    return cursor.fetchone() is not None


def retire_duplicates(cursor):
    """
    Deactivate all but the newest active row per target.

    Returns:
        Number of rows deactivated
    """
    cursor.execute("""
        SELECT id FROM publications p
        WHERE is_active = 1 AND EXISTS (
            SELECT 1 FROM publications newer
            WHERE newer.is_active = 1
              AND newer.tenant_id = p.tenant_id
              AND newer.role_id = p.role_id
              AND newer.scope = p.scope
              AND newer.target_key = p.target_key
              AND (newer.published_at > p.published_at
                   OR (newer.published_at = p.published_at AND newer.id > p.id))
        )
    """)
    stale_ids = [row[0] for row in cursor.fetchall()]

    for publication_id in stale_ids:
        cursor.execute("UPDATE publications SET is_active = 0 WHERE id = ?", (publication_id,))

    return len(stale_ids)


def migrate(db_path=None):
    """Run the migration."""
    db_path = db_path or get_db_path()

    if not os.path.exists(db_path):
        print(f"Database not found at {db_path}")
        print("Database will be created with new schema on app startup.")
        return True

    print(f"Migrating database: {db_path}")

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute("""
            SELECT name FROM sqlite_master
            WHERE type='table' AND name='publications'
        """)
        if not cursor.fetchone():
            print("  publications table does not exist, skipping migration")
            return True

        if index_exists(cursor, INDEX_NAME):
            print(f"  Index {INDEX_NAME} already exists")
            return True

        retired = retire_duplicates(cursor)
        print(f"  Deactivated {retired} duplicate active publication(s)")

        print(f"  Creating index {INDEX_NAME}...")
        cursor.execute(f"""
            CREATE UNIQUE INDEX {INDEX_NAME}
            ON publications(tenant_id, role_id, scope, target_key)
            WHERE is_active = 1
        """)

        conn.commit()
        print("\nMigration completed successfully!")
        return True

    except sqlite3.Error as e:
        conn.rollback()
        print(f"\nMigration failed: {e}")
        return False

    finally:
        conn.close()


if __name__ == '__main__':
    success = migrate(sys.argv[1] if len(sys.argv) > 1 else None)
    sys.exit(0 if success else 1)
