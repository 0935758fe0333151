"""
Tests for the publication index migration script.
"""

import sqlite3

import pytest

from cms.migrations.add_publication_active_index import INDEX_NAME, index_exists, migrate


@pytest.fixture
def legacy_db(tmp_path):
    """SQLite file with a publications table but no partial index."""
    path = tmp_path / 'cms.db'
    conn = sqlite3.connect(path)
    conn.execute("""
        CREATE TABLE publications (
            id VARCHAR(36) PRIMARY KEY,
            tenant_id VARCHAR(36), role_id VARCHAR(36),
            scope VARCHAR(10), target_key VARCHAR(36),
            is_active BOOLEAN, published_at DATETIME
        )
    """)
    conn.executemany(
        "INSERT INTO publications VALUES (?, 't1', 'r1', ?, ?, ?, ?)",
        [
            ('old', 'GLOBAL', '*', 1, '2026-01-01 10:00:00'),
            ('new', 'GLOBAL', '*', 1, '2026-02-01 10:00:00'),
            ('store', 'STORE', 's1', 1, '2026-01-15 10:00:00'),
            ('retired', 'GLOBAL', '*', 0, '2025-12-01 10:00:00'),
        ]
    )
    conn.commit()
    conn.close()
    return str(path)


def active_ids(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return {row[0] for row in conn.execute("SELECT id FROM publications WHERE is_active = 1")}
    finally:
        conn.close()


class TestPublicationIndexMigration:

    def test_keeps_newest_active_per_target(self, legacy_db):
        assert migrate(legacy_db) is True
        assert active_ids(legacy_db) == {'new', 'store'}

    def test_creates_index(self, legacy_db):
        migrate(legacy_db)

        conn = sqlite3.connect(legacy_db)
        try:
            assert index_exists(conn.cursor(), INDEX_NAME)
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO publications VALUES ('dup', 't1', 'r1', 'GLOBAL', '*', 1, '2026-03-01')"
                )
        finally:
            conn.close()

    def test_second_run_is_noop(self, legacy_db):
        migrate(legacy_db)
        assert migrate(legacy_db) is True
        assert active_ids(legacy_db) == {'new', 'store'}

    def test_missing_database(self, tmp_path):
        assert migrate(str(tmp_path / 'absent.db')) is True
