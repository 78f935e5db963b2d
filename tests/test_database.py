"""
Database schema and connection tests.

Run with: pytest tests/test_database.py -v
"""

import sqlite3

import pytest


class TestDatabaseSchema:
    """Test database schema creation and structure."""

    def test_database_initialization(self, test_db):
        """Test that database initializes correctly."""
        from database.connection import get_db_connection

        with get_db_connection(test_db) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT name FROM sqlite_master
                WHERE type='table' AND name NOT LIKE 'sqlite_%'
                ORDER BY name
            """)
            tables = [row[0] for row in cursor.fetchall()]

        for table in [
            'dead_letter_messages',
            'job_applications',
            'jobs',
            'notification_deliveries',
            'queue_messages',
        ]:
            assert table in tables, f"Missing table: {table}"

    def test_init_is_idempotent(self, test_db):
        """Initializing twice keeps existing data."""
        from database.connection import init_database, get_db_connection

        with get_db_connection(test_db) as conn:
            conn.execute("INSERT INTO jobs (id, title, company) VALUES ('j1', 'Dev', 'Acme')")

        init_database(test_db)

        with get_db_connection(test_db) as conn:
            count = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
        assert count == 1

    def test_job_applications_table_structure(self, test_db):
        """Test job_applications has the resume key and notification marker."""
        from database.connection import get_db_connection

        with get_db_connection(test_db) as conn:
            columns = {row[1] for row in conn.execute("PRAGMA table_info(job_applications)")}

        expected = {
            'id', 'job_id', 'candidate_name', 'candidate_email',
            'resume_key', 'notification_enqueued_at', 'created_at', 'updated_at',
        }
        assert expected <= columns

    def test_foreign_key_enforced(self, test_db):
        """An application cannot reference a missing job."""
        from database.connection import get_db_connection

        with pytest.raises(sqlite3.IntegrityError):
            with get_db_connection(test_db) as conn:
                conn.execute("""
                    INSERT INTO job_applications (id, job_id, candidate_name, candidate_email)
                    VALUES ('a1', 'missing-job', 'Ana', 'ana@example.com')
                """)

    def test_salary_range_check(self, test_db):
        """The schema rejects an inverted salary range."""
        from database.connection import get_db_connection

        with pytest.raises(sqlite3.IntegrityError):
            with get_db_connection(test_db) as conn:
                conn.execute("""
                    INSERT INTO jobs (id, title, company, min_salary, max_salary)
                    VALUES ('j1', 'Dev', 'Acme', 200, 100)
                """)

    def test_rollback_on_error(self, test_db):
        """Writes inside a failed context are rolled back."""
        from database.connection import get_db_connection

        with pytest.raises(RuntimeError):
            with get_db_connection(test_db) as conn:
                conn.execute("INSERT INTO jobs (id, title, company) VALUES ('j1', 'Dev', 'Acme')")
                raise RuntimeError("boom")

        with get_db_connection(test_db) as conn:
            assert conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0] == 0


class TestDatabaseHealth:
    """Test database health check functionality."""

    def test_check_database_health(self, test_db):
        from database.connection import check_database_health

        stats = check_database_health(test_db)

        assert stats['exists'] is True
        assert 'jobs' in stats['tables']
        assert 'queue_messages' in stats['tables']
        assert 'size_bytes' in stats

    def test_health_check_nonexistent_db(self, test_db_path):
        from database.connection import check_database_health

        if test_db_path.exists():
            test_db_path.unlink()

        stats = check_database_health(test_db_path)
        assert stats['exists'] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
