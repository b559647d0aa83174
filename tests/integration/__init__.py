"""
Integration tests for the logsync library.

These tests run the SQL record source against a file-backed SQLite database
through aiosqlite. They are skipped automatically if aiosqlite is not
installed.

Run integration tests:
    pytest tests/integration/ -v

Run only SQLite tests:
    pytest tests/ -v -m sqlite
"""
