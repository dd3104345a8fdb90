"""
Integration tests for the tenantmigrate library.

These tests run whole pipelines against file-backed SQLite databases and
snapshot directories. They are skipped automatically if aiosqlite is not
installed.
"""
