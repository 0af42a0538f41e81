"""Unit tests for the depot engine.

All tests run against in-memory SQLite (aiosqlite) so no external database
service is required.
"""
