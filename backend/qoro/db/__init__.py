"""Database Infrastructure — SQLAlchemy declarative Base.

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite in tests
"""
