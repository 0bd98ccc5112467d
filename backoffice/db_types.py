"""Database-agnostic type definitions for SQLAlchemy models.

Columns declared with these types work on both SQLite and PostgreSQL.
"""
from sqlalchemy import JSON, Uuid

# JSONB is PostgreSQL-specific, JSON works with both SQLite and PostgreSQL
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid
