"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Use JSON instead of JSONB for cross-database compatibility
JSONType = JSON

# UUID type that works with both databases (CHAR(32) on SQLite)
UUIDType = PG_UUID

# Stock quantities are decimal (fabric is sold by the metre)
QuantityType = Numeric(14, 3)

# Money amounts
MoneyType = Numeric(12, 2)
