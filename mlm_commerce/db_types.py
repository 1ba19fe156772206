"""Database-agnostic type definitions for SQLAlchemy models.

The same models run on PostgreSQL in production and SQLite in tests.
"""
from sqlalchemy import Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Native uuid on PostgreSQL, CHAR(32) hex on SQLite
UUIDType = PG_UUID

# Currency amounts, e.g. 3600.00
MoneyType = Numeric(12, 2)

# Fractional rates, e.g. 0.3000 for 30%
RateType = Numeric(6, 4)

# Percentages, e.g. 12.50 for 12.5%
PercentType = Numeric(5, 2)
