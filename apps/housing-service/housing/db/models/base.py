"""
Declarative base and the clock helpers used for column defaults.
"""
from datetime import date, datetime, UTC

from sqlalchemy.orm import declarative_base

# JSONB has to compile on the SQLite engine used by the test suite
from .. import sqlite_compiler_shims  # noqa: F401


def now_utc() -> datetime:
    return datetime.now(UTC)


def today_utc() -> date:
    """Calendar date in UTC; entry and exit dates are plain dates."""
    return now_utc().date()


Base = declarative_base()
