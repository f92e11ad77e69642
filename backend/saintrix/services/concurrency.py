"""
Optimistic concurrency helpers.

Flag and follow-up rows carry a `version` column mapped as the SQLAlchemy
version_id_col, so every ORM UPDATE is issued as
"UPDATE ... WHERE id = :id AND version = :version". A zero-row update raises
StaleDataError, translated here into ConcurrentUpdateError.
"""
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .exceptions import ConcurrentUpdateError


def check_expected_version(row, table: str, expected_version: Optional[int]) -> None:
    """Reject the write early when the caller saw an older version of the row."""
    if expected_version is not None and row.version != expected_version:
        raise ConcurrentUpdateError(table, row.id, expected_version, row.version)


def commit_versioned(db: Session, table: str, record_id: str) -> None:
    """Commit, converting a lost conditional update into ConcurrentUpdateError."""
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentUpdateError(table, record_id) from e
