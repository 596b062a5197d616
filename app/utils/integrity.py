"""
Classification of database integrity errors across PostgreSQL and SQLite.
"""
from sqlalchemy.exc import IntegrityError


def is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return (
        "unique constraint" in message
        or "duplicate key" in message
        or "uniqueviolation" in type(error.orig).__name__.lower()
    )


def is_foreign_key_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return (
        "foreign key" in message
        or "foreignkeyviolation" in type(error.orig).__name__.lower()
    )
