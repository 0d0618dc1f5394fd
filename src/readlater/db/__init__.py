"""Persistence layer for the read-later service."""

from .repository import (
    DatabaseConnectionError,
    DatabaseError,
    DatabaseLockError,
    ReadLaterDatabase,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "DatabaseLockError",
    "ReadLaterDatabase",
]
