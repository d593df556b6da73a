"""Backing-store id queries: interface, SQL and in-memory implementations."""

from .base import IdStore, MinMax
from .memory import MemoryIdStore
from .sql import SqlIdStore, detect_db_type, render_where

__all__ = [
    "IdStore",
    "MinMax",
    "MemoryIdStore",
    "SqlIdStore",
    "detect_db_type",
    "render_where",
]
