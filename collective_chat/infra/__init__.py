"""
Infrastructure layer - Database
"""

from collective_chat.infra.database import Database, get_database

__all__ = [
    "Database",
    "get_database",
]
