"""
Database package initialization.
"""

from app.database.mongodb import MongoDB

__all__ = ['MongoDB']
