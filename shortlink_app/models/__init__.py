"""
Database models for the short link service.

One table, ``urls``: immutable id <-> url pairs.
"""

from .url import URL

__all__ = ["URL"]
