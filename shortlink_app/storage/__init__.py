"""
Click storage module.
Implements Strategy Pattern for flexible analytics backends.
"""

from .strategies import ClickStats, ClickStorageStrategy, SQLAlchemyClickStorage, referrer_domain

__all__ = [
    "ClickStats",
    "ClickStorageStrategy",
    "SQLAlchemyClickStorage",
    "referrer_domain",
]
