"""
Database models for the URL shortener.

URL holds the short link itself; URLStatus holds what the background
status checker last observed at its destination; Click holds one row per
served redirect.
"""

from .url import URL
from .url_status import URLStatus
from .click import Click

__all__ = ["URL", "URLStatus", "Click"]
