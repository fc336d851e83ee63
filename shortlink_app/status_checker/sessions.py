"""
One requests.Session per worker thread.

The checker calls the prober and the archive resolver from a thread pool;
each pool thread gets its own session (and connection pool) instead of
sharing one across threads.
"""

import threading
from typing import List, Optional

import requests


class PerThreadSession:

    def __init__(
        self,
        user_agent: str,
        max_redirects: int = 0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            user_agent: User-Agent header for every session handed out
            max_redirects: Redirect hop limit set on each session (0 leaves the default)
            session: Use this one session for every thread (tests inject fakes here)
        """
        self.user_agent = user_agent
        self.max_redirects = max_redirects
        self._shared = self._configure(session) if session is not None else None
        self._local = threading.local()
        self._created: List[requests.Session] = []
        self._lock = threading.Lock()

    def _configure(self, session):
        session.headers["User-Agent"] = self.user_agent
        if self.max_redirects:
            session.max_redirects = self.max_redirects
        return session

    def get(self) -> requests.Session:
        if self._shared is not None:
            return self._shared

        session = getattr(self._local, "session", None)
        if session is None:
            session = self._configure(requests.Session())
            self._local.session = session
            with self._lock:
                self._created.append(session)
        return session

    def close(self):
        """Close every session handed out so far; later get() calls start fresh ones"""
        if self._shared is not None:
            self._shared.close()
            return

        with self._lock:
            created, self._created = self._created, []
            self._local = threading.local()
        for session in created:
            session.close()
