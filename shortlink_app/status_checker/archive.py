"""
Archive Resolver: finds the closest Wayback Machine snapshot of a URL.

Best effort. Any failure is logged and reported as "no snapshot"; it
never blocks the checker or changes the URL's gone state.
"""

import logging
from typing import Optional

import requests

from shortlink_app.status_checker.sessions import PerThreadSession

logger = logging.getLogger(__name__)

WAYBACK_AVAILABILITY_ENDPOINT = "https://archive.org/wayback/available"


class ArchiveResolver:

    def __init__(
        self,
        endpoint: str = WAYBACK_AVAILABILITY_ENDPOINT,
        timeout: float = 10.0,
        user_agent: str = "shortlink-status-checker/1.0",
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.sessions = PerThreadSession(user_agent, session=session)

    def resolve(self, url: str) -> Optional[str]:
        """
        Look up the closest available snapshot.

        Returns:
            Snapshot URL, or None if none was found or the lookup failed
        """
        try:
            response = self.sessions.get().get(
                self.endpoint,
                params={"url": url},
                timeout=self.timeout,
            )
            if not 200 <= response.status_code < 300:
                logger.info(
                    "Wayback availability lookup for %s returned %s",
                    url,
                    response.status_code,
                )
                return None
            data = response.json()
        except requests.RequestException as exc:
            logger.warning("Wayback availability lookup for %s failed: %s", url, exc)
            return None
        except ValueError as exc:
            logger.warning("Wayback availability response for %s was not JSON: %s", url, exc)
            return None

        if not isinstance(data, dict):
            return None
        closest = (data.get("archived_snapshots") or {}).get("closest") or {}
        if closest.get("available") and closest.get("url"):
            return closest["url"]
        return None

    def close(self):
        self.sessions.close()
