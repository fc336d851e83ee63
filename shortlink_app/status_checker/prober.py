"""
Destination Prober: one outbound request per check.

Only the status code matters. 404/410 mean gone, any other answer means
the destination responded, and no answer at all is UNKNOWN so a flaky
network never tombstones a link.
"""

import logging
from typing import Optional

import requests

from shortlink_app.status_checker.models import ProbeOutcome
from shortlink_app.status_checker.sessions import PerThreadSession

logger = logging.getLogger(__name__)

# Enough to let the server send headers; the body itself is irrelevant
MAX_BODY_BYTES = 1024


class DestinationProber:

    def __init__(
        self,
        timeout: float = 10.0,
        max_redirects: int = 0,
        user_agent: str = "shortlink-status-checker/1.0",
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            timeout: Per-request timeout in seconds (connect and read)
            max_redirects: Redirect hops to follow; 0 records the first response
            user_agent: User-Agent header sent to destinations
            session: requests session to use from every thread (tests inject a fake one)
        """
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.sessions = PerThreadSession(user_agent, max_redirects=max_redirects, session=session)

    def probe(self, url: str) -> ProbeOutcome:
        try:
            with self.sessions.get().get(
                url,
                timeout=self.timeout,
                allow_redirects=self.max_redirects > 0,
                stream=True,
            ) as response:
                next(response.iter_content(MAX_BODY_BYTES), None)
                status_code = response.status_code
        except requests.RequestException as exc:
            logger.debug("Probe of %s failed: %s", url, exc)
            return ProbeOutcome.transport_failure(f"{type(exc).__name__}: {exc}")

        return ProbeOutcome.from_status_code(status_code)

    def close(self):
        self.sessions.close()
