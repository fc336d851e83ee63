"""
Tests for DestinationProber and ArchiveResolver with a fake requests session.
"""
import threading

import pytest
import requests

from shortlink_app.status_checker.archive import ArchiveResolver
from shortlink_app.status_checker.models import ProbeClassification
from shortlink_app.status_checker.prober import MAX_BODY_BYTES, DestinationProber
from shortlink_app.status_checker.sessions import PerThreadSession


class FakeResponse:

    def __init__(self, status_code=200, payload=None, body=b"<html></html>"):
        self.status_code = status_code
        self._payload = payload
        self._body = body
        self.chunk_sizes = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def iter_content(self, chunk_size=1):
        self.chunk_sizes.append(chunk_size)
        yield self._body[:chunk_size]

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for requests.Session; returns or raises whatever it was given"""

    def __init__(self, result):
        self.result = result
        self.headers = {}
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def close(self):
        self.closed = True


class TestDestinationProber:

    def test_ok_is_alive(self):
        response = FakeResponse(200)
        prober = DestinationProber(session=FakeSession(response))

        outcome = prober.probe("https://example.com/")

        assert outcome.classification is ProbeClassification.ALIVE
        assert outcome.status_code == 200
        assert response.closed
        assert response.chunk_sizes == [MAX_BODY_BYTES]

    @pytest.mark.parametrize("code", [404, 410])
    def test_gone_codes(self, code):
        prober = DestinationProber(session=FakeSession(FakeResponse(code)))

        outcome = prober.probe("https://example.com/missing")

        assert outcome.classification is ProbeClassification.GONE
        assert outcome.status_code == code

    def test_server_error_is_alive(self):
        prober = DestinationProber(session=FakeSession(FakeResponse(503)))

        assert prober.probe("https://example.com/").classification is ProbeClassification.ALIVE

    @pytest.mark.parametrize("error", [
        requests.exceptions.ConnectTimeout("timed out"),
        requests.exceptions.ConnectionError("Name or service not known"),
        requests.exceptions.SSLError("bad certificate"),
        requests.exceptions.TooManyRedirects("loop"),
    ])
    def test_transport_failures_are_unknown(self, error):
        prober = DestinationProber(session=FakeSession(error))

        outcome = prober.probe("https://unreachable.invalid/")

        assert outcome.classification is ProbeClassification.UNKNOWN
        assert outcome.status_code is None
        assert type(error).__name__ in outcome.error

    def test_request_options(self):
        session = FakeSession(FakeResponse(301))
        prober = DestinationProber(timeout=3.5, user_agent="probe-test/1.0", session=session)

        outcome = prober.probe("https://example.com/moved")

        url, kwargs = session.calls[0]
        assert url == "https://example.com/moved"
        assert kwargs["timeout"] == 3.5
        assert kwargs["allow_redirects"] is False
        assert kwargs["stream"] is True
        assert session.headers["User-Agent"] == "probe-test/1.0"
        # Redirects are not followed, so the 3xx itself is recorded
        assert outcome.status_code == 301

    def test_follows_redirects_when_configured(self):
        session = FakeSession(FakeResponse(200))
        prober = DestinationProber(max_redirects=5, session=session)

        prober.probe("https://example.com/moved")

        assert session.calls[0][1]["allow_redirects"] is True
        assert session.max_redirects == 5

    def test_close(self):
        session = FakeSession(FakeResponse(200))
        DestinationProber(session=session).close()
        assert session.closed


class TestArchiveResolver:

    def test_snapshot_found(self):
        payload = {
            "url": "example.com/page",
            "archived_snapshots": {
                "closest": {
                    "status": "200",
                    "available": True,
                    "url": "http://web.archive.org/web/20240101000000/https://example.com/page",
                    "timestamp": "20240101000000",
                }
            },
        }
        session = FakeSession(FakeResponse(200, payload))
        resolver = ArchiveResolver(endpoint="https://archive.test/wayback/available", session=session)

        snapshot = resolver.resolve("https://example.com/page")

        assert snapshot == "http://web.archive.org/web/20240101000000/https://example.com/page"
        url, kwargs = session.calls[0]
        assert url == "https://archive.test/wayback/available"
        assert kwargs["params"] == {"url": "https://example.com/page"}

    def test_no_snapshot(self):
        resolver = ArchiveResolver(session=FakeSession(FakeResponse(200, {"archived_snapshots": {}})))

        assert resolver.resolve("https://example.com/never-archived") is None

    def test_snapshot_not_available(self):
        payload = {"archived_snapshots": {"closest": {"available": False, "url": "http://x"}}}
        resolver = ArchiveResolver(session=FakeSession(FakeResponse(200, payload)))

        assert resolver.resolve("https://example.com/") is None

    def test_error_status(self):
        resolver = ArchiveResolver(session=FakeSession(FakeResponse(503, {})))

        assert resolver.resolve("https://example.com/") is None

    def test_not_json(self):
        resolver = ArchiveResolver(session=FakeSession(FakeResponse(200, ValueError("Expecting value"))))

        assert resolver.resolve("https://example.com/") is None

    def test_transport_failure(self):
        resolver = ArchiveResolver(session=FakeSession(requests.exceptions.ReadTimeout("slow")))

        assert resolver.resolve("https://example.com/") is None


class TestPerThreadSession:

    def _session_in_thread(self, sessions):
        found = []
        worker = threading.Thread(target=lambda: found.append(sessions.get()))
        worker.start()
        worker.join()
        return found[0]

    def test_one_session_per_thread(self):
        sessions = PerThreadSession("shortlink-test/1.0", max_redirects=3)

        here = sessions.get()
        there = self._session_in_thread(sessions)

        assert isinstance(here, requests.Session)
        assert here is sessions.get()
        assert here is not there
        assert there.headers["User-Agent"] == "shortlink-test/1.0"
        assert there.max_redirects == 3
        sessions.close()

    def test_close_closes_every_thread_session(self, monkeypatch):
        closed = []
        monkeypatch.setattr(requests.Session, "close", lambda session: closed.append(session))
        sessions = PerThreadSession("shortlink-test/1.0")
        here = sessions.get()
        there = self._session_in_thread(sessions)

        sessions.close()

        assert here in closed and there in closed
        # A fresh session after close, so a restarted checker keeps working
        assert sessions.get() is not here

    def test_injected_session_is_shared(self):
        fake = FakeSession(FakeResponse(200))
        sessions = PerThreadSession("shortlink-test/1.0", session=fake)

        assert sessions.get() is fake
        assert self._session_in_thread(sessions) is fake
        sessions.close()
        assert fake.closed

    def test_destination_checks_use_thread_sessions(self):
        prober = DestinationProber(user_agent="shortlink-test/1.0")

        assert prober.sessions.get() is not self._session_in_thread(prober.sessions)
        prober.close()
