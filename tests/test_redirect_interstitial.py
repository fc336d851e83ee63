"""
End to end: a destination that starts returning 410 stops being redirected to.
"""
import asyncio
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from shortlink_app.api.v1.redirect import render_gone_interstitial
from shortlink_app.schemas.url import RedirectTarget
from shortlink_app.status_checker.checker import StatusChecker
from shortlink_app.status_checker.models import ProbeOutcome

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
SNAPSHOT = "http://web.archive.org/web/20230301000000/https://docs.example.com/old-page"


class StubProber:

    def __init__(self, status_code):
        self.status_code = status_code

    def probe(self, url):
        return ProbeOutcome.from_status_code(self.status_code)

    def close(self):
        pass


class StubResolver:

    def __init__(self, snapshot):
        self.snapshot = snapshot

    def resolve(self, url):
        return self.snapshot

    def close(self):
        pass


def _run_tick(status_repository, settings, cache, status_code, snapshot=None, now=NOW):
    checker = StatusChecker(
        repository=status_repository,
        settings=settings,
        prober=StubProber(status_code),
        resolver=StubResolver(snapshot),
        cache=cache,
    )
    return asyncio.run(checker.run_once(now=now))


class TestGoneRedirect:

    def test_gone_destination_serves_interstitial(
        self, client: TestClient, db_session, status_repository, checker_settings, cache
    ):
        created = client.post("/api/v1/urls/", json={"long_url": "https://docs.example.com/old-page"})
        short_code = created.json()["short_code"]

        # Redirect works and is now cached
        assert client.get(f"/{short_code}", follow_redirects=False).status_code == 302

        report = _run_tick(status_repository, checker_settings(), cache, 410, SNAPSHOT)
        assert report.newly_gone == 1
        assert report.archive_found == 1
        db_session.expire_all()

        response = client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 410
        assert "text/html" in response.headers["content-type"]
        assert "returned HTTP 410" in response.text
        assert SNAPSHOT in response.text
        assert "https://docs.example.com/old-page" in response.text

        status = client.get(f"/api/v1/urls/{short_code}/status").json()
        assert status["is_gone"] is True
        assert status["last_status_code"] == 410
        assert status["archive_url"] == SNAPSHOT

    def test_recovered_destination_redirects_again(
        self, client: TestClient, db_session, status_repository, checker_settings, cache
    ):
        created = client.post("/api/v1/urls/", json={"long_url": "https://flaky.example.com/"})
        short_code = created.json()["short_code"]
        settings = checker_settings(archive_lookup_enabled=False)

        _run_tick(status_repository, settings, cache, 404)
        db_session.expire_all()
        assert client.get(f"/{short_code}", follow_redirects=False).status_code == 410

        _run_tick(status_repository, settings, cache, 200, now=NOW + timedelta(days=2))
        db_session.expire_all()
        response = client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://flaky.example.com/"

    def test_server_error_does_not_mark_gone(
        self, client: TestClient, db_session, status_repository, checker_settings, cache
    ):
        created = client.post("/api/v1/urls/", json={"long_url": "https://busy.example.com/"})
        short_code = created.json()["short_code"]

        _run_tick(status_repository, checker_settings(), cache, 503)
        db_session.expire_all()

        assert client.get(f"/{short_code}", follow_redirects=False).status_code == 302
        assert client.get(f"/api/v1/urls/{short_code}/status").json()["last_status_code"] == 503


class TestInterstitialPage:

    def test_without_archive(self):
        html = render_gone_interstitial(
            RedirectTarget(
                url_id=1, short_code="abc", long_url="https://example.com/x", gone=True, last_status_code=404
            )
        )

        assert "returned HTTP 404" in html
        assert "No archived copy was found." in html

    def test_escapes_destination(self):
        html = render_gone_interstitial(
            RedirectTarget(url_id=1, short_code="abc", long_url='https://example.com/"><script>', gone=True)
        )

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "is no longer available" in html
