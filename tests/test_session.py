"""Tests for Session login and write token handling."""

import threading

import pytest

from wikibatch.errors import LoginError, TokenError
from wikibatch.session import ANONYMOUS_TOKEN, Session
from wikibatch.transport import TransportResponse


def login_token_response():
    return TransportResponse(200, {"query": {"tokens": {"logintoken": "login-tok+\\"}}})


class TestLogin:
    """Tests for Session.login."""

    def test_successful_login(self, transport, session):
        """Login should set the identity and fetch a write token."""
        transport.script(
            login_token_response(),
            TransportResponse(200, {"login": {"result": "Success", "lgusername": "Example"}}),
        )

        assert session.login("Example@CleanupBot", "secret") == "Example"
        assert session.identity == "Example"
        assert session.write_token == "token-1"

        login_params = transport.calls[1][0]
        assert login_params["lgname"] == "Example@CleanupBot"
        assert login_params["lgtoken"] == "login-tok+\\"

    def test_failed_login_raises(self, transport, session):
        transport.script(
            login_token_response(),
            TransportResponse(200, {"login": {"result": "Failed", "reason": "Incorrect password"}}),
        )

        with pytest.raises(LoginError, match="Incorrect password"):
            session.login("Example@CleanupBot", "wrong")
        assert session.identity is None

    def test_missing_login_token_raises(self, transport, session):
        transport.script(TransportResponse(503, None))

        with pytest.raises(LoginError):
            session.login("Example@CleanupBot", "secret")


class TestWriteToken:
    """Tests for token fetching and renewal."""

    def test_token_fetched_lazily_once(self, transport, session):
        assert session.write_token is None
        assert session.token == "token-1"
        assert session.token == "token-1"
        assert transport.token_requests == 1

    def test_missing_token_raises(self, transport, session):
        transport.token = None

        with pytest.raises(TokenError):
            session.fetch_token()

    def test_anonymous_token_for_logged_in_session_raises(self, transport):
        """A logged in bot getting the anonymous token has lost its cookies."""
        transport.token = ANONYMOUS_TOKEN
        session = Session(transport, identity="Example")

        with pytest.raises(TokenError):
            session.fetch_token()

    def test_anonymous_session_accepts_anonymous_token(self, transport, session):
        transport.token = ANONYMOUS_TOKEN
        assert session.token == ANONYMOUS_TOKEN

    def test_renew_replaces_stale_token(self, transport, session):
        session.write_token = "old"
        transport.token = "new"

        assert session.renew_token("old") == "new"
        assert session.write_token == "new"
        assert session.renewals == 1

    def test_renew_skips_when_already_renewed(self, transport, session):
        """A worker holding an outdated stale token reuses the newer one."""
        session.write_token = "newer"

        assert session.renew_token("old") == "newer"
        assert transport.token_requests == 0
        assert session.renewals == 0

    def test_concurrent_renewals_coalesce(self, transport, session):
        """Workers racing on one expiry must cause exactly one renewal call."""
        session.write_token = "old"
        transport.token = "new"
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        results_lock = threading.Lock()

        def renew():
            barrier.wait()
            token = session.renew_token("old")
            with results_lock:
                results.append(token)

        threads = [threading.Thread(target=renew) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert transport.token_requests == 1
        assert session.renewals == 1
        assert results == ["new"] * workers
