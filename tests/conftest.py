"""Pytest configuration and shared fixtures."""

import sys
import threading
from pathlib import Path

import pytest

# Add project root to path for all tests
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from wikibatch.client import ActionClient
from wikibatch.dispatcher import BatchDispatcher, RetryPolicy
from wikibatch.session import Session
from wikibatch.transport import Transport, TransportResponse


class ScriptedTransport(Transport):
    """
    Stands in for the wiki.

    Token requests are answered with `self.token`. Every other call is
    recorded and answered by `handler(params, files)`, which returns a
    TransportResponse or an exception instance to raise.
    """

    def __init__(self, handler=None, token="token-1"):
        self.handler = handler or (lambda params, files: self.ok(params["action"]))
        self.token = token
        self.token_requests = 0
        self.calls = []
        self.lock = threading.Lock()

    def post(self, params, files=None):
        if params.get("meta") == "tokens" and params.get("type") == "csrf":
            with self.lock:
                self.token_requests += 1
            return TransportResponse(200, {"query": {"tokens": {"csrftoken": self.token}}})

        with self.lock:
            self.calls.append((dict(params), files))
        result = self.handler(params, files)
        if isinstance(result, Exception):
            raise result
        return result

    def script(self, *responses):
        """Answer calls with `responses` in order."""
        pending = list(responses)
        lock = threading.Lock()

        def handler(params, files):
            with lock:
                return pending.pop(0)

        self.handler = handler

    def actions(self):
        return [params["action"] for params, _ in self.calls]

    @staticmethod
    def ok(action, **extra):
        bodies = {
            "edit": {"edit": {"result": "Success"}},
            "delete": {"delete": {"title": "x", "reason": ""}},
            "purge": {"purge": [{"title": "x", "purged": True}]},
            "move": {"move": {"from": "a", "to": "b"}},
            "upload": {"upload": {"result": "Success", "filekey": "key.1"}},
        }
        body = bodies[action]
        if extra:
            body[action].update(extra)
        return TransportResponse(200, body)

    @staticmethod
    def error(code, info=None, status=200, headers=None):
        return TransportResponse(
            status,
            {"error": {"code": code, "info": info or code}},
            headers=headers or {},
        )


@pytest.fixture
def temp_log_dir(tmp_path):
    """Provide a temporary directory for log files."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def session(transport):
    return Session(transport)


@pytest.fixture
def client(session):
    return ActionClient(session)


@pytest.fixture
def no_wait_retry():
    """Default retry budget without real sleeping."""
    return RetryPolicy(max_attempts=3, base_delay=0.0)


@pytest.fixture
def dispatcher(client, no_wait_retry):
    return BatchDispatcher(client, concurrency=2, retry=no_wait_retry)
