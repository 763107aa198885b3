#!/usr/bin/env python3
"""
HTTP transport for the MediaWiki write API.

The Session talks to the wiki only through a Transport, so tests can swap in
a scripted responder and never touch the network.

Usage:
    from wikibatch.transport import RequestsTransport

    transport = RequestsTransport(
        api_url="https://commons.wikimedia.org/w/api.php",
        user_agent="CleanupBot/1.0 (User:Example)",
        timeout=30,
    )
    response = transport.post({"action": "query", "meta": "tokens"})
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from requests.structures import CaseInsensitiveDict


@dataclass
class TransportResponse:
    """What came back from one HTTP round trip."""

    status_code: int
    data: Optional[dict] = None
    headers: dict = field(default_factory=dict)
    text: str = ""

    @property
    def retry_after(self) -> Optional[float]:
        """Seconds the server asked us to wait, if it said so."""
        value = CaseInsensitiveDict(self.headers).get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


class Transport:
    """Request -> response capability used by the Session."""

    timeout: float = 30.0

    def post(self, params: dict, files: Optional[dict] = None) -> TransportResponse:
        """
        Send one POST to the API endpoint.

        Network failures are raised as requests.RequestException subclasses;
        the ActionClient classifies them.
        """
        raise NotImplementedError


class RequestsTransport(Transport):
    """Transport over a requests.Session, keeping login cookies between calls."""

    def __init__(
        self,
        api_url: str,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the transport.

        Args:
            api_url: MediaWiki API endpoint (e.g., https://wiki.example.com/w/api.php)
            user_agent: User agent string; wikis block bots without a contact
            timeout: Per-call timeout in seconds
            session: Existing requests session to reuse (creates one if not provided)
        """
        self.api_url = api_url
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent or "wikibatch/1.0 (maintenance bot)",
            "Accept": "application/json",
        })

    def post(self, params: dict, files: Optional[dict] = None) -> TransportResponse:
        payload: dict[str, Any] = dict(params)
        payload["format"] = "json"
        payload["formatversion"] = "2"

        response = self.session.post(
            self.api_url,
            data=payload,
            files=files,
            timeout=self.timeout,
        )

        try:
            data = response.json()
        except ValueError:
            data = None

        return TransportResponse(
            status_code=response.status_code,
            data=data if isinstance(data, dict) else None,
            headers=CaseInsensitiveDict(response.headers),
            text=response.text if data is None else "",
        )
