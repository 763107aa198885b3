#!/usr/bin/env python3
"""
Authenticated session state: who we are, the write token, the transport.

One Session belongs to one ActionClient. The write token is the only thing
that changes while a batch runs, and it is renewed under a lock so that
workers hitting an expired token at the same moment share one renewal.
"""

import logging
import threading
from typing import Optional

from wikibatch.errors import LoginError, TokenError
from wikibatch.transport import Transport

ANONYMOUS_TOKEN = "+\\"


class Session:
    """Identity, write token and transport for one wiki account."""

    def __init__(
        self,
        transport: Transport,
        identity: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.identity = identity
        self.write_token: Optional[str] = None
        self.renewals = 0

        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    def login(self, username: str, password: str) -> str:
        """
        Log in with a bot password and fetch the first write token.

        Args:
            username: Bot password user name (e.g., "Example@CleanupBot")
            password: Bot password secret

        Returns:
            The logged in user name

        Raises:
            LoginError: if the wiki refuses the credentials
        """
        response = self.transport.post({
            "action": "query",
            "meta": "tokens",
            "type": "login",
        })
        login_token = ((response.data or {}).get("query", {}).get("tokens", {})).get("logintoken")
        if not login_token:
            raise LoginError(f"No login token from the API (HTTP {response.status_code})")

        response = self.transport.post({
            "action": "login",
            "lgname": username,
            "lgpassword": password,
            "lgtoken": login_token,
        })
        result = (response.data or {}).get("login", {})
        if result.get("result") != "Success":
            reason = result.get("reason") or result.get("result") or f"HTTP {response.status_code}"
            raise LoginError(f"Login as {username} failed: {reason}")

        self.identity = result.get("lgusername", username)
        self.logger.info(f"Logged in as {self.identity}")

        with self._lock:
            self.write_token = self.fetch_token()
        return self.identity

    def fetch_token(self) -> str:
        """
        Ask the API for a fresh write (csrf) token.

        Raises:
            TokenError: if the response carries no token
            requests.RequestException: on network failure
        """
        response = self.transport.post({
            "action": "query",
            "meta": "tokens",
            "type": "csrf",
        })
        token = ((response.data or {}).get("query", {}).get("tokens", {})).get("csrftoken")
        if not token:
            raise TokenError(f"No csrf token in API response (HTTP {response.status_code})")
        if token == ANONYMOUS_TOKEN and self.identity:
            raise TokenError(f"Session for {self.identity} was dropped; got the anonymous token")
        return token

    @property
    def token(self) -> str:
        """Current write token, fetched on first use."""
        token = self.write_token
        if token is None:
            with self._lock:
                if self.write_token is None:
                    self.write_token = self.fetch_token()
                token = self.write_token
        return token

    def renew_token(self, stale: Optional[str]) -> str:
        """
        Replace an expired write token.

        Callers pass the token that was rejected. If somebody else already
        replaced it while we waited for the lock, their token is returned
        without another network call.
        """
        with self._lock:
            if self.write_token is not None and self.write_token != stale:
                return self.write_token

            self.write_token = self.fetch_token()
            self.renewals += 1
            self.logger.info(f"Write token renewed (renewal #{self.renewals})")
            return self.write_token
