#!/usr/bin/env python3
"""
Bot configuration: config.json plus environment overrides.

Credentials never go in the JSON file; they come from the environment
(WIKIBATCH_USERNAME / WIKIBATCH_PASSWORD).

Example config.json:
    {
      "wiki": {
        "name": "Commons",
        "api_endpoint": "https://commons.wikimedia.org/w/api.php",
        "user_agent": "CleanupBot/1.0 (User:Example)"
      },
      "batch": {
        "concurrency": 4,
        "timeout_seconds": 30,
        "max_attempts": 3,
        "backoff_seconds": 1,
        "backoff_multiplier": 2,
        "max_backoff_seconds": 60,
        "chunk_size": 4194304
      }
    }
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from wikibatch.client import ActionClient
from wikibatch.dispatcher import BatchDispatcher, RetryPolicy
from wikibatch.errors import ConfigError
from wikibatch.session import Session
from wikibatch.transport import RequestsTransport
from wikibatch.upload import DEFAULT_CHUNK_SIZE

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.json"


@dataclass
class BatchConfig:
    api_url: str
    wiki_name: str = "Wiki"
    user_agent: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    concurrency: int = 4
    timeout: float = 30.0
    max_attempts: int = 3
    backoff: float = 1.0
    backoff_multiplier: float = 2.0
    max_backoff: float = 60.0
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @property
    def wiki_id(self) -> str:
        return self.wiki_name.lower().replace(" ", "-")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.backoff,
            multiplier=self.backoff_multiplier,
            max_delay=self.max_backoff,
        )


def load_config(path: Union[str, Path, None] = None) -> BatchConfig:
    """
    Load configuration from JSON, then apply environment overrides.

    Args:
        path: Config file (default: WIKIBATCH_CONFIG env var or ./config.json
            in the project root). A missing file is fine if WIKIBATCH_API is set.

    Raises:
        ConfigError: on unreadable JSON or when no API endpoint is configured
    """
    config_path = Path(path or os.environ.get("WIKIBATCH_CONFIG", DEFAULT_CONFIG_PATH))

    raw: dict = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e

    wiki = raw.get("wiki", {})
    batch = raw.get("batch", {})

    api_url = os.environ.get("WIKIBATCH_API", wiki.get("api_endpoint"))
    if not api_url:
        raise ConfigError(f"No API endpoint: set wiki.api_endpoint in {config_path} or WIKIBATCH_API")

    try:
        return BatchConfig(
            api_url=api_url,
            wiki_name=wiki.get("name", "Wiki"),
            user_agent=wiki.get("user_agent"),
            username=os.environ.get("WIKIBATCH_USERNAME") or None,
            password=os.environ.get("WIKIBATCH_PASSWORD") or None,
            concurrency=int(os.environ.get("WIKIBATCH_CONCURRENCY", batch.get("concurrency", 4))),
            timeout=float(batch.get("timeout_seconds", 30)),
            max_attempts=int(batch.get("max_attempts", 3)),
            backoff=float(batch.get("backoff_seconds", 1)),
            backoff_multiplier=float(batch.get("backoff_multiplier", 2)),
            max_backoff=float(batch.get("max_backoff_seconds", 60)),
            chunk_size=int(batch.get("chunk_size", DEFAULT_CHUNK_SIZE)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Bad value in {config_path}: {e}") from e


def build_dispatcher(
    config: BatchConfig,
    logger: Optional[logging.Logger] = None,
    login: bool = True,
) -> BatchDispatcher:
    """
    Wire transport, session, client and dispatcher from a config.

    Logs in when credentials are configured and `login` is set; otherwise
    the session stays anonymous.
    """
    transport = RequestsTransport(
        api_url=config.api_url,
        user_agent=config.user_agent,
        timeout=config.timeout,
    )
    session = Session(transport, logger=logger)
    if login and config.username and config.password:
        session.login(config.username, config.password)

    client = ActionClient(session, logger=logger)
    return BatchDispatcher(
        client,
        concurrency=config.concurrency,
        retry=config.retry_policy(),
        chunk_size=config.chunk_size,
        logger=logger,
    )
