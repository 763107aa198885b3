"""
Write-side MediaWiki client and batch engine for maintenance bots.

Provides:
- ActionClient: single write calls with token renewal and failure classification
- ChunkedUploadProtocol: stash-and-finalize uploads for large files
- BatchDispatcher: bounded worker pool with per-item retry and partial failure
- NamespaceResolver: title normalization and namespace lookup
- setup_logging: Logging configuration for console and file output
"""

from wikibatch.actions import Delete, Edit, EditMode, Move, Purge, Upload
from wikibatch.client import ActionClient, ApiCall
from wikibatch.config import BatchConfig, build_dispatcher, load_config
from wikibatch.dispatcher import BatchDispatcher, BatchResult, CancelToken, FailureKind, RetryPolicy
from wikibatch.logging_config import setup_logging, get_log_dir
from wikibatch.namespaces import NamespaceResolver, Title
from wikibatch.outcome import ActionOutcome, OutcomeKind
from wikibatch.session import Session
from wikibatch.transport import RequestsTransport, Transport, TransportResponse
from wikibatch.upload import ChunkedUploadProtocol, UploadState

__all__ = [
    "ActionClient",
    "ActionOutcome",
    "ApiCall",
    "BatchConfig",
    "BatchDispatcher",
    "BatchResult",
    "CancelToken",
    "ChunkedUploadProtocol",
    "Delete",
    "Edit",
    "EditMode",
    "FailureKind",
    "Move",
    "NamespaceResolver",
    "OutcomeKind",
    "Purge",
    "RequestsTransport",
    "RetryPolicy",
    "Session",
    "Title",
    "Transport",
    "TransportResponse",
    "Upload",
    "UploadState",
    "build_dispatcher",
    "get_log_dir",
    "load_config",
    "setup_logging",
]
