#!/usr/bin/env python3
"""
Chunked upload of one file.

Large files go up in fixed-size chunks into the wiki's upload stash, then a
finalize call publishes the stashed file as a file page revision:

    IDLE -> UPLOADING(offset) -> STAGED(filekey) -> PUBLISHED
                         any state -> ABANDONED

Each step() makes exactly one API call. A retryable failure leaves the offset
where it was, so the next step() resends the same chunk. The dispatcher owns
the retry budget and calls abandon() when it runs out.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from wikibatch.actions import Upload
from wikibatch.client import ActionClient, upload_chunk_call, upload_finalize_call
from wikibatch.namespaces import FILE
from wikibatch.outcome import ActionOutcome

DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024  # 4 MiB


class UploadState(Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    STAGED = "staged"
    PUBLISHED = "published"
    ABANDONED = "abandoned"


@dataclass
class UploadSession:
    """Progress of one file through the stash."""

    path: Path
    handle: Optional[BinaryIO] = None
    total_size: int = 0
    offset: int = 0
    filekey: Optional[str] = None
    chunks_sent: int = 0

    def close(self):
        if self.handle is not None:
            self.handle.close()
            self.handle = None


class ChunkedUploadProtocol:
    """Drive one Upload item through chunk, stash and finalize calls."""

    def __init__(
        self,
        client: ActionClient,
        item: Upload,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        default_summary: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self.client = client
        self.item = item
        self.chunk_size = chunk_size
        self.summary = item.summary if item.summary is not None else (default_summary or "")
        self.logger = logger or logging.getLogger(__name__)

        title = client.resolver.resolve(item.title, ensure=FILE)
        self.title = title.text
        self.filename = title.name

        self.state = UploadState.IDLE
        self.upload: Optional[UploadSession] = None
        self.abandon_cause: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state in (UploadState.PUBLISHED, UploadState.ABANDONED)

    @property
    def expected_chunks(self) -> int:
        if self.upload is None:
            return 0
        return math.ceil(self.upload.total_size / self.chunk_size)

    def step(self) -> ActionOutcome:
        """
        Make the next call of the protocol.

        Returns:
            Outcome of that call. SUCCESS means progress was made; check
            `done` to see whether the file is published.
        """
        if self.state is UploadState.IDLE:
            outcome = self._begin()
            if not outcome.ok:
                return outcome

        if self.state is UploadState.UPLOADING:
            return self._send_chunk()
        if self.state is UploadState.STAGED:
            return self._finalize()

        return ActionOutcome.fatal(f"upload of {self.title} is already {self.state.value}")

    def abandon(self, cause: str):
        """Give up on the file. The stash entry, if any, is left to expire server-side."""
        if self.state is UploadState.PUBLISHED:
            return
        self.state = UploadState.ABANDONED
        self.abandon_cause = cause
        if self.upload is not None:
            self.upload.close()
            if self.upload.filekey:
                self.logger.warning(
                    f"Abandoned {self.title} at {self.upload.offset}/{self.upload.total_size} bytes "
                    f"(stash key {self.upload.filekey}): {cause}"
                )
                return
        self.logger.warning(f"Abandoned {self.title}: {cause}")

    def _begin(self) -> ActionOutcome:
        path = Path(self.item.path)
        try:
            handle = open(path, "rb")
        except OSError as e:
            return ActionOutcome.fatal(f"cannot read {path}: {e}", code="localfile")

        size = path.stat().st_size
        if size == 0:
            handle.close()
            return ActionOutcome.fatal(f"{path} is empty", code="emptyfile")

        self.upload = UploadSession(path=path, handle=handle, total_size=size)
        self.state = UploadState.UPLOADING
        self.logger.debug(f"Uploading {path} as {self.title}: {size} bytes in {self.expected_chunks} chunk(s)")
        return ActionOutcome.success()

    def _send_chunk(self) -> ActionOutcome:
        upload = self.upload
        upload.handle.seek(upload.offset)
        chunk = upload.handle.read(self.chunk_size)

        outcome = self.client.execute(upload_chunk_call(
            self.filename,
            chunk,
            offset=upload.offset,
            filesize=upload.total_size,
            filekey=upload.filekey,
        ))
        if not outcome.ok:
            return outcome

        result = outcome.data.get("upload", {})
        filekey = result.get("filekey")
        if not filekey:
            return ActionOutcome.fatal(f"no stash key for {self.title} chunk @{upload.offset}", code="nofilekey")

        upload.filekey = filekey
        next_offset = int(result.get("offset", upload.offset + len(chunk)))
        if next_offset <= upload.offset:
            return ActionOutcome.retryable(
                f"stash did not advance past offset {upload.offset} for {self.title}", code="nooffsetprogress"
            )
        upload.chunks_sent += 1
        upload.offset = next_offset

        if upload.offset >= upload.total_size:
            self.state = UploadState.STAGED
        return outcome

    def _finalize(self) -> ActionOutcome:
        outcome = self.client.execute(upload_finalize_call(
            self.filename,
            self.upload.filekey,
            description=self.item.description,
            summary=self.summary,
        ))
        if outcome.ok:
            self.state = UploadState.PUBLISHED
            self.upload.close()
            self.logger.info(f"Published {self.title} ({self.upload.chunks_sent} chunk(s))")
        return outcome
