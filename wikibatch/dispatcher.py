#!/usr/bin/env python3
"""
Batch dispatcher: run many action items with a bounded worker pool.

A fixed number of worker threads claim items in input order and push each one
through the ActionClient. Retryable failures are retried with exponential
backoff up to a fixed budget; fatal failures are recorded at once. The result
is the list of items that failed for good, in input order. One bad item never
stops the batch.

Usage:
    from wikibatch.actions import Delete
    from wikibatch.dispatcher import BatchDispatcher, RetryPolicy

    dispatcher = BatchDispatcher(client, concurrency=4, retry=RetryPolicy(max_attempts=3))
    result = dispatcher.run([Delete(t) for t in titles], reason="Orphaned talk page")
    for failure in result:
        logger.error(f"{failure.item}: {failure.cause}")
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from wikibatch.actions import ActionItem, Delete, Edit, Move, Purge, Upload, describe
from wikibatch.client import ActionClient, ApiCall, delete_call, edit_call, move_call, purge_call
from wikibatch.errors import CallConstructionError
from wikibatch.outcome import ActionOutcome
from wikibatch.upload import DEFAULT_CHUNK_SIZE, ChunkedUploadProtocol


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often and how patiently to retry a retryable failure.

    `max_attempts` counts every try including the first. The wait before
    attempt n+1 is base_delay * multiplier**(n-1), capped at max_delay.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def schedule(self) -> list[float]:
        """All waits a fully exhausted item goes through."""
        return [self.delay(n) for n in range(1, self.max_attempts)]


class CancelToken:
    """Thread-safe stop flag shared between the caller and the workers."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class FailureKind(Enum):
    FATAL = "fatal"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FailedItem:
    index: int
    item: ActionItem
    kind: FailureKind
    cause: str


class BatchResult:
    """Permanently failed items, in the order they were submitted."""

    def __init__(self, failures: Sequence[FailedItem], total: int):
        self.failures = sorted(failures, key=lambda f: f.index)
        self.total = total

    @property
    def items(self) -> list[ActionItem]:
        return [f.item for f in self.failures]

    @property
    def cancelled(self) -> list[FailedItem]:
        return [f for f in self.failures if f.kind is FailureKind.CANCELLED]

    @property
    def succeeded(self) -> int:
        return self.total - len(self.failures)

    def __iter__(self):
        return iter(self.failures)

    def __len__(self) -> int:
        return len(self.failures)

    def __repr__(self) -> str:
        return f"BatchResult(failed={len(self.failures)}, total={self.total})"


class _Cancelled(Exception):
    """Raised inside a worker when the batch is cancelled mid-item."""


class BatchDispatcher:
    """Run ActionItems against one ActionClient with bounded concurrency."""

    def __init__(
        self,
        client: ActionClient,
        concurrency: int = 4,
        retry: Optional[RetryPolicy] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.concurrency = concurrency
        self.retry = retry or RetryPolicy()
        self.chunk_size = chunk_size
        self.logger = logger or logging.getLogger(__name__)
        self._cancel: Optional[CancelToken] = None

    def cancel(self):
        """Stop the batch that is currently running, if any."""
        if self._cancel is not None:
            self._cancel.cancel()

    def run(
        self,
        items: Sequence[ActionItem],
        reason: Optional[str] = None,
        concurrency: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> BatchResult:
        """
        Execute every item and report the ones that failed for good.

        Args:
            items: Action items, claimed in this order
            reason: Default reason/summary for items that carry none
            concurrency: Worker count for this run (default: the dispatcher's)
            cancel: Token the caller can use to stop the batch

        Returns:
            BatchResult with failed items in input order; successes are absent

        Raises:
            CallConstructionError: if an item cannot be turned into a request
        """
        items = list(items)
        workers = max(1, min(concurrency or self.concurrency, len(items) or 1))
        token = cancel or CancelToken()
        self._cancel = token

        failures: list[FailedItem] = []
        failures_lock = threading.Lock()
        claim_lock = threading.Lock()
        cursor = [0]

        def record(failure: FailedItem):
            with failures_lock:
                failures.append(failure)

        def claim() -> Optional[int]:
            with claim_lock:
                if token.cancelled or cursor[0] >= len(items):
                    return None
                index = cursor[0]
                cursor[0] += 1
                return index

        def worker():
            while True:
                index = claim()
                if index is None:
                    return
                try:
                    failure = self._process(index, items[index], reason, token)
                except CallConstructionError:
                    token.cancel()
                    raise
                if failure is not None:
                    record(failure)

        self.logger.info(f"Running {len(items)} item(s) with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="wikibatch") as pool:
            futures = [pool.submit(worker) for _ in range(workers)]
            try:
                wait(futures)
            except KeyboardInterrupt:
                self.logger.warning("Interrupted; letting in-flight calls finish")
                token.cancel()
                wait(futures)

        self._cancel = None

        # A malformed call stops the other workers and aborts the batch
        for future in futures:
            future.result()

        for index in range(cursor[0], len(items)):
            record(FailedItem(index, items[index], FailureKind.CANCELLED, "cancelled before start"))

        result = BatchResult(failures, total=len(items))
        self.logger.info(
            f"Batch complete: {result.succeeded} succeeded, "
            f"{len(result) - len(result.cancelled)} failed, {len(result.cancelled)} cancelled"
        )
        return result

    def _process(
        self, index: int, item: ActionItem, reason: Optional[str], token: CancelToken
    ) -> Optional[FailedItem]:
        label = describe(item)
        try:
            if isinstance(item, Upload):
                outcome = self._run_upload(item, reason, token)
            else:
                call = self._call_for(item, reason)
                outcome = self._with_retries(lambda: self.client.execute(call), label, token)
        except _Cancelled:
            self.logger.warning(f"[{index + 1}] Cancelled: {label}")
            return FailedItem(index, item, FailureKind.CANCELLED, "cancelled")

        if outcome.ok:
            self.logger.info(f"[{index + 1}] Done: {label}")
            return None

        kind = FailureKind.EXHAUSTED if outcome.is_retryable else FailureKind.FATAL
        self.logger.error(f"[{index + 1}] FAILED ({kind.value}): {label}: {outcome.cause}")
        return FailedItem(index, item, kind, outcome.cause)

    def _call_for(self, item: ActionItem, reason: Optional[str]) -> ApiCall:
        resolve = self.client.resolver.resolve
        default = reason or ""

        if isinstance(item, Delete):
            return delete_call(resolve(item.title).text, item.reason if item.reason is not None else default)
        if isinstance(item, Edit):
            summary = item.summary if item.summary is not None else default
            return edit_call(resolve(item.title).text, item.content, summary, item.mode)
        if isinstance(item, Purge):
            if not item.titles:
                raise CallConstructionError("purge item has no titles")
            return purge_call(resolve(t).text for t in item.titles)
        if isinstance(item, Move):
            return move_call(
                resolve(item.title).text,
                resolve(item.target).text,
                item.reason if item.reason is not None else default,
                move_talk=item.move_talk,
                leave_redirect=item.leave_redirect,
            )
        raise CallConstructionError(f"Unknown action item: {item!r}")

    def _with_retries(
        self, attempt_call: Callable[[], ActionOutcome], label: str, token: CancelToken
    ) -> ActionOutcome:
        """Make one call, retrying retryable outcomes within the budget."""
        outcome = attempt_call()
        attempt = 1
        while outcome.is_retryable and attempt < self.retry.max_attempts:
            delay = max(self.retry.delay(attempt), outcome.retry_after or 0)
            self.logger.warning(
                f"Attempt {attempt}/{self.retry.max_attempts} failed for {label}: "
                f"{outcome.cause}; retrying in {delay:g}s"
            )
            if token.wait(delay):
                raise _Cancelled()
            outcome = attempt_call()
            attempt += 1
        return outcome

    def _run_upload(self, item: Upload, reason: Optional[str], token: CancelToken) -> ActionOutcome:
        protocol = ChunkedUploadProtocol(
            self.client,
            item,
            chunk_size=self.chunk_size,
            default_summary=reason,
            logger=self.logger,
        )
        label = describe(item)
        outcome = ActionOutcome.success()

        try:
            while not protocol.done:
                if token.cancelled:
                    raise _Cancelled()
                outcome = self._with_retries(protocol.step, label, token)
                if not outcome.ok:
                    protocol.abandon(outcome.cause)
        except _Cancelled:
            protocol.abandon("cancelled")
            raise
        except BaseException as e:
            protocol.abandon(f"batch aborted: {e!r}")
            raise

        return outcome
