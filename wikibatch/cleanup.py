#!/usr/bin/env python3
"""
Helpers for maintenance scripts: turn title lists into action items.

The titles themselves come from elsewhere (category listings, database
reports, a text file); these functions only shape the work.
"""

from typing import Iterable, Optional

from wikibatch.actions import Delete, Edit, EditMode, Purge
from wikibatch.dispatcher import BatchDispatcher

# The API accepts at most this many titles per purge for normal accounts
PURGE_BATCH_SIZE = 50


def delete_items(titles: Iterable[str], reason: Optional[str] = None) -> list[Delete]:
    return [Delete(title, reason) for title in titles]


def purge_items(titles: Iterable[str], batch_size: int = PURGE_BATCH_SIZE) -> list[Purge]:
    """Group titles into Purge items of at most `batch_size` titles each."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    titles = list(titles)
    return [Purge(titles[i:i + batch_size]) for i in range(0, len(titles), batch_size)]


def null_edit_items(titles: Iterable[str]) -> list[Edit]:
    """Edits that append nothing, forcing a re-parse without a new revision."""
    return [Edit(title, "", summary="", mode=EditMode.APPEND) for title in titles]


def add_text_items(
    titles: Iterable[str], text: str, summary: str, append: bool = True
) -> list[Edit]:
    mode = EditMode.APPEND if append else EditMode.PREPEND
    return [Edit(title, text, summary, mode) for title in titles]


def nuke(
    dispatcher: BatchDispatcher,
    titles: Iterable[str],
    reason: str,
    concurrency: Optional[int] = None,
) -> list[str]:
    """
    Delete every title and report the ones that could not be deleted.

    Returns:
        Titles that failed, in input order
    """
    result = dispatcher.run(delete_items(titles), reason=reason, concurrency=concurrency)
    return [item.title for item in result.items]
