#!/usr/bin/env python3
"""
Action items: one unit of mutating work each.

The set is closed. BatchDispatcher handles every kind in one place and
rejects anything else, so adding a kind means touching the dispatcher too.

Usage:
    from wikibatch.actions import Delete, Edit, EditMode

    items = [
        Delete("File:Old logo.png", "Orphaned non-free file"),
        Edit("Project:Sandbox", "Hello", "test", mode=EditMode.APPEND),
    ]
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class EditMode(Enum):
    REPLACE = "replace"
    PREPEND = "prepend"
    APPEND = "append"


@dataclass(frozen=True)
class Delete:
    title: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class Edit:
    title: str
    content: str
    summary: Optional[str] = None
    mode: EditMode = EditMode.REPLACE


@dataclass(frozen=True)
class Upload:
    """Chunked upload of a local file to `title` (File: prefix optional)."""

    path: Path
    title: str
    description: str = ""
    summary: Optional[str] = None


@dataclass(frozen=True)
class Purge:
    titles: tuple[str, ...]

    def __post_init__(self):
        # Lists (or a lone title) are accepted but stored as a tuple
        titles = (self.titles,) if isinstance(self.titles, str) else tuple(self.titles)
        object.__setattr__(self, "titles", titles)


@dataclass(frozen=True)
class Move:
    title: str
    target: str
    reason: Optional[str] = None
    move_talk: bool = True
    leave_redirect: bool = True


ActionItem = Union[Delete, Edit, Upload, Purge, Move]

ACTION_KINDS = (Delete, Edit, Upload, Purge, Move)


def describe(item: ActionItem) -> str:
    """Short human-readable label for log lines."""
    if isinstance(item, Purge):
        return f"purge {len(item.titles)} page(s)"
    if isinstance(item, Move):
        return f"move {item.title} -> {item.target}"
    if isinstance(item, Upload):
        return f"upload {item.title}"
    if isinstance(item, (Delete, Edit)):
        return f"{type(item).__name__.lower()} {item.title}"
    return repr(item)
