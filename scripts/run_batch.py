#!/usr/bin/env python3
"""
Run a maintenance batch over a list of titles.

Reads titles (one per line) from a file, builds action items and runs them
through the batch dispatcher. Titles that fail are written next to the input
as <file>.failed so they can be retried later or handed to a human.

Credentials come from WIKIBATCH_USERNAME / WIKIBATCH_PASSWORD; everything
else from config.json (see wikibatch/config.py).

Usage:
    python scripts/run_batch.py delete titles.txt -r "Orphaned talk page"
    python scripts/run_batch.py purge titles.txt
    python scripts/run_batch.py nulledit titles.txt -c 2
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for the package
SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

from wikibatch.cleanup import delete_items, null_edit_items, purge_items
from wikibatch.config import build_dispatcher, load_config
from wikibatch.errors import WikiBatchError
from wikibatch.logging_config import setup_logging

BUILDERS = {
    "delete": delete_items,
    "purge": purge_items,
    "nulledit": null_edit_items,
}


def read_titles(path: Path) -> list[str]:
    """Load titles, skipping blank lines and # comments."""
    with open(path, "r", encoding="utf-8") as f:
        lines = [line.strip() for line in f]
    return [line for line in lines if line and not line.startswith("#")]


def failed_titles(result) -> list[str]:
    titles = []
    for item in result.items:
        titles.extend(getattr(item, "titles", None) or [item.title])
    return titles


def main():
    parser = argparse.ArgumentParser(description="Run a write batch against a wiki")
    parser.add_argument("mode", choices=sorted(BUILDERS), help="What to do with each title")
    parser.add_argument("titles", type=Path, help="File with one title per line")
    parser.add_argument("-r", "--reason", default=None, help="Deletion reason / edit summary")
    parser.add_argument("-c", "--concurrency", type=int, default=None, help="Worker count")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    args = parser.parse_args()

    if args.mode == "delete" and not args.reason:
        parser.error("delete needs a --reason")

    try:
        config = load_config(args.config)
    except WikiBatchError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    logger = setup_logging(name=f"batch-{args.mode}", wiki_id=config.wiki_id)

    titles = read_titles(args.titles)
    logger.info(f"{config.wiki_name} batch: {args.mode} on {len(titles)} title(s)")

    try:
        dispatcher = build_dispatcher(config, logger=logger)
    except WikiBatchError as e:
        logger.error(f"Setup failed: {e}")
        sys.exit(1)

    result = dispatcher.run(BUILDERS[args.mode](titles), reason=args.reason, concurrency=args.concurrency)

    if result.failures:
        failed_path = args.titles.with_name(args.titles.name + ".failed")
        failed_path.write_text("\n".join(failed_titles(result)) + "\n", encoding="utf-8")
        logger.warning(f"{len(result)} item(s) failed; titles written to {failed_path}")
        sys.exit(2)

    logger.info("All items succeeded")


if __name__ == "__main__":
    main()
