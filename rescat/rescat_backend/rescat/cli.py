from __future__ import annotations
import argparse
import json
import sys

from .config import MAX_ITEMS_DEFAULT, get_settings
from .utils.logging import get_logger
from .zotero.changes import ChangeDetector
from .zotero.client import ZoteroClient, ZoteroError
from .zotero.transform import deduplicate_resources, prepare_for_card, prepare_for_detail, transform_items
from .zotero.versions import open_version_store


def build_parser() -> argparse.ArgumentParser:
    """
    Builds and returns an argument parser for the command-line interface.

    Returns:
        argparse.ArgumentParser: Parser with the `poll`, `resources` and `versions` subcommands.
    """
    p = argparse.ArgumentParser(
        prog="rescat",
        description="Resource Catalog: Zotero collections as classified, display-ready resources"
    )
    sub = p.add_subparsers(dest="command", required=True)

    poll = sub.add_parser("poll", help="Check collections for changes and record new versions")
    poll.add_argument("--keys", help="Comma-separated collection keys (default: RESCAT_COLLECTION_KEYS)")

    res = sub.add_parser("resources", help="Fetch and transform the items of one or more collections")
    res.add_argument("--collection", "-c", required=True, help="Comma-separated collection keys")
    res.add_argument("--limit", "-n", type=int, default=MAX_ITEMS_DEFAULT,
                     help=f"Maximum items per collection (default: {MAX_ITEMS_DEFAULT})")
    res.add_argument("--format", choices=["card", "detail"], default="card", help="Output view (default: card)")

    sub.add_parser("versions", help="Print the stored version of every collection")
    return p


def main(argv: list[str] | None = None) -> int:
    """
    Parses arguments, runs the chosen subcommand and prints JSON to stdout.
    Returns the process exit code.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logger = get_logger(settings.log_dir)
    store = open_version_store(settings.version_store, logger=logger)

    if args.command == "versions":
        print(json.dumps(store.all(), indent=2))
        return 0

    try:
        client = ZoteroClient(settings=settings, logger=logger)
        if args.command == "poll":
            keys = [k.strip() for k in (args.keys or "").split(",") if k.strip()] or settings.collection_keys
            changed = ChangeDetector(client, store, logger=logger).poll_for_changes(keys)
            print(json.dumps({"checked": len(keys), "changed": len(changed), "collections": changed}, indent=2))
            return 0

        keys = [k.strip() for k in args.collection.split(",") if k.strip()]
        try:
            names = client.collection_names(keys)
        except ZoteroError as e:
            logger.warn("collection_names_failed", error=str(e))
            names = {}
        resources = []
        for key in keys:
            raw = client.fetch_items_from_collection(key, limit=args.limit)
            resources.extend(transform_items(raw, collection_name=names.get(key, ""), collection_key=key))
        view = prepare_for_card if args.format == "card" else prepare_for_detail
        print(json.dumps([view(r) for r in deduplicate_resources(resources)], ensure_ascii=False, indent=2))
        return 0
    except ZoteroError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
