"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from idtree.config import load_config, AppConfig
from idtree.errors import StoreError
from idtree.storage.cache import Cache
from idtree.storage.codec import get_codec
from idtree.util.json import json_dumps_safe
from idtree.util.logging import configure_logging


logger = logging.getLogger(__name__)


def _build_config(base: AppConfig, args: argparse.Namespace) -> AppConfig:
    return AppConfig(
        store_root=args.store or base.store_root,
        range=args.range if args.range is not None else base.range,
        log_level=args.log_level or base.log_level,
        log_file=args.log_file or base.log_file,
        codec=args.codec or base.codec,
        stream_level=args.stream_level or base.stream_level,
    )


def _open_store(config: AppConfig, create: bool = False) -> Cache:
    path = Path(config.store_root)
    codec = get_codec(config.codec)
    empty = not path.is_dir() or not any(path.iterdir())
    if empty and create:
        return Cache.create(path.parent, path.name, config.range, codec=codec)
    if empty and path.is_dir():
        return Cache.load(path, codec=codec, range_=config.range)
    return Cache.load(path, codec=codec)


def _print_payload(payload, output: str | None) -> None:
    if output:
        data = payload if isinstance(payload, bytes) else str(payload).encode("utf-8")
        Path(output).write_bytes(data)
    elif isinstance(payload, str):
        print(payload)
    elif isinstance(payload, bytes):
        print(payload.decode("utf-8", errors="replace"))
    else:
        print(json_dumps_safe(payload, indent=2, default=repr))


def _run_demo(config: AppConfig, count: int, position: int) -> None:
    path = Path(config.store_root)
    cache = Cache.create(path.parent, path.name, config.range, codec=get_codec(config.codec))
    try:
        lookup = {}
        for value in range(count):
            cache.add(value)
            lookup[value] = value
        print(cache.describe())
        lookup[position] = cache.get(position)
        print(f"The object stored at position {position} has value {lookup[position]!r}")
    finally:
        cache.delete()


def main(argv: list[str] | None = None) -> int:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", help="Store directory override")
    common.add_argument("--range", type=int, help="Entries per directory for new stores")
    common.add_argument("--codec", help="Payload codec: pickle or json")
    common.add_argument("--log-level", help="Log level override")
    common.add_argument("--log-file", help="Log file override")
    common.add_argument("--stream-level", help="Lowest level echoed to stderr")

    parser = argparse.ArgumentParser(prog="idtree")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("create", parents=[common], help="Create an empty store")

    add_parser = subparsers.add_parser("add", parents=[common], help="Store one payload")
    source = add_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Store this string")
    source.add_argument("--file", help="Store the bytes of this file")

    get_parser = subparsers.add_parser("get", parents=[common], help="Print a stored payload")
    get_parser.add_argument("id", type=int, help="Id returned by add")
    get_parser.add_argument("--output", help="Write the payload to this file instead")

    add_dir_parser = subparsers.add_parser("add-dir", parents=[common], help="Reserve empty id slots")
    add_dir_parser.add_argument("--count", type=int, default=1, help="Number of slots to reserve")

    subparsers.add_parser("describe", parents=[common], help="Show store counters")

    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete the store")
    delete_parser.add_argument("--verbose", action="store_true", help="Log every deleted path")

    demo_parser = subparsers.add_parser("demo", parents=[common], help="Fill, read back and delete a store")
    demo_parser.add_argument("--count", type=int, default=1001, help="Number of objects to store")
    demo_parser.add_argument("--position", type=int, default=1000, help="Id to read back")

    args = parser.parse_args(argv)
    config = _build_config(load_config(), args)
    configure_logging(config.log_level, config.log_file, stream_level=config.stream_level)

    try:
        if args.command == "create":
            path = Path(config.store_root)
            cache = Cache.create(path.parent, path.name, config.range, codec=get_codec(config.codec))
            print(cache.describe())
        elif args.command == "add":
            cache = _open_store(config, create=True)
            payload = args.text if args.text is not None else Path(args.file).read_bytes()
            print(cache.add(payload))
        elif args.command == "get":
            cache = _open_store(config)
            _print_payload(cache.get(args.id), args.output)
        elif args.command == "add-dir":
            cache = _open_store(config, create=True)
            leaf = None
            for _ in range(args.count):
                leaf = cache.add_dir()
            print(leaf if leaf is not None else cache.describe())
        elif args.command == "describe":
            print(_open_store(config).describe())
        elif args.command == "delete":
            _open_store(config).delete(log=args.verbose)
        elif args.command == "demo":
            _run_demo(config, args.count, args.position)
    except (StoreError, OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
