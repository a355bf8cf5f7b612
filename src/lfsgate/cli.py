"""lfsgate command-line interface.

Usage:
    python -m lfsgate serve [--host HOST] [--port PORT]
    python -m lfsgate checksum --repo PATH [--filter NAME] OBJECT_ID
    python -m lfsgate hash-password PASSWORD

Exit codes:
    0: Success
    1: Internal error
    2: Bad input (unknown filter, missing object)
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from lfsgate.api.users import hash_password


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic key order."""
    print(json.dumps(data, sort_keys=True, indent=2))


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from lfsgate.api.main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


def cmd_checksum(args: argparse.Namespace) -> int:
    from dulwich.repo import Repo

    from lfsgate.filters import (
        BlobRef,
        FilterNotRegisteredError,
        SqliteFilterCache,
        create_filter_registry,
    )
    from lfsgate.filters.dulwich_source import DulwichBlobSource

    cache = SqliteFilterCache(args.cache_db)
    registry = create_filter_registry(cache)
    try:
        content_filter = registry.get(args.filter)
    except FilterNotRegisteredError as e:
        _output_json({"error": str(e), "filters": registry.names()})
        return 2

    with Repo(args.repo) as repo:
        blob = BlobRef(DulwichBlobSource(repo.object_store), args.object_id)
        try:
            md5 = content_filter.get_md5(blob)
            size = content_filter.get_size(blob)
        except (KeyError, ValueError) as e:
            _output_json({"error": f"Cannot read blob {args.object_id}: {e}"})
            return 2
        finally:
            cache.close()

    _output_json(
        {"filter": content_filter.name, "object_id": args.object_id, "md5": md5, "size": size}
    )
    return 0


def cmd_hash_password(args: argparse.Namespace) -> int:
    _output_json({"password_sha256": hash_password(args.password)})
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lfsgate", description="Large-object access gateway")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP gateway")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)

    checksum_parser = subparsers.add_parser(
        "checksum", help="Print memoized MD5 and size of a repository blob"
    )
    checksum_parser.add_argument("--repo", required=True, metavar="PATH")
    checksum_parser.add_argument("--filter", default="raw", metavar="NAME")
    checksum_parser.add_argument(
        "--cache-db",
        default=None,
        metavar="FILE",
        help="Filter cache database (default: LFSGATE_FILTER_CACHE_DB_PATH)",
    )
    checksum_parser.add_argument("object_id")

    hash_parser = subparsers.add_parser(
        "hash-password", help="Print the registry digest for a password"
    )
    hash_parser.add_argument("password")

    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command == "serve":
            return cmd_serve(args)
        if args.command == "checksum":
            return cmd_checksum(args)
        if args.command == "hash-password":
            return cmd_hash_password(args)

        parser.print_help()
        return 0

    except Exception as e:
        _output_json({"error": "INTERNAL_ERROR", "message": str(e)})
        return 1


if __name__ == "__main__":
    sys.exit(main())
