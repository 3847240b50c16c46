"""CLI entry point for the Filmorate server and utilities."""

from __future__ import annotations

import argparse
import asyncio

import uvicorn

from filmorate.config import get_settings
from filmorate.logging import get_logger, setup_logging


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server."""
    settings = get_settings()
    uvicorn.run(
        "filmorate.app:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.value.lower(),
    )


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create the data directory and every table that is missing."""
    from filmorate.stores.database import create_schema, dispose_engine

    settings = get_settings()
    setup_logging(settings.log_level.value, json_output=settings.json_logs)

    async def _run() -> None:
        await create_schema()
        await dispose_engine()

    asyncio.run(_run())
    get_logger("cli").info("database_initialised", url=settings.database_url)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filmorate",
        description="Filmorate – social film-rating service",
    )
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--reload", action="store_true", default=False)
    p_serve.set_defaults(func=cmd_serve)

    p_init = sub.add_parser("init-db", help="Create database tables")
    p_init.set_defaults(func=cmd_init_db)

    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if hasattr(args, "func"):
        args.func(args)
    else:
        cmd_serve(argparse.Namespace(host=None, port=None, reload=False))


if __name__ == "__main__":
    main()
