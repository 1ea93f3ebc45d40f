"""
Command-line entry point.

Fetches one or more paths through a single authenticated session and
prints each status line and body. Host and credentials come from the
environment (or a ``.env`` file).
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import dotenv

from sso_gate.config import SessionConfig, validate_session_config
from sso_gate.session import IntranetSession
from sso_gate.utils import logger
from sso_gate.utils.errors import SessionError, get_error_message

log = logger.create_logger("CLI")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sso-gate",
        description="Fetch paths from a host behind an SSO gateway.",
    )
    parser.add_argument("paths", nargs="*", help="Paths to fetch, e.g. /portal/index.html")
    parser.add_argument("--logout", action="store_true", help="Log out after fetching")
    parser.add_argument("--max-pending", type=int, default=None, help="Bound on queued requests")
    return parser.parse_args(argv)


async def _run(config: SessionConfig, paths: list[str], logout: bool) -> int:
    """Fetch *paths* in order, then optionally log out."""
    async with IntranetSession.from_config(config) as session:
        try:
            for path in paths:
                result = await session.get(path)
                print(f"{result.status_code} {result.path}")
                print(result.body)
            if logout:
                result = await session.logout()
                print(f"{result.status_code} {result.path}")
        except SessionError as exc:
            print(f"Error: {get_error_message(exc)}", file=sys.stderr)
            return 1
    return 0


def run(argv: list[str] | None = None) -> int:
    """Entry point for the ``sso-gate`` console script."""
    dotenv.load_dotenv()
    args = _parse_args(argv)

    config = SessionConfig()
    if args.max_pending is not None:
        config = config.model_copy(update={"max_pending": args.max_pending})

    error = validate_session_config(config)
    if error:
        print(error, file=sys.stderr)
        return 2
    if not args.paths and not args.logout:
        print("Nothing to do: give at least one path or --logout", file=sys.stderr)
        return 2

    log.info("Starting session", {"host": config.host, "paths": args.paths})
    return asyncio.run(_run(config, args.paths, args.logout))


if __name__ == "__main__":
    sys.exit(run())
