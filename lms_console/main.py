"""
Command line entry point for the training-program console client
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from .application_context import ApplicationContext
from .config import load_settings
from .errors.handling import log_error
from .errors.internal import ApiError, InternalError, SessionTerminatedError
from .logging_config import LoggerConfigurator

PASSWORD_ENV = "LMS_CONSOLE_PASSWORD"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lms-console", description="Training-program console API client"
    )
    parser.add_argument("--config", default=None, help="JSON settings file")
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Validate settings and credential storage, then exit",
    )
    sub = parser.add_subparsers(dest="command")
    login = sub.add_parser("login", help="Log in and store the session")
    login.add_argument("email")
    login.add_argument(
        "--password", default=None, help=f"Password (default: ${PASSWORD_ENV} or prompt)"
    )
    sub.add_parser("logout", help="Log out and clear the stored session")
    sub.add_parser("whoami", help="Show the current user")
    get = sub.add_parser("get", help="GET an API path with the stored session")
    get.add_argument("path")
    return parser


def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _password(args: argparse.Namespace) -> str:
    return args.password or os.environ.get(PASSWORD_ENV) or getpass.getpass("Password: ")


async def execute(ctx: ApplicationContext, args: argparse.Namespace) -> int:
    """Run one subcommand against a wired context.

    Returns:
        Process exit code.
    """
    if ctx.auth is None or ctx.dispatcher is None:
        raise RuntimeError("Application context is not initialized")
    if args.command == "login":
        envelope = await ctx.auth.login(args.email, _password(args))
        _emit(envelope.model_dump(exclude={"data"}) | {"user": await ctx.auth.get_stored_user()})
        return 0 if envelope.success else 1
    if args.command == "logout":
        _emit((await ctx.auth.logout()).model_dump())
        return 0
    if args.command == "whoami":
        user = await ctx.auth.me()
        _emit(user.to_record() if user else None)
        return 0 if user else 1
    if args.command == "get":
        resp = await ctx.dispatcher.get(args.path)
        _emit(resp.data)
        return 0
    return 2


def health_check(config_file: str | None) -> int:
    logging.info("🏥 Health check mode")
    try:
        settings = load_settings(config_file)
    except InternalError as e:
        logging.error(f"❌ Health check failed: {str(e)}")
        return 1
    parent = settings.credentials_file.parent
    if parent.exists() and not os.access(parent, os.W_OK):
        logging.error(f"❌ Health check failed: {parent} is not writable")
        return 1
    logging.info(f"✅ Health check passed base_url={settings.base_url}")
    return 0


async def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the requested command and shut down cleanly."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.health_check:
        return health_check(args.config)
    if not args.command:
        parser.print_help()
        return 2
    settings = load_settings(args.config)
    async with await ApplicationContext.create(settings) as ctx:
        try:
            return await execute(ctx, args)
        except SessionTerminatedError:
            print("Your session has expired. Please log in again.", file=sys.stderr)
            return 1
        except ApiError as e:
            log_error(f"{args.command} failed", e)
            _emit({"status": e.status, "error": e.server_message or str(e)})
            return 1


def run() -> None:
    """Synchronous entry point for the application."""
    LoggerConfigurator().configure()
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except InternalError as e:
        log_error("Top-level error", e)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    run()
