"""drupal-auth command line.

The handshake state lives in the file credential store, so ``login`` and
``callback`` can run as separate invocations on either side of the browser
redirect.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from collections.abc import Sequence

from rich.console import Console

from drupalauth.auth import AuthClient, AuthError, ConfigurationError
from drupalauth.config import Settings, get_settings
from drupalauth.logging_setup import setup_logging

logger = logging.getLogger(__name__)
console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drupal-auth",
        description="Log in to a Drupal backend (session + OAuth2 authorization code).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  drupal-auth login alice                Session login, prints the authorize URL
  drupal-auth callback '<redirect url>'  Finish login with the callback URL
  drupal-auth status                     Show the authentication phase
  drupal-auth whoami                     Show the current user
  drupal-auth logout                     Log out and clear stored credentials
""",
    )
    parser.add_argument("--log-level", default=None, help="Override DRUPAL_AUTH_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Start a login")
    login.add_argument("username", nargs="?", help="Drupal username (not used in oauth mode)")
    login.add_argument("--password", help="Password (prompted when omitted)")
    login.add_argument("--redirect-uri", help="Override the configured redirect URI")
    login.add_argument("--scope", help="Override the configured scope")

    callback = sub.add_parser("callback", help="Complete login from the callback URL")
    callback.add_argument("url", help="Full callback URL including ?code=...&state=...")

    sub.add_parser("status", help="Show authentication status")
    sub.add_parser("whoami", help="Fetch the current user")
    sub.add_parser("refresh", help="Refresh the access token")
    sub.add_parser("logout", help="Log out and clear stored credentials")
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    async with AuthClient.from_settings(settings) as client:
        if args.command == "login":
            password = args.password
            if client.mode.uses_session and password is None:
                password = getpass.getpass("Password: ")
            url = await client.initiate_login(
                args.username,
                password,
                redirect_uri=args.redirect_uri,
                scope=args.scope,
            )
            if url is None:
                console.print("[green]Session established.[/green]")
            else:
                console.print("Open this URL in a browser that shares the login session:")
                console.print(url, soft_wrap=True, highlight=False)
            return 0

        if args.command == "callback":
            credential = await client.handle_callback_url(args.url)
            console.print(
                f"[green]Authenticated.[/green] Token valid for "
                f"{client.tokens.seconds_left(credential)}s"
            )
            return 0

        if args.command == "status":
            _print_status(client)
            return 0

        if args.command == "whoami":
            user = await client.get_user_info()
            console.print_json(json.dumps(user))
            return 0

        if args.command == "refresh":
            await client.refresh()
            console.print("[green]Access token refreshed.[/green]")
            return 0

        if args.command == "logout":
            await client.logout()
            console.print("Logged out.")
            return 0

    return 2


def _print_status(client: AuthClient) -> None:
    console.print(f"Mode:          {client.mode.value}")
    console.print(f"Phase:         {client.phase.value}")
    console.print(f"Authenticated: {client.is_authenticated()}")
    credential = client.oauth.load_credential()
    if credential is not None:
        remaining = client.tokens.seconds_left(credential)
        console.print(f"Token expires: in {remaining}s")
    if client.is_login_initiated():
        console.print("Login initiated, waiting for callback")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    try:
        return asyncio.run(_run(args, settings))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 2
    except AuthError as e:
        console.print(f"[red]{e.classification}:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
