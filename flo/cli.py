"""Flo CLI: log in, inspect session state and list cached domain resources."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from flo import __version__
from flo.core.client import FloClient
from flo.core.config import AppConfig
from flo.core.credentials import SqliteKeyValueStore
from flo.core.errors import ApiError, UnknownResourceError

logger = logging.getLogger("flo.cli")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="flo",
        description="Flo business-suite API client",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--quiet", action="store_true", help="Only show WARNING and above")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    login_parser = subparsers.add_parser("login", help="Log in and store the session credential")
    login_parser.add_argument("--email", required=True, help="Account email")
    login_parser.add_argument("--password", required=True, help="Account password")

    subparsers.add_parser("logout", help="End the session and forget the stored credential")
    subparsers.add_parser("whoami", help="Show the logged-in user's profile")

    list_parser = subparsers.add_parser("list", help="List one resource kind of a domain")
    list_parser.add_argument("domain", help="Domain (assets, crm, finance, hr, vendor, projects)")
    list_parser.add_argument("kind", help="Resource kind within the domain (e.g. activities)")
    list_parser.add_argument("--refresh", action="store_true", help="Bypass the cache")
    list_parser.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    status_parser = subparsers.add_parser("status", help="Show session and cache status")
    status_parser.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    log_level = "INFO"
    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "WARNING"
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "login":
        _run(lambda client: _login(client, args.email, args.password))

    elif args.command == "logout":
        _run(_logout)

    elif args.command == "whoami":
        _run(_whoami)

    elif args.command == "list":
        _run(lambda client: _list(client, args.domain, args.kind, args.refresh, args.json_output))

    elif args.command == "status":
        _run(lambda client: _status(client, args.json_output))

    else:
        print(f"Unknown command: {args.command}")
        sys.exit(1)


async def _session_ended():
    print("Session expired. Run `flo login` to sign in again.", file=sys.stderr)


def _run(command: Callable[[FloClient], Awaitable[Any]], config: AppConfig | None = None):
    """Run one command against a client backed by the on-disk credential store."""
    config = config or AppConfig.from_env()

    async def run():
        storage = SqliteKeyValueStore(str(config.storage.db_path))
        await storage.initialize()
        try:
            client = FloClient(config, storage, on_session_ended=_session_ended)
            client.register_default_domains()
            async with client:
                await command(client)
        finally:
            await storage.close()

    try:
        asyncio.run(run())
    except ApiError as e:
        logger.debug("Command failed: %r", e)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except UnknownResourceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


async def _login(client: FloClient, email: str, password: str):
    payload = await client.login(email, password)
    user = payload.get("user") or {}
    print(f"Logged in as {user.get('email', email)}")


async def _logout(client: FloClient):
    if not client.is_authenticated:
        print("Not logged in")
        return
    await client.logout()
    print("Logged out")


async def _whoami(client: FloClient):
    if not client.is_authenticated:
        print("Not logged in")
        return
    profile = await client.auth.get_me()
    print(json.dumps(profile, indent=2))


async def _list(client: FloClient, domain: str, kind: str, refresh: bool = False, json_output: bool = False):
    collection = client.domain(domain).collection(kind)
    items = await collection.all(force_refresh=refresh)

    if json_output:
        print(json.dumps(items, indent=2))
        return

    print(f"{domain}/{kind}: {len(items)} item(s)")
    for item in items:
        label = item.get("name") or item.get("title") or _person(item) or item.get("subject") or ""
        status = item.get("status")
        suffix = f"  [{status}]" if status else ""
        print(f"  {str(item.get('id', '?')):<38} {label}{suffix}")


def _person(item: dict[str, Any]) -> str:
    return f"{item.get('first_name') or ''} {item.get('last_name') or ''}".strip()


async def _status(client: FloClient, json_output: bool = False):
    result = {"version": __version__, **client.status()}

    if json_output:
        print(json.dumps(result, indent=2))
        return

    print("Flo Status")
    print("=" * 40)
    print(f"  Version:          {result['version']}")
    print(f"  API:              {result['base_url']}")
    session = "authenticated" if result["authenticated"] else "logged out"
    if result["credential_source"]:
        session += f" ({result['credential_source']})"
    print(f"  Session:          {session}")
    print(f"  Refresh:          {'enabled' if result['refresh_enabled'] else 'disabled'}")
    print(f"  Domains:          {', '.join(result['domains']) or 'none'}")


if __name__ == "__main__":
    main()
