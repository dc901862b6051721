"""RelayChat CLI — run the relay, mint dev tokens, check who is online.

Usage:
    relaychat serve --port 5001                  # Run the relay under uvicorn
    relaychat token alice                        # Print an identity token for alice
    relaychat online                             # Who is connected right now
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5001"


def _api_url() -> str:
    return os.environ.get("RELAYCHAT_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(api_url: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the relay."""
    return httpx.AsyncClient(base_url=(api_url or _api_url()).rstrip("/"), timeout=10.0)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
def cli():
    """RelayChat — private chat relay."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: RELAYCHAT_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: RELAYCHAT_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the relay server."""
    import uvicorn

    from relaychat.config import settings

    uvicorn.run(
        "relaychat.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command()
@click.argument("identity")
@click.option("--expires-minutes", default=None, type=int, help="Token lifetime")
def token(identity: str, expires_minutes: Optional[int]):
    """Print a signed identity token for IDENTITY."""
    from relaychat.auth.tokens import TokenError, create_identity_token

    try:
        click.echo(create_identity_token(identity, expires_minutes=expires_minutes))
    except TokenError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.option("--api-url", default=None, help="Relay base URL (default: RELAYCHAT_API_URL)")
def online(api_url: Optional[str]):
    """List identities that are connected right now."""

    async def _fetch() -> list[str]:
        async with _client(api_url) as c:
            r = await c.get("/api/v1/presence")
            r.raise_for_status()
            return r.json()["users"]

    try:
        users = asyncio.run(_fetch())
    except httpx.HTTPError as e:
        click.secho(f"Error: could not reach relay: {e}", fg="red", err=True)
        sys.exit(1)

    if not users:
        click.echo("Nobody is online.")
        return
    click.secho(f"{len(users)} online", bold=True)
    for user in users:
        click.echo(f"  {user}")


def main():
    cli()


if __name__ == "__main__":
    main()
