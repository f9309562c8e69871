"""oportal CLI — admin tasks that have no HTTP endpoint.

Usage:
    oportal init-db                          # Create all tables
    oportal grant-role alice@example.com editor
    oportal serve --port 8000 --reload       # Run the API with uvicorn

Roles are never accepted at registration; grant-role is the only way
an account becomes an editor or admin.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oportal import __version__
from oportal.db.models import ROLES

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when an event loop is already running
    (e.g. Click's CliRunner inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _session_factory() -> async_sessionmaker[AsyncSession]:
    from oportal.db.engine import async_session_factory

    return async_session_factory


async def grant_role(
    session_factory: async_sessionmaker[AsyncSession], email: str, role: str
) -> Optional[str]:
    """Set `role` on the account with `email`. Returns the previous role, or None if no such account."""
    from oportal.db.stores import UserStore
    from oportal.services.auth_service import normalize_email

    async with session_factory() as session:
        users = UserStore(session)
        user = await users.find_by_email(normalize_email(email), include_inactive=True)
        if not user:
            return None
        previous = user.role
        user.role = role
        await users.save(user)
        return previous


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="oportal")
def main():
    """oportal — users, sessions and personalized content behind one API."""


# ---------------------------------------------------------------------------
# oportal init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create every table that does not exist yet."""
    from oportal.db.engine import engine, init_models

    async def _impl():
        await init_models()
        await engine.dispose()

    _run(_impl())
    click.secho("Tables created.", fg="green")


# ---------------------------------------------------------------------------
# oportal grant-role
# ---------------------------------------------------------------------------


@main.command("grant-role")
@click.argument("email")
@click.argument("role", type=click.Choice(ROLES))
def grant_role_cmd(email: str, role: str):
    """Give the account with EMAIL the ROLE (user, editor or admin)."""
    previous = _run(grant_role(_session_factory(), email, role))
    if previous is None:
        click.secho(f"No account registered with {email}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"{email}: {previous} → {role}", fg="green")


# ---------------------------------------------------------------------------
# oportal serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: OPORTAL_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: OPORTAL_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API with uvicorn."""
    import uvicorn

    from oportal.config import settings

    uvicorn.run(
        "oportal.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
