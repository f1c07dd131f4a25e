"""TaskTrack CLI — run the server and bootstrap the database.

Usage:
    tasktrack serve                                  # Run the API with uvicorn
    tasktrack init-db                                # Create tables (dev / SQLite)
    tasktrack create-admin ops@example.com -p ...    # First administrator

Learn: Registration always creates plain users and only an admin can
promote someone, so the very first admin has to come from here.
create-admin promotes an existing account or creates a new one.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from tasktrack import __version__
from tasktrack.config import get_settings
from tasktrack.db.engine import Database
from tasktrack.errors import AppError
from tasktrack.stores.users import CredentialStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tasktrack")
def main():
    """TaskTrack — task management API administration."""


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tasktrack.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create any missing tables."""
    _run(_init_db_impl())
    click.secho("Database initialized", fg="green")


async def _init_db_impl():
    db = Database(get_settings())
    try:
        await db.create_all()
    finally:
        await db.dispose()


@main.command("create-admin")
@click.argument("email")
@click.option(
    "--password", "-p",
    prompt=True, hide_input=True, confirmation_prompt=True,
    help="Password for a new account (ignored when promoting an existing one)",
)
@click.option("--name", "-n", default=None, help="Display name")
def create_admin(email: str, password: str, name: Optional[str]):
    """Create an administrator, or promote an existing user to admin."""
    try:
        created = _run(_create_admin_impl(email, password, name))
    except (AppError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    verb = "Created" if created else "Promoted"
    click.secho(f"{verb} admin {email.strip().lower()}", fg="green")


async def _create_admin_impl(email: str, password: str, name: Optional[str]) -> bool:
    """Returns True when a new account was created."""
    settings = get_settings()
    db = Database(settings)
    try:
        await db.create_all()
        async with db.session_factory() as session:
            users = CredentialStore(
                session,
                bcrypt_rounds=settings.bcrypt_rounds,
                timeout=settings.store_timeout_seconds,
            )
            existing = await users.find_by_email(email)
            if existing:
                await users.update_fields(existing.id, role="admin")
                return False
            if len(password) < 6:
                raise ValueError("Password must be at least 6 characters")
            await users.create(email=email, password=password, name=name, role="admin")
            return True
    finally:
        await db.dispose()


if __name__ == "__main__":
    main()
