"""Entry-point for the Campus Portal application."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from portal.bootstrap import initialize_app
from portal.context import create_context
from portal.logging_utils import configure_logging
from portal.services.review import request_review
from portal.ui.console import ConsoleUI
from portal.ui.modern import ModernUI
from portal.web import create_app


LOGGER = logging.getLogger("campus_portal.cli")


cli = typer.Typer(add_completion=False, help="Campus Portal management commands")


def _prepare_logging(log_root: Path) -> None:
    log_file = configure_logging(log_root)
    LOGGER.debug("Logging to %s", log_file)


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the overview presentation style.",
    show_default=True,
)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None, open_browser=True)


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="PORTAL_ROOT_PATH",
    ),
    open_browser: bool = typer.Option(True, help="Open the API docs in a browser"),
) -> None:
    """Run the FastAPI-powered JSON API."""

    app_config = initialize_app()
    _prepare_logging(app_config.log_root)

    context = create_context(app_config)
    normalized_root = _normalize_root_path(root_path)
    app = create_app(context, root_path=normalized_root)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server

    if open_browser:
        browser_host = host
        if not browser_host or browser_host in {"0.0.0.0", "::"}:
            browser_host = "127.0.0.1"
        url = f"http://{browser_host}:{port}{normalized_root}/docs"

        def _open_browser_later() -> None:
            time.sleep(1.0)
            try:
                webbrowser.open(url, new=2, autoraise=True)
            except webbrowser.Error as error:
                LOGGER.debug("Could not open browser: %s", error)

        threading.Thread(target=_open_browser_later, daemon=True).start()

    server.run()


@cli.command()
def init() -> None:
    """Create the database and load the demo content if it is missing."""

    app_config = initialize_app()
    _prepare_logging(app_config.log_root)

    context = create_context(app_config, configure_provider=False, seed=False)
    try:
        seeded = context.store.initialize_if_empty()
    finally:
        context.close()
    if seeded:
        typer.echo(f"Demo content written to {app_config.database_file}")
    else:
        typer.echo("Store already initialised; nothing to do.")


@cli.command()
def overview(style: UIStyle = style_option) -> None:
    """Render an overview of the stored portal state."""

    app_config = initialize_app()
    _prepare_logging(app_config.log_root)

    context = create_context(app_config, configure_provider=False, seed=False)
    try:
        if style is UIStyle.MODERN:
            ui = ModernUI(context.store)
        else:
            ui = ConsoleUI(context.store)
        ui.run()
    finally:
        context.close()


@cli.command()
def review(course_file_id: str = typer.Argument(..., help="Course file to review")) -> None:
    """Run an AI review for a course file and print the outcome."""

    app_config = initialize_app()
    _prepare_logging(app_config.log_root)

    context = create_context(app_config)
    try:
        if not context.reviews.available:
            typer.echo("AI review is not configured; set PORTAL_AI_API_KEY.")
            raise typer.Exit(code=1)
        if context.store.find_course_file(course_file_id) is None:
            typer.echo(f"Unknown course file: {course_file_id}")
            raise typer.Exit(code=1)

        typer.echo(f"====> Reviewing {course_file_id}…")
        result = asyncio.run(request_review(context, course_file_id))
    finally:
        context.close()

    if result is None or result.status != "complete":
        typer.echo("AI review failed.")
        raise typer.Exit(code=1)

    typer.echo(result.summary)
    for suggestion in result.suggestions:
        typer.echo(f"  • {suggestion}")
    for correction in result.corrections:
        typer.echo(f"  ✎ {correction.original} → {correction.corrected}")


if __name__ == "__main__":
    cli()
