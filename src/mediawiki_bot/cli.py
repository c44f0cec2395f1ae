"""Command-line interface for the MediaWiki client."""

import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Awaitable, Callable

import click
from pydantic import BaseModel

from .client import MediaWikiBot
from .config import ClientSettings, EnvVars, get_config_value
from .errors import MediaWikiError
from .transport import MockTransport
from .transport.scenarios import DemoWiki
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _to_json(result: Any) -> str:
    if isinstance(result, BaseModel):
        result = result.model_dump(mode="json")
    return json.dumps(result, indent=2, ensure_ascii=False)


def _run(ctx: click.Context, operation: Callable[[MediaWikiBot], Awaitable[Any]]) -> None:
    """Build a client from the group options, run one operation and print its result."""
    settings: ClientSettings = ctx.obj["settings"]

    async def main() -> Any:
        transport = None
        if ctx.obj["use_mock"]:
            logger.info("Using mock transport with the demo wiki")
            transport = MockTransport(responder=DemoWiki.default())
        async with MediaWikiBot(settings, transport=transport) as bot:
            return await operation(bot)

    try:
        result = asyncio.run(main())
    except MediaWikiError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(_to_json(result))


def _credentials(username: Any, password: Any) -> tuple[str, str]:
    username = get_config_value(username, EnvVars.USERNAME, None)
    password = get_config_value(password, EnvVars.PASSWORD, None)
    if not username or not password:
        raise click.UsageError(
            f"Editing needs --username/--password or {EnvVars.USERNAME}/{EnvVars.PASSWORD}"
        )
    return username, password


@click.group()
@click.option("--endpoint", type=str, help="API URL (default: English Wikipedia)")
@click.option(
    "--min-interval-millis",
    type=int,
    help="Minimum spacing between calls in milliseconds (default: 6000)",
)
@click.option("--user-agent", type=str, help="User-Agent header value")
@click.option("--byeline", type=str, help="Text appended to edit summaries")
@click.option(
    "--transport",
    type=click.Choice(["httpx", "aiohttp"], case_sensitive=False),
    help="HTTP backend (default: httpx)",
)
@click.option("--timeout", "timeout_seconds", type=float, help="Per-call timeout in seconds (default: 30)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: WARNING)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Log format (default: text)",
)
@click.option("--use-mock", is_flag=True, help="Answer from a built-in demo wiki instead of the network")
@click.pass_context
def cli(ctx, log_level, log_format, use_mock, **kwargs):
    """MediaWiki Bot - rate-limited access to a MediaWiki API."""
    setup_logging(
        level=get_config_value(log_level, EnvVars.LOG_LEVEL, "WARNING"),
        format_type=get_config_value(log_format, EnvVars.LOG_FORMAT, "text"),
    )

    # Filter out None values (unspecified options)
    cli_args = {k: v for k, v in kwargs.items() if v is not None}
    try:
        settings = ClientSettings.from_args_and_env(cli_args)
    except ValueError as e:
        raise click.BadParameter(str(e))
    if use_mock and "min_interval_millis" not in cli_args:
        # The demo wiki is local, so there is nothing to throttle
        settings = replace(settings, min_interval_millis=0)

    logger.debug(f"\n{settings.display()}")
    ctx.obj = {"settings": settings, "use_mock": use_mock}


@cli.command()
@click.argument("title")
@click.pass_context
def page(ctx, title):
    """Print the latest content of a page."""
    _run(ctx, lambda bot: bot.page(title))


@cli.command()
@click.argument("revid", type=int)
@click.pass_context
def revision(ctx, revid):
    """Print the content of a page at a given revision."""
    _run(ctx, lambda bot: bot.revision(revid))


@cli.command()
@click.argument("title")
@click.option("--count", type=int, default=10, show_default=True, help="Number of revisions")
@click.pass_context
def history(ctx, title, count):
    """Print the most recent revisions of a page, newest first."""
    if count < 1:
        raise click.BadParameter("must be at least 1", param_hint="--count")
    _run(ctx, lambda bot: bot.history(title, count))


@cli.command()
@click.argument("title")
@click.pass_context
def category(ctx, title):
    """Print the pages and subcategories of a category.

    Examples:

    \b
      mediawiki-bot category "Category:Planets"
      mediawiki-bot --use-mock category "Category:Planets"
    """
    _run(ctx, lambda bot: bot.category(title))


@cli.command()
@click.pass_context
def userinfo(ctx):
    """Print the account the client is acting as."""
    _run(ctx, lambda bot: bot.userinfo())


@cli.command()
@click.argument("title")
@click.option("--text", required=True, help="New page content")
@click.option("--summary", default="", help="Edit summary (the byeline is appended)")
@click.option("--username", type=str, help=f"Account name (or {EnvVars.USERNAME})")
@click.option("--password", type=str, help=f"Account password (or {EnvVars.PASSWORD})")
@click.pass_context
def edit(ctx, title, text, summary, username, password):
    """Log in and replace the content of a page."""
    username, password = _credentials(username, password)

    async def operation(bot: MediaWikiBot) -> Any:
        await bot.login(username, password)
        return await bot.edit(title, text, summary)

    _run(ctx, operation)


@cli.command()
@click.argument("title")
@click.option("--heading", required=True, help="Section heading")
@click.option("--body", required=True, help="Section text")
@click.option("--username", type=str, help=f"Account name (or {EnvVars.USERNAME})")
@click.option("--password", type=str, help=f"Account password (or {EnvVars.PASSWORD})")
@click.pass_context
def add(ctx, title, heading, body, username, password):
    """Log in and append a new section to a page."""
    username, password = _credentials(username, password)

    async def operation(bot: MediaWikiBot) -> Any:
        await bot.login(username, password)
        return await bot.add(title, heading, body)

    _run(ctx, operation)


def main() -> None:
    """Console script entry point."""
    cli()
