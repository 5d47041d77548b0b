"""Command-line interface for the subreddit trends service."""

import asyncio
import json
import logging
import logging.config
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from subreddit_trends.config import Config
from subreddit_trends.errors import RateLimited, SubredditNotFound, TrendsError
from subreddit_trends.service import TrendsService

app = typer.Typer(help="Subreddit Trends - resolve subreddits and fetch their top posts")

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "standard",
                "filename": "logs/trends.log",
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf8",
            },
        },
        "loggers": {
            "": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": True
            },
            "asyncio": {
                "level": "WARNING",
            },
            "aiohttp": {
                "level": "WARNING",
            },
        }
    }

    logging.config.dictConfig(log_config)


def load_config(config_path: str) -> Config:
    """Load and validate configuration, exiting on errors."""
    config = Config.from_files(config_path)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        logger.critical("Invalid configuration, aborting")
        raise typer.Exit(code=1)
    return config


async def _resolve(config: Config, name: str) -> dict:
    async with TrendsService.from_config(config) as service:
        info = await service.resolve(name)
    return info.to_dict()


async def _top(config: Config, name: str, timeframe: str) -> list:
    async with TrendsService.from_config(config) as service:
        posts = await service.trending(name, timeframe)
    return [post.to_dict() for post in posts]


@app.command()
def resolve(
    name: Annotated[str, typer.Argument(help="Subreddit name, with or without r/")],
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "WARNING",
) -> None:
    """Resolve a subreddit's canonical name and accessibility."""
    setup_logging(loglevel)
    cfg = load_config(config)

    try:
        info = asyncio.run(_resolve(cfg, name))
    except TrendsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(info, indent=2))
    if not info["exists"]:
        raise typer.Exit(code=1)


@app.command()
def top(
    name: Annotated[str, typer.Argument(help="Subreddit name, with or without r/")],
    timeframe: Annotated[Optional[str], typer.Option("--timeframe", "-t", help="Ranking window (day, week, ...)")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print posts as JSON")] = False,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "WARNING",
) -> None:
    """Print the top posts of a subreddit."""
    setup_logging(loglevel)
    cfg = load_config(config)
    timeframe = timeframe or cfg.fetch.default_timeframe

    try:
        posts = asyncio.run(_top(cfg, name, timeframe))
    except SubredditNotFound as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except RateLimited as e:
        typer.echo(f"Error: rate limited, retry after {e.retry_after}s", err=True)
        raise typer.Exit(code=1)
    except TrendsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(posts, indent=2))
        return
    if not posts:
        typer.echo("No top posts found.")
        return
    for index, post in enumerate(posts, start=1):
        score = post["score"] if post["score"] is not None else "-"
        typer.echo(f"{index}. [{score}] {post['title']}")
        typer.echo(f"   {post['permalink'] or post['url']}  ({post['provenance']})")


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "INFO",
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from subreddit_trends.api.main import create_app

    setup_logging(loglevel)
    cfg = load_config(config)
    uvicorn.run(
        create_app(cfg),
        host=host or cfg.api.host,
        port=port or cfg.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    app()
