"""
Command-line interface for the MemoryKit client.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click

from memorykit import __version__
from memorykit.client import MemoryKit
from memorykit.config import load_settings
from memorykit.exceptions import MemoryKitError
from memorykit.logging import configure_logging, get_logger


logger = get_logger(__name__)

VERSION = __version__


def _run(operation: Callable[[MemoryKit], Awaitable[Any]]) -> Any:
    """Run ``operation`` with a client built from the environment."""
    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        config = settings.to_config()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    async def main():
        async with MemoryKit(config) as mk:
            return await operation(mk)

    try:
        return asyncio.run(main())
    except MemoryKitError as e:
        raise click.ClickException(str(e)) from e


@click.group()
def cli():
    """Command-line interface for the MemoryKit API."""
    pass


@cli.command()
def version():
    """Show the version of the MemoryKit client."""
    click.echo(f"memorykit version {VERSION}")


@cli.command()
def status():
    """Check the API status."""
    result = _run(lambda mk: mk.status.check())
    click.echo(result.model_dump_json(indent=2, exclude_none=True))


@cli.command()
@click.argument("query")
@click.option("--mode", default=None, help="Query mode: balanced, precise or creative")
@click.option("--max-sources", type=int, default=None)
@click.option("--user-id", default=None, help="Scope the query to one user")
@click.option("--stream/--no-stream", default=False, help="Stream the answer")
def query(
    query: str,
    mode: str | None,
    max_sources: int | None,
    user_id: str | None,
    stream: bool,
):
    """Ask a question answered from stored memories."""
    if not stream:
        result = _run(
            lambda mk: mk.memories.query(
                query=query, mode=mode, max_sources=max_sources, user_id=user_id
            )
        )
        click.echo(result.model_dump_json(indent=2, exclude_none=True))
        return

    async def stream_answer(mk: MemoryKit):
        events = await mk.memories.stream(
            query=query, mode=mode, max_sources=max_sources, user_id=user_id
        )
        async with events:
            async for event in events:
                if event.event == "text":
                    click.echo(_text_fragment(event.data), nl=False)
                elif event.event == "error":
                    raise click.ClickException(_text_fragment(event.data))
                elif event.is_done:
                    break
        click.echo()

    _run(stream_answer)


def _text_fragment(data: str) -> str:
    """Extract the text of a ``text``/``error`` event, tolerating plain strings."""
    try:
        payload = json.loads(data)
    except ValueError:
        return data
    if isinstance(payload, dict):
        for key in ("content", "text", "message", "error"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return data if not isinstance(payload, str) else payload


@cli.command()
@click.argument("query")
@click.option("--limit", type=int, default=None)
@click.option("--score-threshold", type=float, default=None)
@click.option("--user-id", default=None)
def search(
    query: str, limit: int | None, score_threshold: float | None, user_id: str | None
):
    """Hybrid search across memories."""
    result = _run(
        lambda mk: mk.memories.search(
            query=query,
            limit=limit,
            score_threshold=score_threshold,
            user_id=user_id,
        )
    )
    click.echo(result.model_dump_json(indent=2, exclude_none=True))


@cli.command()
@click.option("--limit", type=int, default=None, help="Page size")
@click.option("--user-id", default=None)
@click.option("--all", "fetch_all", is_flag=True, help="Follow pagination cursors")
def list_memories(limit: int | None, user_id: str | None, fetch_all: bool):
    """List stored memories as JSON lines."""

    async def collect(mk: MemoryKit):
        if fetch_all:
            return [m async for m in mk.memories.list_all(page_size=limit, user_id=user_id)]
        page = await mk.memories.list(limit=limit, user_id=user_id)
        return page.data

    memories = _run(collect)
    for memory in memories:
        click.echo(memory.model_dump_json(exclude_none=True))
    logger.debug(f"Listed {len(memories)} memories")


if __name__ == "__main__":
    cli()
