"""CLI commands for Symbiosis."""

import asyncio
import sys

import click
import structlog
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from companion.pipeline import TurnPipeline
from companion.reply import TurnReply
from companion.session import Session
from llm import LLMError
from observability import log_turn_summary
from shared_types import DirectorAction

from .config import build_pipeline, load_config_model
from .logging_config import setup_logging

console = Console()
logger = structlog.get_logger()

_MOOD_STYLES = {
    "NEUTRAL": "white",
    "AFFECTIONATE": "magenta",
    "CRYPTIC": "cyan",
    "DISLIKE": "red",
    "JOYFUL": "green",
    "CURIOUS": "yellow",
    "SAD": "blue",
    "GLITCH": "bold red",
    "QUESTION": "bold yellow",
}


def _load(verbose: bool):
    try:
        config = load_config_model()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
    setup_logging(json_mode=config.logging.json_mode, level="DEBUG" if verbose else config.logging.level)
    return config


def _pipeline(config) -> TurnPipeline:
    try:
        return build_pipeline(config)
    except LLMError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)


async def _print_reply(pipeline: TurnPipeline, reply: TurnReply):
    style = _MOOD_STYLES.get(reply.mood.value, "white")
    console.print(f"[{style}]{reply.response}[/]  [dim]({reply.mood.value})[/]")

    if reply.graph and not reply.graph.is_empty:
        tree = Tree("[dim]graph[/]")
        for root in reply.graph.roots:
            root_node = tree.add(f"{root.label} [dim]{root.mood.value}[/]")
            for branch in root.branches:
                branch_node = root_node.add(f"{branch.label} [dim]{branch.mood.value}[/]")
                for leaf in branch.leaves:
                    branch_node.add(f"{leaf.text} [dim]{leaf.mood.value}[/]")
        console.print(tree)

    if reply.director_action is DirectorAction.PLAY_MEDIA and reply.files:
        table = Table(show_header=True)
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("URL")
        for f in reply.files:
            table.add_row(f.name, f.mime, f.url)
        console.print(table)

    if reply.director_action is DirectorAction.SHOW_DECKS and reply.deck_keywords:
        visuals = await pipeline.entity_visuals(reply.deck_keywords)
        for name, urls in visuals.items():
            console.print(f"[cyan]{name}[/]: {len(urls)} images")
            for url in urls[:3]:
                console.print(f"  [dim]{url}[/]")


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose: bool):
    """Symbiosis - conversational memory companion."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = _load(verbose)


@cli.command()
@click.pass_context
def chat(ctx):
    """Interactive session. Commands: 'director mode', 'question time', 'done', 'exit'."""
    config = ctx.obj["config"]

    async def run():
        pipeline = _pipeline(config)
        session = await Session.restore(
            pipeline.backend,
            history_limit=config.session.history_limit,
            gap_hours=config.session.session_gap_hours,
        )
        console.print(f"[dim]Restored {len(session.history)} messages.[/]")
        turn = 0
        try:
            while True:
                text = await asyncio.to_thread(console.input, "[bold]> [/]")
                if text.strip().lower() in ("exit", "quit"):
                    break
                if not text.strip():
                    continue
                reply = await pipeline.handle(session, text)
                await _print_reply(pipeline, reply)
                turn += 1
                log_turn_summary(f"chat-{turn}")
        except (EOFError, KeyboardInterrupt):
            console.print()
        finally:
            console.print(f"[dim]Saving memories ({pipeline.queue.pending} queued)...[/]")
            await pipeline.close()

    asyncio.run(run())


@cli.command()
@click.argument("text")
@click.option("--interrogation", is_flag=True, help="Run the turn in interrogation mode")
@click.option("--director", is_flag=True, help="Run the turn in director mode")
@click.pass_context
def ask(ctx, text: str, interrogation: bool, director: bool):
    """Run a single turn and print the reply."""
    if interrogation and director:
        raise click.UsageError("--interrogation and --director are mutually exclusive")
    config = ctx.obj["config"]

    async def run():
        pipeline = _pipeline(config)
        session = await Session.restore(
            pipeline.backend,
            history_limit=config.session.history_limit,
            gap_hours=config.session.session_gap_hours,
        )
        session.interrogation = interrogation
        session.director = director
        try:
            reply = await pipeline.handle(session, text)
            await _print_reply(pipeline, reply)
            log_turn_summary("ask")
        finally:
            await pipeline.close()

    asyncio.run(run())


@cli.command()
@click.pass_context
def history(ctx):
    """Show the restored chat history."""
    config = ctx.obj["config"]

    async def run():
        pipeline = _pipeline(config)
        try:
            return await Session.restore(
                pipeline.backend,
                history_limit=config.session.history_limit,
                gap_hours=config.session.session_gap_hours,
            )
        finally:
            await pipeline.close()

    session = asyncio.run(run())
    if not session.history:
        console.print("[yellow]No history.[/]")
        return

    table = Table(show_header=True)
    table.add_column("Time", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Message")
    for msg in session.history:
        stamp = msg.timestamp.strftime("%Y-%m-%d %H:%M") if msg.timestamp else ""
        table.add_row(stamp, msg.role.value, msg.content)
    console.print(table)


if __name__ == "__main__":
    cli()
