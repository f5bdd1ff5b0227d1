"""CLI entry point for chat-recall.

Allows listing, searching, saving, and expiring transcripts via command line:
    python -m chat_recall recall "s3 bucket"
"""

import logging
import signal
import sys
import threading
from pathlib import Path
from types import FrameType

import click

from chat_recall.config import Config, load_config
from chat_recall.logging import get_logger, setup_logging
from chat_recall.models import TranscriptStats
from chat_recall.plugin import ChatRecall
from chat_recall.search.engine import SearchEngine
from chat_recall.sources import SourceRegistry
from chat_recall.storage.retention import RetentionSweeper, sweep
from chat_recall.storage.store import TranscriptStore
from chat_recall.tools import FORMATS, format_full_transcript, list_transcripts, recall_transcript
from chat_recall.transcript.render import format_timestamp

logger = get_logger("cli")


def _load(ctx: click.Context) -> Config:
    return ctx.obj["config"]


def print_stats(stats: TranscriptStats) -> None:
    """Print transcript statistics."""
    click.echo(f"Transcripts: {stats.total_transcripts}")
    click.echo(f"Messages:    {stats.total_messages}")
    click.echo(f"Compacted:   {stats.compacted_count}")
    if stats.total_transcripts:
        click.echo(f"Oldest:      {format_timestamp(stats.oldest_timestamp)}")
        click.echo(f"Newest:      {format_timestamp(stats.newest_timestamp)}")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Path to config.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to the console")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Save and recall conversation transcripts."""
    config = load_config(config_path)
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging("chat-recall", log_dir=config.log_dir, level=level, console=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command("list")
@click.option("--session", "session_id", help="Only show this session")
@click.option("--project", "project_id", help="Filter by project ID")
@click.option("--limit", "-n", default=20, help="Number of transcripts")
@click.pass_context
def list_command(ctx: click.Context, session_id: str | None, project_id: str | None, limit: int) -> None:
    """List saved transcripts."""
    store = TranscriptStore(_load(ctx).transcript_dir)
    click.echo(
        list_transcripts(
            store,
            current_session_id=session_id,
            current_session=session_id is not None,
            project_id=project_id,
            limit=limit,
        )
    )


@cli.command()
@click.argument("query")
@click.option("--session", "session_id", help="Only search this session")
@click.option("--limit", "-n", default=5, help="Number of results")
@click.pass_context
def recall(ctx: click.Context, query: str, session_id: str | None, limit: int) -> None:
    """Search transcripts for QUERY."""
    store = TranscriptStore(_load(ctx).transcript_dir)
    click.echo(recall_transcript(store, SearchEngine(store), query, session_id=session_id, limit=limit))


@cli.command()
@click.argument("session_id")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS),
    default="markdown",
    help="Output format",
)
@click.pass_context
def show(ctx: click.Context, session_id: str, fmt: str) -> None:
    """Print the full transcript of SESSION_ID."""
    store = TranscriptStore(_load(ctx).transcript_dir)
    transcript = store.load(session_id)
    if transcript is None:
        click.echo(f"No transcript found for session {session_id}", err=True)
        sys.exit(1)
    click.echo(format_full_transcript(transcript.markdown, transcript.text, fmt))


@cli.command()
@click.option("--project", "project_id", help="Filter by project ID")
@click.pass_context
def stats(ctx: click.Context, project_id: str | None) -> None:
    """Show transcript statistics."""
    store = TranscriptStore(_load(ctx).transcript_dir)
    print_stats(SearchEngine(store).get_stats(project_id))


@cli.command()
@click.argument("session_ids", nargs=-1)
@click.option("--all", "save_all", is_flag=True, help="Save every session the source knows about")
@click.option("--compacted", is_flag=True, help="Mark the saved transcripts as compacted")
@click.option(
    "--source",
    "source_name",
    type=click.Choice(SourceRegistry.all_sources()),
    default="opencode",
    show_default=True,
    help="Message source to read sessions from",
)
@click.option(
    "--storage",
    type=click.Path(path_type=Path, file_okay=False),
    help="Source storage directory (defaults to opencode_storage from config)",
)
@click.pass_context
def save(
    ctx: click.Context,
    session_ids: tuple[str, ...],
    save_all: bool,
    compacted: bool,
    source_name: str,
    storage: Path | None,
) -> None:
    """Save transcripts for SESSION_IDS from a message source."""
    config = _load(ctx)
    source_cls = SourceRegistry.get(source_name)
    source = source_cls(storage or config.opencode_storage)

    targets = source.list_sessions() if save_all else list(session_ids)
    if not targets:
        click.echo("No sessions given. Pass session IDs or --all.", err=True)
        sys.exit(1)

    recall_service = ChatRecall(config, source)
    failed = 0
    for session_id in targets:
        path = recall_service.save_session(session_id, compacted=compacted)
        if path is None:
            failed += 1
            click.echo(f"Skipped {session_id}: no session or messages found", err=True)
        else:
            click.echo(f"Saved {session_id}: {path}")

    if failed == len(targets):
        sys.exit(1)


@cli.command("sweep")
@click.pass_context
def sweep_command(ctx: click.Context) -> None:
    """Delete expired transcripts now."""
    store = TranscriptStore(_load(ctx).transcript_dir)
    try:
        deleted = sweep(store)
    except Exception as e:
        click.echo(f"Error sweeping transcripts: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {deleted} expired transcript(s)")


@cli.command()
@click.pass_context
def daemon(ctx: click.Context) -> None:
    """Run the retention sweeper until interrupted."""
    config = _load(ctx)
    store = TranscriptStore(config.transcript_dir)
    sweeper = RetentionSweeper(
        store,
        interval_seconds=config.retention.cleanup_interval_seconds,
        startup_delay_seconds=config.retention.startup_delay_seconds,
    )
    stopped = threading.Event()

    def signal_handler(signum: int, frame: FrameType | None) -> None:
        """Handle shutdown signals gracefully."""
        sig_name = signal.Signals(signum).name
        logger.info("Received signal %s, shutting down", sig_name)
        stopped.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "Starting retention daemon: transcript_dir=%s retention_days=%d interval=%ss",
        config.transcript_dir,
        config.retention.retention_days,
        config.retention.cleanup_interval_seconds,
    )
    sweeper.start()
    try:
        # Wake periodically so signals are handled promptly
        while not stopped.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        sweeper.stop(timeout=5)

    logger.info("Retention daemon stopped")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
