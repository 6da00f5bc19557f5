"""CLI interface for chatbook."""

from __future__ import annotations

import functools
import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import SQLITE_PATH, WILDCARD
from .models import FilterSpec, Platform, SortOrder

PLATFORM_CHOICES = [WILDCARD] + [p.value for p in Platform]
SORT_CHOICES = [s.value for s in SortOrder]
EXPORT_FORMATS = ["csv", "messages-csv", "json", "stats"]


@click.group()
@click.version_option(version=__version__, prog_name="chatbook")
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="CHATBOOK_DB",
    default=SQLITE_PATH,
    show_default=True,
    help="SQLite database holding the conversation snapshot",
)
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
@click.pass_context
def cli(ctx: click.Context, db: Path, verbose: bool):
    """chatbook — Browse, tag and analyze your ChatGPT and Claude history.

    Import a ChatGPT export ZIP or a Claude conversations.json, then filter,
    annotate and export your conversations, or serve them over MCP.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = {"db": db}


def _open_store(ctx: click.Context):
    from .storage import ConversationStore, SQLiteSnapshotBackend

    store = ConversationStore(SQLiteSnapshotBackend(ctx.obj["db"]))
    store.load()
    _warn_on_error(store)
    return store


def _warn_on_error(store):
    if store.last_error is not None:
        click.echo(click.style(f"Warning: {store.last_error}", fg="yellow"), err=True)


def _require(store, conversation_id: str):
    conv = store.get(conversation_id)
    if conv is None:
        raise click.ClickException(f"Conversation not found: {conversation_id}")
    return conv


def _fmt_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else "Unknown date"


def filter_options(f):
    """Shared filter/sort options; passes a FilterSpec as ``spec``."""

    @click.option("--search", "-s", default="", help="Match title, first message, notes or tags")
    @click.option("--platform", type=click.Choice(PLATFORM_CHOICES), default=WILDCARD)
    @click.option("--model", default=WILDCARD, help="Exact model name")
    @click.option("--tag", "tags", multiple=True, help="Require this tag (repeatable)")
    @click.option("--from", "date_from", type=click.DateTime(["%Y-%m-%d"]), help="Created on or after")
    @click.option("--to", "date_to", type=click.DateTime(["%Y-%m-%d"]), help="Created on or before")
    @click.option("--min-messages", type=int, help="Minimum number of messages")
    @click.option("--sort", "sort_by", type=click.Choice(SORT_CHOICES), default=SortOrder.NEWEST.value)
    @functools.wraps(f)
    def wrapper(*args, search, platform, model, tags, date_from, date_to, min_messages, sort_by, **kwargs):
        spec = FilterSpec(
            search=search,
            platform=platform,
            model=model,
            tags=list(tags),
            date_from=date_from.date() if date_from else None,
            date_to=date_to.date() if date_to else None,
            min_messages=min_messages,
            sort_by=sort_by,
        )
        return f(*args, spec=spec, **kwargs)

    return wrapper


@cli.command("import")
@click.argument("export_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cmd(ctx: click.Context, export_path: str):
    """Import a ChatGPT export ZIP or a ChatGPT/Claude conversations.json.

    Re-importing the same export only adds conversations you don't have yet.

    Example:
        chatbook import ~/Downloads/chatgpt-2024-01-15.zip
    """
    from .importer import import_file

    store = _open_store(ctx)
    summary = import_file(export_path, store)
    _warn_on_error(store)

    click.echo()
    click.echo(click.style("Import complete!", fg="green", bold=True))
    click.echo(f"  Format:   {summary['platform']}")
    click.echo(f"  Imported: {summary['imported']} conversations ({summary['messages']} messages)")
    if summary["skipped"]:
        click.echo(f"  Skipped:  {summary['skipped']} (already imported)")
    for warning in summary["warnings"]:
        click.echo(click.style(f"  Warning:  {warning}", fg="yellow"))


@cli.command("list")
@filter_options
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def list_cmd(ctx: click.Context, spec: FilterSpec, limit: int):
    """List conversations matching the given filters."""
    from .filters import apply_filters

    results = apply_filters(_open_store(ctx).conversations, spec)
    if not results:
        click.echo("No conversations found.")
        return

    for i, c in enumerate(results[:limit], 1):
        tags = f" [{', '.join(c.tags)}]" if c.tags else ""
        click.echo(f"{i}. {c.title} ({_fmt_date(c.created)}){tags}")
        click.echo(f"   ID: {c.id} | {c.platform.value} | {c.message_count} msgs | Model: {c.model}")

    if len(results) > limit:
        click.echo(f"\n{len(results) - limit} more — use --limit to see them.")


@cli.command()
@click.argument("conversation_id")
@click.pass_context
def show(ctx: click.Context, conversation_id: str):
    """Print a full conversation transcript."""
    conv = _require(_open_store(ctx), conversation_id)

    click.echo(click.style(conv.title, bold=True))
    click.echo(f"Date: {_fmt_date(conv.created)} | Model: {conv.model} | Messages: {conv.message_count}")
    if conv.tags:
        click.echo(f"Tags: {', '.join(conv.tags)}")
    for link in conv.links:
        click.echo(f"Link [{link.id}]: {link.label} <{link.url}>")
    if conv.notes:
        click.echo(f"Notes: {conv.notes}")
    click.echo("---")

    for msg in conv.messages:
        role = "User" if msg.role == "user" else "Assistant"
        click.echo(click.style(f"{role}:", bold=True))
        click.echo(msg.content)
        click.echo()


@cli.command()
@click.option("--months", is_flag=True, help="Also print monthly activity")
@click.pass_context
def stats(ctx: click.Context, months: bool):
    """Show statistics about your imported conversations."""
    from .stats import compute_stats

    s = compute_stats(_open_store(ctx).conversations)
    if not s.total:
        click.echo("No data found. Import an export first:")
        click.echo("  chatbook import ~/Downloads/your-export.zip")
        return

    click.echo()
    click.echo(click.style("Chat Book Statistics", bold=True))
    click.echo(
        f"  Conversations:  {s.total:,} "
        f"({s.by_platform['chatgpt']:,} ChatGPT · {s.by_platform['claude']:,} Claude)"
    )
    click.echo(f"  Messages:       {s.total_messages:,} (~{s.avg_messages} per chat)")
    click.echo(f"  Words:          {s.total_words:,} (~{s.avg_words} per chat)")
    if s.date_range:
        click.echo(f"  Date range:     {_fmt_date(s.date_range.min)} → {_fmt_date(s.date_range.max)}")
    click.echo(f"  Tagged chats:   {s.tagged:,} ({len(s.all_tags)} unique tags)")
    click.echo("  Models used:")
    for m in s.by_model:
        click.echo(f"    {m.name}: {m.count:,}")
    if months:
        click.echo("  Monthly activity:")
        for m in s.by_month:
            click.echo(f"    {m.month}: {m.count:,}")
    click.echo()


@cli.group()
def tag():
    """Add or remove tags."""
    pass


@tag.command("add")
@click.argument("conversation_id")
@click.argument("name")
@click.pass_context
def tag_add(ctx: click.Context, conversation_id: str, name: str):
    store = _open_store(ctx)
    _require(store, conversation_id)
    store.add_tag(conversation_id, name)
    _warn_on_error(store)
    click.echo(f"Tags: {', '.join(store.get(conversation_id).tags)}")


@tag.command("remove")
@click.argument("conversation_id")
@click.argument("name")
@click.pass_context
def tag_remove(ctx: click.Context, conversation_id: str, name: str):
    store = _open_store(ctx)
    _require(store, conversation_id)
    store.remove_tag(conversation_id, name)
    _warn_on_error(store)
    click.echo(f"Tags: {', '.join(store.get(conversation_id).tags) or '(none)'}")


@cli.group()
def link():
    """Attach or detach reference links."""
    pass


@link.command("add")
@click.argument("conversation_id")
@click.argument("url")
@click.option("--label", default="", help="Display label (defaults to the URL)")
@click.pass_context
def link_add(ctx: click.Context, conversation_id: str, url: str, label: str):
    store = _open_store(ctx)
    _require(store, conversation_id)
    link_id = store.add_link(conversation_id, url, label)
    _warn_on_error(store)
    click.echo(f"Added link {link_id}")


@link.command("remove")
@click.argument("conversation_id")
@click.argument("link_id")
@click.pass_context
def link_remove(ctx: click.Context, conversation_id: str, link_id: str):
    store = _open_store(ctx)
    _require(store, conversation_id)
    store.remove_link(conversation_id, link_id)
    _warn_on_error(store)
    click.echo(f"Removed link {link_id}")


@cli.command()
@click.argument("conversation_id")
@click.argument("text")
@click.pass_context
def notes(ctx: click.Context, conversation_id: str, text: str):
    """Replace the notes on a conversation."""
    store = _open_store(ctx)
    _require(store, conversation_id)
    store.update_notes(conversation_id, text)
    _warn_on_error(store)
    click.echo("Notes saved.")


@cli.command()
@click.argument("fmt", metavar="FORMAT", type=click.Choice(EXPORT_FORMATS))
@click.option("--output", "-o", type=click.File("w", encoding="utf-8"), default="-")
@filter_options
@click.pass_context
def export(ctx: click.Context, fmt: str, output, spec: FilterSpec):
    """Export conversations (filtered) or statistics as CSV or JSON."""
    from . import exporter
    from .filters import apply_filters
    from .stats import compute_stats

    conversations = _open_store(ctx).conversations
    selected = apply_filters(conversations, spec) if spec.active_count else conversations

    if fmt == "csv":
        output.write(exporter.conversations_csv(selected))
    elif fmt == "messages-csv":
        output.write(exporter.messages_csv(selected))
    elif fmt == "json":
        output.write(exporter.conversations_json(selected))
    else:
        output.write(exporter.stats_json(compute_stats(selected)))


@cli.command()
@click.pass_context
def serve(ctx: click.Context):
    """Start the MCP server (stdio transport).

    Lets Claude Desktop or Claude Code search and annotate your chat book.
    """
    from .server import configure, mcp

    configure(ctx.obj["db"])
    mcp.run(transport="stdio")


@cli.command()
@click.confirmation_option(prompt="This will delete all imported data. Are you sure?")
@click.pass_context
def reset(ctx: click.Context):
    """Delete all imported conversations, tags, links and notes."""
    store = _open_store(ctx)
    count = len(store.conversations)
    store.clear_all()
    _warn_on_error(store)
    click.echo(f"Deleted {count} conversations.")
