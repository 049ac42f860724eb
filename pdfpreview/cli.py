# pdfpreview/cli.py
"""
pdfpreview CLI -- Click commands with a rich terminal UI.

Provides the ``pdfpreview`` console entry-point declared in pyproject.toml as
``pdfpreview.cli:cli``.  Every command goes through one
:class:`~pdfpreview.service.PreviewService` built from the current config:

- register:     add a file to the library (fires the upload hook)
- process:      extract metadata + preview for one document
- bulk:         process pending documents in batches
- info:         processing state and preview URL
- delete:       remove a document (fires the delete hook)
- stats:        document and cache counters
- cleanup:      age-based cache eviction (the daily sweep)
- clear-cache:  delete every preview
- doctor:       backend capability report
- config:       show effective configuration
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional

import click
from rich.console import Console
from rich.markup import escape as _esc

from . import __version__
from . import cli_theme as theme
from .config import get_config
from .models import PdfPreviewError
from .service import PreviewService
from .utils.logging import get_current_log_file, get_log_directory, setup_logging

console = Console()


def _print_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    theme.print_version(__version__, console)
    ctx.exit()


class PdfPreviewGroup(click.Group):
    """Click group that shows the brand header above root-level help."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        if ctx.parent is None:
            theme.print_banner(__version__, console)
        super().format_help(ctx, formatter)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _service(ctx: click.Context) -> PreviewService:
    """Build the service once per invocation."""
    obj = ctx.ensure_object(dict)
    if "service" not in obj:
        obj["service"] = PreviewService.from_config(get_config())
    return obj["service"]


@contextmanager
def _boundary() -> Generator[None, None, None]:
    """Turn input errors from the service into CLI errors."""
    try:
        yield
    except PdfPreviewError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _print_document(service: PreviewService, doc_id: int) -> None:
    info = service.document_info(doc_id)
    t = theme.make_kv_table()
    t.add_row("id", str(info.doc_id))
    t.add_row("filename", _esc(info.filename))
    t.add_row("processed", theme.yes_no(info.processed))
    if info.page_count is not None:
        t.add_row("pages", str(info.page_count))
        t.add_row("size", f"{info.width} x {info.height} pt")
    if info.pdf_title:
        t.add_row("title", _esc(info.pdf_title))
    if info.pdf_author:
        t.add_row("author", _esc(info.pdf_author))
    if info.method:
        t.add_row("method", info.method)
    t.add_row("preview", info.preview_url or "[dim]none[/dim]")
    if info.generated:
        t.add_row("generated", info.generated.isoformat(timespec="seconds"))
    if info.error:
        t.add_row("error", f"[red]{_esc(info.error)}[/red]")
    console.print(t)


# ---------------------------------------------------------------------------
# Main CLI group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True, cls=PdfPreviewGroup)
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level to stderr as well.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """pdfpreview -- PDF metadata extraction and first-page preview cache."""
    ctx.ensure_object(dict)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    cfg = get_config()
    setup_logging(
        level="DEBUG" if verbose else None,
        log_dir=get_log_directory(cfg.log_dir),
        console_output=verbose,
    )


# ---------------------------------------------------------------------------
# register / delete
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "doc_id", type=int, default=None, help="Document ID (default: next free ID).")
@click.option("--mime-type", type=str, default=None, help="Override the guessed MIME type.")
@click.option("--title", type=str, default=None, help="Library title (default: file stem).")
@click.pass_context
def register(
    ctx: click.Context,
    path: Path,
    doc_id: Optional[int],
    mime_type: Optional[str],
    title: Optional[str],
) -> None:
    """Add a file to the document library.

    PDFs are processed immediately when generate_on_upload is enabled.

    \b
    Examples:
      pdfpreview register report.pdf
      pdfpreview register scan.pdf --id 42
    """
    service = _service(ctx)
    with _boundary():
        with theme.spinner(f"Registering {path.name}", console):
            document = service.register_document(path, doc_id=doc_id, mime_type=mime_type, title=title)
    console.print(theme.ok(f"Registered document {document.doc_id} ({document.mime_type})"))
    if document.is_pdf:
        with _boundary():
            _print_document(service, document.doc_id)


@cli.command()
@click.argument("doc_id", type=int)
@click.pass_context
def delete(ctx: click.Context, doc_id: int) -> None:
    """Remove a document, its preview and its processing record."""
    service = _service(ctx)
    with _boundary():
        service.delete_document(doc_id)
    console.print(theme.ok(f"Deleted document {doc_id}"))


# ---------------------------------------------------------------------------
# process / bulk
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("doc_id", type=int)
@click.option("--force", is_flag=True, default=False, help="Re-process even if already processed.")
@click.pass_context
def process(ctx: click.Context, doc_id: int, force: bool) -> None:
    """Extract metadata and render the preview for one document.

    \b
    Examples:
      pdfpreview process 42
      pdfpreview process 42 --force
    """
    service = _service(ctx)
    with _boundary():
        with theme.spinner(f"Processing document {doc_id}", console):
            success = service.process(doc_id, force=force)
        info = service.document_info(doc_id)

    if not success:
        raise click.ClickException(info.error or f"Processing document {doc_id} failed")

    if info.preview_url:
        console.print(theme.ok(f"Document {doc_id} processed"))
    else:
        console.print(theme.warn(f"Document {doc_id} processed without a preview"))
    _print_document(service, doc_id)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Batch size (default: bulk_batch_size).")
@click.option("--all", "run_all", is_flag=True, default=False, help="Keep running batches until nothing is pending.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
@click.pass_context
def bulk(ctx: click.Context, limit: Optional[int], run_all: bool, as_json: bool) -> None:
    """Process pending PDFs in batches.

    \b
    Examples:
      pdfpreview bulk --limit 10
      pdfpreview bulk --all
    """
    service = _service(ctx)
    batch_size = limit or service.config.bulk_batch_size
    pending = service.store.count_pending()
    total = pending if run_all else min(pending, batch_size)
    processed = failed = remaining = 0
    batches = 0

    with theme.progress(total, "documents", console) as advance:
        while True:
            result = service.bulk_process(batch_size, on_progress=lambda _doc_id, _ok: advance())
            batches += 1
            processed += result.processed
            failed += result.failed
            remaining = result.remaining
            if not run_all or remaining == 0 or result.processed + result.failed == 0:
                break

    summary = {"processed": processed, "failed": failed, "remaining": remaining, "batches": batches}
    if as_json:
        _echo_json(summary)
        return

    t = theme.make_kv_table()
    t.add_row("processed", str(processed))
    t.add_row("failed", f"[red]{failed}[/red]" if failed else "0")
    t.add_row("remaining", str(remaining))
    t.add_row("batches", str(batches))
    console.print(t)
    if remaining:
        console.print(theme.info("Run again (or pass --all) to continue"))


# ---------------------------------------------------------------------------
# info / stats
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("doc_id", type=int)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
@click.pass_context
def info(ctx: click.Context, doc_id: int, as_json: bool) -> None:
    """Show processing state and preview URL of a document."""
    service = _service(ctx)
    with _boundary():
        if as_json:
            _echo_json(service.document_info(doc_id).to_dict())
            return
        _print_document(service, doc_id)


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show document counts and cache usage."""
    service = _service(ctx)
    data = service.stats()
    if as_json:
        _echo_json(data)
        return

    docs = data["documents"]
    theme.section("Documents", console, "01")
    t = theme.make_kv_table()
    t.add_row("total", str(docs["total"]))
    t.add_row("processed", str(docs["processed"]))
    t.add_row("unprocessed", str(docs["unprocessed"]))
    t.add_row("pending", str(docs["pending"]))
    console.print(t)

    cache = data["cache"]
    theme.section("Cache", console, "02")
    t = theme.make_kv_table()
    t.add_row("directory", str(service.cache.cache_dir()))
    t.add_row("files", str(cache["file_count"]))
    t.add_row("size", _format_bytes(cache["total_size_bytes"]))
    t.add_row("oldest file", cache["oldest_file_timestamp"] or "[dim]n/a[/dim]")
    t.add_row("last cleanup", data["last_cleanup"] or "[dim]never[/dim]")
    console.print(t)
    console.print()


# ---------------------------------------------------------------------------
# cleanup / clear-cache
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def cleanup(ctx: click.Context) -> None:
    """Evict previews older than cache_retention_days."""
    service = _service(ctx)
    deleted = service.run_scheduled_cleanup()
    console.print(theme.ok(f"Cleanup removed {deleted} file(s)"))


@cli.command("clear-cache")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def clear_cache(ctx: click.Context, yes: bool) -> None:
    """Delete every cached preview and reset all processing records."""
    if not yes:
        click.confirm("Delete all cached previews?", abort=True)
    service = _service(ctx)
    deleted = service.clear_cache()
    console.print(theme.ok(f"Deleted {deleted} cached file(s)"))


# ---------------------------------------------------------------------------
# doctor
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--refresh", is_flag=True, default=False, help="Re-probe instead of using the cached snapshot.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON.")
@click.pass_context
def doctor(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """Check which PDF and image backends are available."""
    service = _service(ctx)
    if refresh:
        service.refresh_capabilities()
    report = service.diagnostics()
    if as_json:
        _echo_json(report)
        return

    status = report["status"]
    theme.section("Backends", console, "01")
    t = theme.make_table()
    t.add_column("Check", style="bold")
    t.add_column("Status")
    t.add_column("Details")
    for check in report["checks"]:
        t.add_row(check["name"], theme.yes_no(check["status"]), check["message"])
    console.print(t)

    console.print()
    console.print(f"  {theme.badge(status.upper(), status)} {report['message']}")
    console.print(theme.info(f"Recommended method: {report['capabilities']['recommended_method']}"))
    log_file = get_current_log_file()
    if log_file is not None:
        console.print(theme.info(f"Log: {log_file}"))
    console.print()


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.command("config")
def config_show() -> None:
    """Show the effective configuration.

    Values come from PDFPREVIEW_* environment variables, a .env file, or
    the defaults.
    """
    cfg = get_config()

    theme.section("Processing", console, "01")
    t = theme.make_kv_table()
    t.add_row("generate_on_upload", str(cfg.generate_on_upload))
    t.add_row("preview_quality", theme.badge(cfg.preview_quality.upper()))
    t.add_row("jpeg_fallback", str(cfg.jpeg_fallback))
    t.add_row("bulk_batch_size", str(cfg.bulk_batch_size))
    console.print(t)

    theme.section("Cache", console, "02")
    t = theme.make_kv_table()
    t.add_row("cache_retention_days", str(cfg.cache_retention_days))
    t.add_row("capability_ttl_seconds", f"{cfg.capability_ttl_seconds}s")
    console.print(t)

    theme.section("Paths", console, "03")
    t = theme.make_kv_table()
    t.add_row("home_dir", str(cfg.home_dir))
    t.add_row("uploads_path", str(cfg.uploads_path))
    t.add_row("upload_url", cfg.upload_url)
    t.add_row("state_file", str(cfg.state_file))
    t.add_row("log_dir", str(cfg.log_dir))
    console.print(t)
    console.print()


if __name__ == "__main__":
    cli()
