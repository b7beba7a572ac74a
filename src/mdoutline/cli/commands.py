"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from sqlmodel import Session

from mdoutline.config import Settings, load_config
from mdoutline.core.headings import STALE_TOC_MESSAGE, STALE_TOC_TITLE
from mdoutline.core.parse import read_source
from mdoutline.core.pipeline import PassResult, run_relink, run_renumber
from mdoutline.core.utils.hashing import file_sha256
from mdoutline.crud.database import init_db, make_engine, reset_db
from mdoutline.crud.documents import get_by_path, sync_content
from mdoutline.crud.versioning import diff_versions, list_versions, revert_to_version


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _engine(settings: Settings):
    engine = make_engine(settings.db_url)
    init_db(engine)
    return engine


def _echo_result(result: PassResult, show_diff: bool, dry_run: bool) -> None:
    """Print the per-file status line, then the optional diff."""
    if result.error:
        typer.echo(f"  {result.path}: skipped ({result.error})", err=True)
        return
    if not result.changed:
        typer.echo(f"  {result.path}: up to date")
    else:
        stats = result.summary()
        verb = "would change" if dry_run else "updated"
        typer.echo(f"  {result.path}: {verb} (+{stats['added']} -{stats['deleted']})")
    if show_diff and result.changed:
        typer.echo("".join(result.diff()), nl=False)


def _echo_relink_notices(result: PassResult) -> None:
    """Surface a stale table of contents and links whose heading no longer exists."""
    report = result.report
    if report is None:
        return
    if report.stale:
        typer.echo(f"Warning: {result.path}: {STALE_TOC_TITLE}", err=True)
        typer.echo(f"  {STALE_TOC_MESSAGE}".replace("\n", "\n  "), err=True)
    if report.deprecated:
        typer.echo(f"Links we could not update in {result.path}:", err=True)
        for line in report.deprecated_lines():
            typer.echo(f"  {line}", err=True)


def renumber_cmd(
    path: Annotated[str, typer.Argument(help="Markdown file or directory to renumber")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report changes without writing files")] = False,
    show_diff: Annotated[bool, typer.Option("--diff", help="Print a unified diff of each change")] = False,
    ):
    """Number every heading (1., 1.1., ...) until an Annex/Appendix section begins."""
    settings = _settings()
    engine = None if dry_run else _engine(settings)
    try:
        results = run_renumber(path, settings, engine, dry_run)
    except RuntimeError as e:
        _fail(str(e))
    except Exception as e:
        _fail("Renumber failed", e)

    for result in results:
        _echo_result(result, show_diff, dry_run)
        if result.report and result.report.frozen_at:
            typer.echo(f"    numbering stopped at {result.report.frozen_at!r}")
    changed = sum(r.changed for r in results)
    typer.echo(f"Renumber complete - {changed} of {len(results)} file(s) changed")


def relink_cmd(
    path: Annotated[str, typer.Argument(help="Markdown file or directory to relink")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report changes without writing files")] = False,
    show_diff: Annotated[bool, typer.Option("--diff", help="Print a unified diff of each change")] = False,
    link_prefix: Annotated[Optional[str], typer.Option("--link-prefix", help="Target prefix identifying heading links")] = None,
    ):
    """Rewrite heading link labels from the table of contents. Refresh the TOC first."""
    settings = _settings(overrides={"heading_link_prefix": link_prefix})
    engine = None if dry_run else _engine(settings)
    try:
        results = run_relink(path, settings, engine, dry_run)
    except RuntimeError as e:
        _fail(str(e))
    except Exception as e:
        _fail("Relink failed", e)

    for result in results:
        _echo_result(result, show_diff, dry_run)
        _echo_relink_notices(result)

    failed = [r for r in results if r.error]
    updated = sum(len(r.report.updated) for r in results if r.report)
    typer.echo(f"Relink complete - {updated} link(s) updated in {len(results) - len(failed)} file(s)")
    if failed:
        raise typer.Exit(1)


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize the history database. Use --reset to clear existing history."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing history cleared.")
    else:
        init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def history_cmd(
    path: Annotated[Path, typer.Argument(help="Tracked markdown file")],
    ):
    """List the stored versions of a file."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        doc = get_by_path(session, str(path))
        if doc is None:
            _fail(f"No history recorded for {path}")
        versions = list_versions(session, doc.id)
        if not versions:
            typer.echo(f"No versions stored for {path}.")
            raise typer.Exit(1)
        for v in versions:
            typer.echo(f"  v{v.version_num}  {v.created_at:%Y-%m-%d %H:%M:%S}  {v.operation:<8}  {v.hash[:12]}")
        current = "" if doc.hash == file_sha256(path) else " (file modified since)"
        typer.echo(f"current  {doc.updated_at:%Y-%m-%d %H:%M:%S}  {doc.hash[:12]}{current}")


def diff_cmd(
    path: Annotated[Path, typer.Argument(help="Tracked markdown file")],
    from_num: Annotated[int, typer.Argument(help="Older version number")],
    to_num: Annotated[int, typer.Argument(help="Newer version number")],
    ):
    """Show a unified diff between two stored versions of a file."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        doc = get_by_path(session, str(path))
        if doc is None:
            _fail(f"No history recorded for {path}")
        try:
            lines = diff_versions(session, doc.id, from_num, to_num)
        except ValueError as e:
            _fail(str(e))
    typer.echo("".join(lines) if lines else "No differences.", nl=not lines)


def revert_cmd(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Tracked markdown file")],
    version: Annotated[int, typer.Argument(help="Version number to restore")],
    ):
    """Restore a stored version of a file; its current content is stored first."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        if get_by_path(session, str(path)) is None:
            _fail(f"No history recorded for {path}")
        doc = sync_content(session, str(path), read_source(path))
        try:
            doc = revert_to_version(session, doc, version, settings.max_versions)
        except ValueError as e:
            _fail(str(e))
        session.commit()
        path.write_text(doc.markdown, encoding="utf-8", newline="")
    typer.echo(f"Restored {path} to v{version}")
