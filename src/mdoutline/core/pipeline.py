"""Pipeline step functions: renumber and relink passes over markdown files"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from sqlalchemy.engine import Engine
from sqlmodel import Session

from mdoutline.config import Settings
from mdoutline.core.export import render_document
from mdoutline.core.headings import MissingTableOfContentsError
from mdoutline.core.models import Body
from mdoutline.core.numbering import NumberingReport, renumber_headings
from mdoutline.core.parse import discover_files, parse_text, read_source
from mdoutline.core.relink import RelinkReport, resync_heading_links
from mdoutline.core.utils.diff import diff_summary, unified_diff
from mdoutline.crud.documents import checkpoint


logger = logging.getLogger(__name__)

Report = Union[NumberingReport, RelinkReport]


@dataclass
class PassResult:
    """Outcome of one pass over one file."""
    path: Path
    before: str
    after: str
    report: Optional[Report] = None
    error: Optional[str] = None
    written: bool = False

    @property
    def changed(self) -> bool:
        return self.before != self.after

    def diff(self, context: int = 3) -> list[str]:
        return unified_diff(self.before, self.after, f"a/{self.path}", f"b/{self.path}", context)

    def summary(self) -> dict[str, int]:
        return diff_summary(self.before, self.after)


def _run_pass(
    path: Path,
    operation: str,
    apply: Callable[[Body], Report],
    settings: Settings,
    engine: Optional[Engine],
    dry_run: bool,
    ) -> PassResult:
    """Parse path, apply one pass to its tree, and write it back if anything changed.

    The previous content is checkpointed in the history database; the
    checkpoint is committed only after the file has been written.
    """
    before = read_source(path)
    doc = parse_text(before, path, settings.parser_config, settings.toc_start, settings.toc_end)
    report = apply(doc.body)
    result = PassResult(path=path, before=before, after=render_document(doc), report=report)

    if not result.changed or dry_run:
        return result

    if engine is None or not settings.record_history:
        path.write_text(result.after, encoding='utf-8', newline='')
    else:
        with Session(engine) as session:
            version = checkpoint(session, str(path), before, result.after, operation, settings.max_versions)
            # history is committed only after the write succeeds
            path.write_text(result.after, encoding='utf-8', newline='')
            session.commit()
            logger.debug("Checkpointed %s as version %d", path, version.version_num)
    result.written = True
    logger.info("%s: wrote %s", operation, path)
    return result


def _run_all(
    path: str,
    operation: str,
    apply: Callable[[Body], Report],
    settings: Settings,
    engine: Optional[Engine],
    dry_run: bool,
    ) -> list[PassResult]:
    files = discover_files(Path(path))
    if not files:
        raise RuntimeError(f"No .md/.mdx files found at {path}")

    results = []
    for p in files:
        try:
            results.append(_run_pass(p, operation, apply, settings, engine, dry_run))
        except MissingTableOfContentsError as e:
            logger.warning("%s: %s", p, e)
            text = read_source(p)
            results.append(PassResult(path=p, before=text, after=text, error=str(e)))
        except (OSError, ValueError) as e:
            raise RuntimeError(f"Failed to {operation} {p}: {e}") from e
    return results


def run_renumber(
    path: str,
    settings: Settings,
    engine: Optional[Engine] = None,
    dry_run: bool = False,
    ) -> list[PassResult]:
    """Number the headings of every markdown file at path."""
    return _run_all(path, "renumber", renumber_headings, settings, engine, dry_run)


def run_relink(
    path: str,
    settings: Settings,
    engine: Optional[Engine] = None,
    dry_run: bool = False,
    ) -> list[PassResult]:
    """Resynchronize heading link labels of every markdown file at path.

    Files without a table of contents are returned with `error` set and left untouched.
    """
    def _relink(body: Body) -> RelinkReport:
        return resync_heading_links(body, settings.heading_link_prefix)

    return _run_all(path, "relink", _relink, settings, engine, dry_run)
