"""Tracked file persistence: lookup, content sync, and pre-write checkpoints"""

from datetime import datetime

from sqlmodel import Session, select

from mdoutline.core.utils.hashing import sha256
from mdoutline.crud.models import Document, DocumentVersion
from mdoutline.crud.versioning import save_version


def get_by_path(session: Session, path: str) -> Document | None:
    """Return the Document with the given source path, or None if not found."""
    return session.exec(select(Document).where(Document.path == path)).one_or_none()


def sync_content(session: Session, path: str, markdown: str) -> Document:
    """Upsert the Document for path so its stored content matches markdown.

    Flushes but does not commit; caller controls the transaction.
    """
    doc = get_by_path(session, path)
    digest = sha256(markdown)
    if doc is None:
        doc = Document(path=path, markdown=markdown, hash=digest)
    elif doc.hash != digest:
        doc.markdown = markdown
        doc.hash = digest
        doc.updated_at = datetime.now()
    session.add(doc)
    session.flush()
    return doc


def checkpoint(
    session: Session,
    path: str,
    before: str,
    after: str,
    operation: str,
    max_versions: int = 10,
    ) -> DocumentVersion:
    """Record `before` as a version of path, then make `after` its current content.

    Returns the saved version. Flushes but does not commit.
    """
    doc = sync_content(session, path, before)
    version = save_version(session, doc, operation, max_versions)
    sync_content(session, path, after)
    return version
