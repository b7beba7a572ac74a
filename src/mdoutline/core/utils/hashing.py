"""Content hashes used to tell whether a tracked file changed outside mdoutline"""

import hashlib
from pathlib import Path
from typing import Optional


def sha256(content: str) -> str:
    """Hex digest of the UTF-8 encoded content; 64 chars, the width of the hash columns."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def file_sha256(path: Path) -> Optional[str]:
    """Digest of the file's current text, or None once the file is gone."""
    if not path.exists():
        return None
    with path.open(encoding="utf-8", newline="") as f:
        return sha256(f.read())
