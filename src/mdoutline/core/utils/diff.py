"""Line diffs between a file's content before and after a pass"""

import difflib


def diff_summary(old: str, new: str) -> dict[str, int]:
    """Return added/deleted line counts for a compact per-file status line."""
    added = deleted = 0
    matcher = difflib.SequenceMatcher(None, old.splitlines(), new.splitlines())
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            deleted += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return {"added": added, "deleted": deleted}


def unified_diff(
    old: str,
    new: str,
    from_label: str = "before",
    to_label: str = "after",
    context: int = 3,
    ) -> list[str]:
    """Return unified diff lines comparing old to new. Empty list if identical.

    Lines keep their newlines; join with '' for display.
    """
    return list(difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=from_label,
        tofile=to_label,
        n=context,
    ))
