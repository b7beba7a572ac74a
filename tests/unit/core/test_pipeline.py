"""Unit tests for core/pipeline.py"""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from mdoutline.config import Settings
from mdoutline.core.pipeline import run_relink, run_renumber
from mdoutline.crud.documents import get_by_path
from mdoutline.crud.versioning import list_versions


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings()


@pytest.fixture(autouse=True)
def chdir_tmp(tmp_path, monkeypatch):
    """Run each test from a clean tmp directory so relative paths are isolated."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture(name="doc_file")
def doc_file_fixture(tmp_path, sample_md):
    f = tmp_path / "notes.md"
    f.write_text(sample_md, encoding="utf-8")
    return f


# --- run_renumber ---

def test_run_renumber_writes_file(doc_file, settings):
    [result] = run_renumber(str(doc_file), settings)
    assert result.changed
    assert result.written
    text = doc_file.read_text(encoding="utf-8")
    assert "# 1. Introduction {#h.intro}" in text
    assert "## 1.1. Scope {#h.scope}" in text
    assert "# 2. Methods {#h.methods}" in text
    assert "## Raw tables {#h.raw}" in text
    assert result.report.frozen_at == "Annex A: Data"


def test_run_renumber_dry_run_leaves_file(doc_file, sample_md, settings):
    [result] = run_renumber(str(doc_file), settings, dry_run=True)
    assert result.changed
    assert not result.written
    assert doc_file.read_text(encoding="utf-8") == sample_md


def test_run_renumber_second_run_is_noop(doc_file, settings):
    run_renumber(str(doc_file), settings)
    [result] = run_renumber(str(doc_file), settings)
    assert not result.changed
    assert not result.written
    assert result.report.changed == 0


def test_run_renumber_directory(tmp_path, settings):
    (tmp_path / "a.md").write_text("# A\n")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "b.md").write_text("# 1. B\n")
    results = run_renumber(str(tmp_path), settings)
    assert [r.path.name for r in results] == ["a.md", "b.md"]
    assert [r.changed for r in results] == [True, False]


def test_run_renumber_no_files(tmp_path, settings):
    with pytest.raises(RuntimeError, match="No .md/.mdx files"):
        run_renumber(str(tmp_path), settings)


def test_run_renumber_bad_frontmatter(tmp_path, settings):
    f = tmp_path / "bad.md"
    f.write_text("---\n- a\n---\n# A\n")
    with pytest.raises(RuntimeError, match="Failed to renumber"):
        run_renumber(str(f), settings)


def test_run_renumber_checkpoints_previous_content(doc_file, sample_md, settings, engine):
    run_renumber(str(doc_file), settings, engine)
    with Session(engine) as session:
        doc = get_by_path(session, str(doc_file))
        assert doc.markdown == doc_file.read_text(encoding="utf-8")
        [version] = list_versions(session, doc.id)
        assert version.markdown == sample_md
        assert version.operation == "renumber"


def test_run_renumber_history_disabled(doc_file, engine):
    run_renumber(str(doc_file), Settings(record_history=False), engine)
    with Session(engine) as session:
        assert get_by_path(session, str(doc_file)) is None


def test_pass_result_diff_and_summary(doc_file, settings):
    [result] = run_renumber(str(doc_file), settings, dry_run=True)
    assert result.summary() == {"added": 3, "deleted": 3}
    diff = "".join(result.diff())
    assert f"--- a/{doc_file}" in diff
    assert "+# 2. Methods {#h.methods}" in diff


# --- run_relink ---

def test_run_relink_after_renumber(doc_file, settings):
    run_renumber(str(doc_file), settings)
    [result] = run_relink(str(doc_file), settings)
    assert result.written
    assert not result.report.stale
    assert "[Section 2](#heading=h.methods)" in doc_file.read_text(encoding="utf-8")
    assert result.report.deprecated_lines() == ["heading: #heading=h.gone / description: old section"]


def test_run_relink_leaves_deprecated_link_text(doc_file, settings):
    run_relink(str(doc_file), settings)
    assert "[old section](#heading=h.gone)" in doc_file.read_text(encoding="utf-8")


def test_run_relink_custom_prefix_skips_default_links(doc_file):
    [result] = run_relink(str(doc_file), Settings(heading_link_prefix="#section"))
    assert not result.changed
    assert result.report.deprecated == []


def test_run_relink_missing_toc_is_recorded(tmp_path, settings):
    f = tmp_path / "plain.md"
    f.write_text("# A\n\nSee [x](#heading=h.x).\n")
    [result] = run_relink(str(f), settings)
    assert result.error
    assert not result.changed
    assert f.read_text() == "# A\n\nSee [x](#heading=h.x).\n"


def test_run_relink_unclosed_toc_fails(tmp_path, settings):
    f = tmp_path / "open.md"
    f.write_text("<!-- toc -->\n- [1. A](#heading=h.a)\n\n# 1. A {#h.a}\n")
    with pytest.raises(RuntimeError, match="never closed"):
        run_relink(str(f), settings)


# --- writes ---

def test_run_renumber_keeps_crlf_endings(tmp_path, settings):
    f = tmp_path / "win.md"
    f.write_bytes(b"# A\r\n\r\nText\r\n")
    [result] = run_renumber(str(f), settings)
    assert result.written
    assert f.read_bytes() == b"# 1. A\r\n\r\nText\r\n"


def test_failed_write_records_no_history(doc_file, sample_md, settings, engine, monkeypatch):
    def _fail(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", _fail)
    with pytest.raises(RuntimeError, match="disk full"):
        run_renumber(str(doc_file), settings, engine)
    with Session(engine) as session:
        assert get_by_path(session, str(doc_file)) is None
    assert doc_file.read_text(encoding="utf-8") == sample_md
