"""Tests for loading PMX.md and the product docs as context."""

import os

import pytest

from pmx.memory.project_context import PREVIEW_CHARS, ContextSource, load_project_context


def test_no_context_files(project):
    context = load_project_context(project)
    assert context.sources == ()
    assert context.system_context() == ""
    assert context.describe().startswith("Project context loaded from: (none)")


def test_loads_files_in_order(project):
    (project / "docs" / "metrics.md").write_text("Weekly actives\n", encoding="utf-8")
    (project / "PMX.md").write_text("Be brief.\n", encoding="utf-8")

    context = load_project_context(project)

    assert [source.path for source in context.sources] == ["PMX.md", "docs/metrics.md"]
    block = context.system_context()
    assert block.index("START OF PMX.md") < block.index("START OF docs/metrics.md")


def test_content_is_bounded(project):
    (project / "PMX.md").write_text("x" * 500, encoding="utf-8")
    context = load_project_context(project, max_chars=100)
    assert len(context.sources[0].content) < 500


def test_preview_is_shortened():
    source = ContextSource("PMX.md", "word " * 200)
    assert source.preview.endswith("...")
    assert len(source.preview) <= PREVIEW_CHARS + 3


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_context_file_linking_to_a_secret_is_skipped(project):
    try:
        os.symlink(project / ".env", project / "PMX.md")
    except OSError:
        pytest.skip("cannot create symlinks here")

    context = load_project_context(project)

    assert context.sources == ()
    assert "SECRET" not in context.system_context()
