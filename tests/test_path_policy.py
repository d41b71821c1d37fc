"""Tests for the read blocklist / write allowlist path policy."""

import os

import pytest

from pmx.tools.path_policy import (
    Operation,
    PolicyViolation,
    Verdict,
    classify,
    enforce,
    normalize,
    resolve_links,
)


class TestNormalize:
    def test_relative_paths_are_posix_and_collapsed(self):
        assert normalize("./docs/a.md") == "docs/a.md"
        assert normalize("docs\\guide\\a.md") == "docs/guide/a.md"
        assert normalize("docs/sub/../a.md") == "docs/a.md"

    def test_empty_and_dot_mean_root(self):
        assert normalize("") == "."
        assert normalize(".") == "."

    def test_quotes_are_stripped(self):
        assert normalize("'docs/a.md'") == "docs/a.md"
        assert normalize('"README.md"') == "README.md"

    def test_traversal_above_root_escapes(self):
        assert normalize("../secret.txt") is None
        assert normalize("docs/../../x") is None

    def test_absolute_paths_need_a_root(self):
        assert normalize("/etc/passwd") is None
        assert normalize("C:\\Windows\\system.ini") is None

    def test_absolute_path_inside_root_is_relativized(self, tmp_path):
        assert normalize(str(tmp_path / "docs" / "a.md"), tmp_path) == "docs/a.md"
        assert normalize(str(tmp_path), tmp_path) == "."

    def test_absolute_path_outside_root_escapes(self, tmp_path):
        root = tmp_path / "project"
        assert normalize(str(tmp_path / "other" / "a.md"), root) is None
        # A sibling sharing the prefix is still outside.
        assert normalize(str(tmp_path / "project-old" / "a.md"), root) is None


class TestReadClassification:
    def test_ordinary_source_is_readable(self):
        decision = classify("src/app.ts", Operation.READ)
        assert decision.verdict is Verdict.ALLOWED
        assert decision.rule == "read-default"
        assert decision.normalized == "src/app.ts"

    @pytest.mark.parametrize("path,prefix", [
        (".git/config", ".git"),
        ("node_modules/left-pad/index.js", "node_modules"),
        ("dist/bundle.js", "dist"),
        ("build", "build"),
        ("src/../.venv/lib/site.py", ".venv"),
        ("vendor/lib/.git/config", ".git"),
        ("packages/web/node_modules/x/index.js", "node_modules"),
        ("frontend/dist/app.js", "dist"),
        (".GIT/config", ".git"),
    ])
    def test_protected_directories_are_blocked(self, path, prefix):
        decision = classify(path, Operation.READ)
        assert not decision.allowed
        assert decision.rule == f"read-blocked:{prefix}"
        assert "Do not retry" in decision.reason

    def test_prefix_match_is_per_segment(self):
        assert classify(".github/workflows/ci.yml", Operation.READ).allowed
        assert classify("builder/notes.md", Operation.READ).allowed

    @pytest.mark.parametrize("path,pattern", [
        (".env", ".env"),
        ("services/api/.env", ".env"),
        (".env.local", ".env.*"),
        ("certs/server.pem", "*.pem"),
        ("deploy/id_rsa", "id_rsa"),
        (".pmx/config.yaml", ".pmx/config.yaml"),
        (".Env", ".env"),
        ("keys/Server.PEM", "*.pem"),
    ])
    def test_secret_files_are_blocked_at_any_depth(self, path, pattern):
        decision = classify(path, Operation.READ)
        assert not decision.allowed
        assert decision.rule == f"read-blocked:secrets:{pattern}"

    def test_escape_is_blocked_with_its_own_rule(self):
        decision = classify("../other-project/main.py", Operation.READ)
        assert not decision.allowed
        assert decision.rule == "outside-project-root"
        assert decision.normalized is None


class TestWriteClassification:
    @pytest.mark.parametrize("path", [
        "docs/out.md",
        "docs/features/login.md",
        "./docs/guide/../plan.md",
        "README.md",
        "PMX.md",
        ".pmx/memory.json",
    ])
    def test_allowlisted_targets(self, path):
        decision = classify(path, Operation.WRITE)
        assert decision.allowed, decision.reason
        assert decision.rule == "write-allowlist"

    @pytest.mark.parametrize("path", [
        "src/app.ts",
        "package.json",
        "docs",
        "docs/../src/x.py",
        "sub/README.md",
        "documentation/a.md",
    ])
    def test_everything_else_is_read_only(self, path):
        decision = classify(path, Operation.WRITE)
        assert decision.verdict is Verdict.BLOCKED
        assert decision.rule == "write-allowlist"
        assert "read-only" in decision.reason

    def test_secret_names_are_not_writable_even_inside_docs(self):
        assert not classify("docs/.env", Operation.WRITE).allowed
        assert not classify(".pmx/config.yaml", Operation.WRITE).allowed

    def test_write_outside_root_is_blocked(self, tmp_path):
        decision = classify("/etc/hosts", Operation.WRITE, tmp_path)
        assert decision.rule == "outside-project-root"

    def test_absolute_docs_path_inside_root_is_allowed(self, tmp_path):
        decision = classify(str(tmp_path / "docs" / "a.md"), Operation.WRITE, tmp_path)
        assert decision.allowed
        assert decision.normalized == "docs/a.md"


def test_classify_is_deterministic():
    first = classify("docs/../src/a.py", Operation.WRITE)
    second = classify("docs/../src/a.py", Operation.WRITE)
    assert first == second


def test_enforce_raises_with_rule():
    with pytest.raises(PolicyViolation) as info:
        enforce("src/app.ts", Operation.WRITE)
    assert info.value.rule == "write-allowlist"
    assert enforce("docs/a.md", Operation.WRITE).allowed


class TestResolveLinks:
    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / "project"
        (root / "src").mkdir(parents=True)
        (root / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
        (root / "docs").mkdir()
        (root / "docs" / "intro.md").write_text("# Intro\n", encoding="utf-8")
        (root / ".git").mkdir()
        (root / ".git" / "config").write_text("[core]\n", encoding="utf-8")
        (tmp_path / "outside.md").write_text("elsewhere\n", encoding="utf-8")
        return root

    def test_plain_paths_are_unchanged(self, tree):
        decision = classify("docs/intro.md", Operation.WRITE, tree)
        assert resolve_links(decision, tree) is decision

    def test_link_to_another_allowed_path_is_fine(self, tree):
        os.symlink(tree / "docs" / "intro.md", tree / "docs" / "alias.md")
        assert resolve_links(classify("docs/alias.md", Operation.WRITE), tree).allowed

    def test_doc_link_onto_source_is_not_writable(self, tree):
        os.symlink(tree / "src" / "app.py", tree / "docs" / "notes.md")
        decision = resolve_links(classify("docs/notes.md", Operation.WRITE), tree)
        assert not decision.allowed
        assert decision.rule == "symlink-escape"
        assert "src/app.py" in decision.reason

    def test_new_file_under_linked_directory_is_not_writable(self, tree):
        os.symlink(tree / "src", tree / "docs" / "code")
        decision = resolve_links(classify("docs/code/new.py", Operation.WRITE), tree)
        assert decision.rule == "symlink-escape"

    def test_link_into_blocked_directory_is_not_readable(self, tree):
        os.symlink(tree / ".git", tree / "docs" / "vcs")
        decision = resolve_links(classify("docs/vcs/config", Operation.READ), tree)
        assert decision.rule == "symlink-escape"

    def test_link_out_of_the_project_is_blocked(self, tree):
        os.symlink(tree.parent / "outside.md", tree / "docs" / "out.md")
        decision = resolve_links(classify("docs/out.md", Operation.READ), tree)
        assert decision.rule == "symlink-escape"
        assert "outside the project root" in decision.reason

    def test_enforce_follows_links_on_request(self, tree):
        os.symlink(tree / "src" / "app.py", tree / "docs" / "notes.md")
        assert enforce("docs/notes.md", Operation.WRITE, tree).allowed
        with pytest.raises(PolicyViolation) as info:
            enforce("docs/notes.md", Operation.WRITE, tree, follow_links=True)
        assert info.value.rule == "symlink-escape"
