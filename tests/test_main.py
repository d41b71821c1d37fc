"""Tests for CLI argument handling."""

import pytest

from pmx._version import PMX_VERSION
from pmx.main import budget_overrides, build_parser, main


def test_version(capsys):
    assert main(["--version"]) == 0
    assert PMX_VERSION in capsys.readouterr().out


def test_missing_root(tmp_path, capsys):
    assert main(["--root", str(tmp_path / "nope"), "question"]) == 2
    assert "Project root not found" in capsys.readouterr().err


def test_feature_needs_a_request():
    with pytest.raises(SystemExit):
        main(["--feature"])


@pytest.mark.parametrize("argv,prefix", [
    (["--max-turns", "4", "how", "does", "auth", "work"], "investigation"),
    (["--feature", "--max-turns", "4", "add", "search"], "feature"),
    (["--max-turns", "4"], "repl"),
])
def test_budget_flags_apply_to_the_selected_mode(argv, prefix):
    args = build_parser().parse_args(argv)
    assert budget_overrides(args) == {f"{prefix}_max_turns": 4, f"{prefix}_max_seconds": None}


@pytest.mark.parametrize("flag,value", [
    ("--max-turns", "0"),
    ("--max-turns", "-3"),
    ("--max-turns", "many"),
    ("--max-seconds", "0"),
    ("--max-seconds", "nan"),
])
def test_non_positive_budget_flags_are_usage_errors(flag, value, capsys):
    with pytest.raises(SystemExit) as info:
        main([flag, value, "question"])
    assert info.value.code == 2
    assert flag in capsys.readouterr().err
