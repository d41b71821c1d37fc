"""Tests for the persistent product memory store."""

import json

import pytest

from pmx.memory.product_memory import MemoryStore


def test_defaults_when_missing(tmp_path):
    store = MemoryStore(tmp_path)
    memory = store.load()
    assert memory["identity"]["name"] == ""
    assert memory["risks"] == []
    assert store.identity_summary() is None


def test_update_merges_identity_and_dedupes_lists(tmp_path):
    store = MemoryStore(tmp_path)
    store.update({
        "identity": {"name": "Demo", "stack": "Python", "vision": ""},
        "risks": [{"description": "No tests", "severity": "HIGH"}, {"severity": "low"}],
        "personas": [{"role": "Admin", "goals": ["audit"]}],
    })
    store.update({
        "identity": {"vision": "Greet everyone"},
        "risks": [{"description": "no tests"}, {"description": "Slow build", "severity": "bogus"}],
    })

    memory = json.loads(store.path.read_text(encoding="utf-8"))
    assert memory["identity"]["name"] == "Demo"
    assert memory["identity"]["vision"] == "Greet everyone"
    assert memory["identity"]["lastUpdated"]
    assert [(r["description"], r["severity"]) for r in memory["risks"]] == [
        ("No tests", "high"),
        ("Slow build", "medium"),
    ]
    assert memory["personas"][0]["role"] == "Admin"
    assert store.identity_summary() == "Project: Demo\nStack: Python\nVision: Greet everyone"


def test_update_rejects_wrong_shapes(tmp_path):
    store = MemoryStore(tmp_path)
    with pytest.raises(TypeError):
        store.update({"identity": "Demo"})
    with pytest.raises(TypeError):
        store.update({"risks": {"description": "x"}})


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    store = MemoryStore(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")
    assert store.load()["features"] == {}


def test_decisions_and_features(tmp_path):
    store = MemoryStore(tmp_path)
    store.add_decision("Use SQLite", "Small data", "Adopt SQLite", status="accepted")
    store.record_feature("login", "Login page", "docs/features/login.md")
    with pytest.raises(ValueError):
        store.add_decision("x", "y", "z", status="maybe")

    memory = store.load()
    assert memory["decisions"][0]["status"] == "accepted"
    assert memory["features"]["login"]["path"] == "docs/features/login.md"
    description = store.describe()
    assert "Project identity: (unknown)" in description
    assert "Login page -> docs/features/login.md" in description
    assert "Decisions: 1 recorded" in description
