#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Durable product memory for pmx (.pmx/memory.json).

Holds what sessions learn about the product: identity, personas, decisions,
feature documents and risks. The file is read and rewritten whole on every
update; an in-process lock serializes concurrent updates.
"""

from __future__ import annotations

import copy
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pmx.config import PMX_DIR_NAME
from pmx.debug_logger import get_logger


MEMORY_FILE_NAME = "memory.json"
RISK_SEVERITIES = ("low", "medium", "high", "critical")
DECISION_STATUSES = ("proposed", "accepted", "rejected", "deprecated")

DEFAULT_MEMORY: Dict[str, Any] = {
    "identity": {"name": "", "stack": "", "vision": "", "lastUpdated": ""},
    "personas": [],
    "decisions": [],
    "features": {},
    "risks": [],
}


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _normalize_risk(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    description = str(raw.get("description") or "").strip()
    if not description:
        return None
    severity = str(raw.get("severity") or "medium").lower()
    if severity not in RISK_SEVERITIES:
        severity = "medium"
    return {
        "description": description,
        "severity": severity,
        "mitigation": str(raw.get("mitigation") or "").strip(),
    }


def _normalize_persona(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    role = str(raw.get("role") or "").strip()
    if not role:
        return None
    return {
        "role": role,
        "goals": [str(g) for g in raw.get("goals") or []],
        "painPoints": [str(p) for p in raw.get("painPoints") or []],
    }


class MemoryStore:
    """Read/modify/write access to ``<root>/.pmx/memory.json``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.path = self.root / PMX_DIR_NAME / MEMORY_FILE_NAME
        self._lock = threading.Lock()
        self.logger = get_logger()

    def load(self) -> Dict[str, Any]:
        """Return the stored memory merged over the defaults.

        A missing file yields the defaults. A corrupt file is logged and
        treated as empty rather than aborting the session.
        """
        memory = copy.deepcopy(DEFAULT_MEMORY)
        if not self.path.exists():
            return memory
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self.logger.log_error("memory", e, {"path": str(self.path)})
            return memory
        if not isinstance(data, dict):
            return memory
        for key, value in data.items():
            if key == "identity" and isinstance(value, dict):
                memory["identity"].update(value)
            else:
                memory[key] = value
        return memory

    def save(self, memory: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(memory, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        tmp.replace(self.path)
        self.logger.log("memory", "MEMORY_SAVED", {"path": str(self.path)})

    def update(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Merge structured findings into memory and persist.

        ``identity`` fields are merged (empty values ignored); ``risks`` and
        ``personas`` are appended, skipping entries already present.

        Raises:
            TypeError: If a section has the wrong shape.
        """
        with self._lock:
            memory = self.load()

            identity = partial.get("identity")
            if identity is not None:
                if not isinstance(identity, dict):
                    raise TypeError("identity must be an object")
                changes = {k: str(v) for k, v in identity.items() if k in ("name", "stack", "vision") and v}
                if changes:
                    memory["identity"].update(changes)
                    memory["identity"]["lastUpdated"] = _utc_stamp()

            for key, normalize, unique_field in (
                ("risks", _normalize_risk, "description"),
                ("personas", _normalize_persona, "role"),
            ):
                entries = partial.get(key)
                if entries is None:
                    continue
                if not isinstance(entries, list):
                    raise TypeError(f"{key} must be an array")
                existing = {str(item.get(unique_field, "")).lower() for item in memory[key] if isinstance(item, dict)}
                for raw in entries:
                    item = normalize(raw) if isinstance(raw, dict) else None
                    if item is None or item[unique_field].lower() in existing:
                        continue
                    memory[key].append(item)
                    existing.add(item[unique_field].lower())

            self.save(memory)
            return memory

    def add_decision(self, title: str, context: str, decision: str, status: str = "proposed") -> Dict[str, Any]:
        if status not in DECISION_STATUSES:
            raise ValueError(f"status must be one of {', '.join(DECISION_STATUSES)}")
        entry = {
            "date": _utc_stamp(),
            "title": title,
            "context": context,
            "decision": decision,
            "status": status,
        }
        with self._lock:
            memory = self.load()
            memory["decisions"].append(entry)
            self.save(memory)
        return entry

    def record_feature(self, slug: str, title: str, path: str, status: str = "planned") -> None:
        """Remember a feature document written by the feature flow."""
        with self._lock:
            memory = self.load()
            memory["features"][slug] = {
                "title": title,
                "path": path,
                "status": status,
                "lastUpdated": _utc_stamp(),
            }
            self.save(memory)

    def identity_summary(self) -> Optional[str]:
        """A short identity block for prompts, or None when unknown."""
        identity = self.load()["identity"]
        if not identity.get("name"):
            return None
        lines = [f"Project: {identity['name']}"]
        if identity.get("stack"):
            lines.append(f"Stack: {identity['stack']}")
        if identity.get("vision"):
            lines.append(f"Vision: {identity['vision']}")
        return "\n".join(lines)

    def describe(self) -> str:
        """Human-readable overview for the REPL's /memory command."""
        memory = self.load()
        lines: List[str] = [self.identity_summary() or "Project identity: (unknown)"]
        risks = memory.get("risks") or []
        if risks:
            lines.append(f"\nRisks ({len(risks)}):")
            lines.extend(f"  [{r.get('severity', '?')}] {r.get('description', '')}" for r in risks)
        personas = memory.get("personas") or []
        if personas:
            lines.append(f"\nPersonas: {', '.join(p.get('role', '?') for p in personas)}")
        features = memory.get("features") or {}
        if features:
            lines.append(f"\nFeatures ({len(features)}):")
            lines.extend(f"  {f.get('title', slug)} -> {f.get('path', '')}" for slug, f in features.items())
        decisions = memory.get("decisions") or []
        if decisions:
            lines.append(f"\nDecisions: {len(decisions)} recorded")
        return "\n".join(lines)
