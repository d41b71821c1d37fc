#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Evidence ledger: the artifacts inspected during one session.

Items are appended by the dispatcher on successful read/search operations and
surfaced in the final result. The ledger is owned by a single session.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class EvidenceItem:
    """A path, a short summary and an optional literal snippet."""

    path: str
    summary: str
    snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.snippet is None:
            data.pop("snippet")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["EvidenceItem"]:
        """Build an item from reported evidence; None if it has no path."""
        if not isinstance(data, dict):
            return None
        path = str(data.get("path") or "").strip()
        if not path:
            return None
        snippet = data.get("snippet")
        return cls(
            path=path,
            summary=str(data.get("summary") or "").strip(),
            snippet=str(snippet) if snippet is not None else None,
        )


class EvidenceLedger:
    """Append-only list of evidence items."""

    def __init__(self) -> None:
        self._items: List[EvidenceItem] = []

    def record(self, path: str, summary: str, snippet: Optional[str] = None) -> EvidenceItem:
        item = EvidenceItem(path=path, summary=summary, snippet=snippet)
        self._items.append(item)
        return item

    def snapshot(self) -> Tuple[EvidenceItem, ...]:
        """Return an immutable copy of the items recorded so far."""
        return tuple(self._items)

    def paths(self) -> List[str]:
        """Distinct paths in first-seen order."""
        seen: Dict[str, None] = {}
        for item in self._items:
            seen.setdefault(item.path, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[EvidenceItem]:
        return iter(self.snapshot())
