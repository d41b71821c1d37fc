#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Session execution: budgets, the write confirmation gate, the evidence ledger
and the orchestrator turn loop (``pmx.execution.orchestrator``)."""

from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import (
    ConfirmationChoice,
    ConfirmationGate,
    ConfirmationRequest,
    PausableInput,
    PendingWrite,
    WriteDecision,
)
from pmx.execution.evidence import EvidenceItem, EvidenceLedger

__all__ = [
    "SessionBudget",
    "ConfirmationChoice",
    "ConfirmationGate",
    "ConfirmationRequest",
    "PausableInput",
    "PendingWrite",
    "WriteDecision",
    "EvidenceItem",
    "EvidenceLedger",
]
