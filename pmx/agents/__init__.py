#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Agents built on the orchestrator: investigator, scribe, tickets and delegate tools."""

from pmx.agents.investigator import run_investigation
from pmx.agents.scribe import run_feature_flow
from pmx.agents.tickets import run_ticket_flow
from pmx.agents.delegates import delegate_handlers

__all__ = ["run_investigation", "run_feature_flow", "run_ticket_flow", "delegate_handlers"]
