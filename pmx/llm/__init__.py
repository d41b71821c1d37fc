#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""LLM providers and the reasoning client used by the orchestrator."""

from pmx.llm.client import ReasoningClient
from pmx.llm.provider_factory import get_provider, get_provider_for_config, list_available_providers

__all__ = [
    "ReasoningClient",
    "get_provider",
    "get_provider_for_config",
    "list_available_providers",
]
