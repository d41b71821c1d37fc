#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Persistent product memory (.pmx/memory.json) and project context files."""

from pmx.memory.product_memory import DEFAULT_MEMORY, MemoryStore
from pmx.memory.project_context import ProjectContext, load_project_context

__all__ = ["DEFAULT_MEMORY", "MemoryStore", "ProjectContext", "load_project_context"]
