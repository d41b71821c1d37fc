#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""pmx - product manager co-pilot that investigates a repository and drafts docs."""

from pmx._version import PMX_VERSION
from pmx.config import PMXConfig, load_config
from pmx.workspace import Workspace

__version__ = PMX_VERSION

__all__ = [
    "__version__",
    "PMXConfig",
    "load_config",
    "Workspace",
]
