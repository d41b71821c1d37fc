"""Centralized version constant for pmx."""

PMX_VERSION = "0.4.0"

__all__ = ["PMX_VERSION"]
