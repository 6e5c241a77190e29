"""
Infrastructure Configuration - Unified Configuration System
==========================================================
Single source of truth for all application configuration.

- AppSettings is the single source of truth
- Settings are created once at startup and passed to the Container
"""

from .settings import AppSettings

__all__ = ['AppSettings']
