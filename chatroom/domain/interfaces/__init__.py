"""
Domain Interfaces
=================
"""

from .storage import IChatStore

__all__ = ['IChatStore']
