"""
Chat room backend with heartbeat-based presence.

Participants join, post broadcast or private messages, refresh their status
periodically, and are evicted by a background sweep once silent for too long.
"""

__version__ = "1.0.0"
