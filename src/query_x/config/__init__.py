"""Configuration package for Query X.

Re-exports the settings symbols so callers can write::

    from query_x.config import get_settings
"""

from __future__ import annotations

from query_x.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
