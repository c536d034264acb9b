"""
Layout component port definitions.
"""

from __future__ import annotations

from src.core.ports.db import LayoutUpdate, PostRepoPort

__all__ = ["LayoutUpdate", "PostRepoPort"]
