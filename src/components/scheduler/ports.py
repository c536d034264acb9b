"""
Scheduler component port definitions.
"""

from __future__ import annotations

from src.core.ports.db import PostRepoPort
from src.core.ports.time import ClockPort

__all__ = ["ClockPort", "PostRepoPort"]
