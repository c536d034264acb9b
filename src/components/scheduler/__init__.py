"""
Scheduler component - periodic auto-publish of due scheduled posts.
"""

from .component import load_visible_post, promote_on_read, run_sweep
from .models import SchedulerValidationError, SweepInput, SweepOutput
from .ports import ClockPort, PostRepoPort

__all__ = [
    # Entry points
    "run_sweep",
    "promote_on_read",
    "load_visible_post",
    # Input models
    "SweepInput",
    # Output models
    "SchedulerValidationError",
    "SweepOutput",
    # Ports
    "ClockPort",
    "PostRepoPort",
]
