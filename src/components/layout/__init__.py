"""
Layout component - full-collection layout recompute.
"""

from .component import reassign_all_layouts, run_reassign_all
from .models import LayoutValidationError, ReassignLayoutsInput, ReassignOutput
from .ports import LayoutUpdate, PostRepoPort

__all__ = [
    # Entry points
    "reassign_all_layouts",
    "run_reassign_all",
    # Input models
    "ReassignLayoutsInput",
    # Output models
    "LayoutValidationError",
    "ReassignOutput",
    # Ports
    "LayoutUpdate",
    "PostRepoPort",
]
