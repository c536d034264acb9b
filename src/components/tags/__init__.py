"""
Tags component - tag catalogue and post tagging.
"""

from .component import (
    TAG_NAME_MAX_LENGTH,
    run_create_tag,
    run_get_post_tags,
    run_list_tags,
    run_set_post_tags,
    slugify,
)
from .models import (
    CreateTagInput,
    GetPostTagsInput,
    SetPostTagsInput,
    TagListOutput,
    TagOutput,
    TagValidationError,
)
from .ports import ClockPort, PostRepoPort, TagRepoPort

__all__ = [
    # Entry points
    "run_create_tag",
    "run_get_post_tags",
    "run_list_tags",
    "run_set_post_tags",
    "slugify",
    "TAG_NAME_MAX_LENGTH",
    # Input models
    "CreateTagInput",
    "GetPostTagsInput",
    "SetPostTagsInput",
    # Output models
    "TagListOutput",
    "TagOutput",
    "TagValidationError",
    # Ports
    "ClockPort",
    "PostRepoPort",
    "TagRepoPort",
]
