"""
Assets component - image conversion, storage naming, gallery and cover management.
"""

from ._impl import (
    convert_image,
    dense_orders,
    derive_cover,
    generate_object_name,
    mime_to_extension,
    object_key_from_url,
    validate_focal_point,
    validate_upload_size,
)
from .component import (
    delete_objects_best_effort,
    release_objects_best_effort,
    run_add_image_record,
    run_add_images,
    run_delete_image,
    run_list_images,
    run_orphan_sweep,
    run_reorder,
    run_set_alt_text,
    run_set_focal_point,
    run_upload,
    store_image,
)
from .models import (
    DEFAULT_ASSETS_CONFIG,
    AddImageRecordInput,
    AddImagesInput,
    AddImagesOutput,
    AssetsConfig,
    AssetValidationError,
    ConversionResult,
    DeleteImageInput,
    FileOutcome,
    GalleryOutput,
    ImageOutput,
    ImagePayload,
    ListImagesInput,
    OrphanSweepInput,
    OrphanSweepOutput,
    ReorderImagesInput,
    SetAltTextInput,
    SetFocalPointInput,
    UploadImageInput,
    UploadOutput,
)
from .ports import (
    ClockPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostRepoPort,
    ProfileRepoPort,
)

__all__ = [
    # Entry points
    "run_add_image_record",
    "run_add_images",
    "run_delete_image",
    "run_list_images",
    "run_orphan_sweep",
    "run_reorder",
    "run_set_alt_text",
    "run_set_focal_point",
    "run_upload",
    "delete_objects_best_effort",
    "release_objects_best_effort",
    "store_image",
    # Pure helpers
    "convert_image",
    "dense_orders",
    "derive_cover",
    "generate_object_name",
    "mime_to_extension",
    "object_key_from_url",
    "validate_focal_point",
    "validate_upload_size",
    # Input models
    "AddImageRecordInput",
    "AddImagesInput",
    "DeleteImageInput",
    "ImagePayload",
    "ListImagesInput",
    "OrphanSweepInput",
    "ReorderImagesInput",
    "SetAltTextInput",
    "SetFocalPointInput",
    "UploadImageInput",
    # Output models
    "AddImagesOutput",
    "AssetValidationError",
    "ConversionResult",
    "FileOutcome",
    "GalleryOutput",
    "ImageOutput",
    "OrphanSweepOutput",
    "UploadOutput",
    # Config
    "AssetsConfig",
    "DEFAULT_ASSETS_CONFIG",
    # Ports
    "ClockPort",
    "ImageCodecPort",
    "ImageRepoPort",
    "ObjectStorePort",
    "PostRepoPort",
    "ProfileRepoPort",
]
