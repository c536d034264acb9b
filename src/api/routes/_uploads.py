from fastapi import UploadFile

from src.components.assets import ImagePayload


async def to_payload(upload: UploadFile) -> ImagePayload:
    """Read a multipart file into the asset manager's payload."""
    return ImagePayload(
        data=await upload.read(),
        filename=upload.filename or "image",
        content_type=upload.content_type or "application/octet-stream",
    )
