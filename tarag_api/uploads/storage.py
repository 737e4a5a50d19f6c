import logging
import os
import time
import uuid
from pathlib import Path

from fastapi import UploadFile

from tarag_api.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

ROOM_IMAGES_FOLDER = "roomImages"


class RoomImageStorage:
    """Keeps room images on local disk under <uploads>/roomImages."""

    def __init__(self, uploads_dir: str, max_bytes: int = 10 * 1024 * 1024, public_prefix: str = "/uploads"):
        self.root = Path(uploads_dir) / ROOM_IMAGES_FOLDER
        self.max_bytes = max_bytes
        self.public_prefix = f"{public_prefix.rstrip('/')}/{ROOM_IMAGES_FOLDER}"
        os.makedirs(self.root, exist_ok=True)

    async def save(self, upload: UploadFile, room_id: str) -> str:
        ext = ALLOWED_IMAGE_TYPES.get(upload.content_type or "")
        if ext is None:
            raise ValidationError("Invalid file type. Only images are allowed.")

        data = await upload.read()
        if not data:
            raise ValidationError("Image file is required")
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image is too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB")

        safe_room_id = room_id.replace("/", "_")
        filename = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{safe_room_id}{ext}"
        with open(self.root / filename, "wb") as f:
            f.write(data)

        logger.info(f"🖼️ Stored room image {filename} ({len(data)} bytes)")
        return f"{self.public_prefix}/{filename}"

    def delete(self, image_ref: str) -> bool:
        if not image_ref:
            return False
        path = self.root / os.path.basename(image_ref)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"🗑️ Deleted room image {path.name}")
        return True
