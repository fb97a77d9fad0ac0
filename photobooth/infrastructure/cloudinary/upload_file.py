# photobooth/infrastructure/cloudinary/upload_file.py
from io import BytesIO
from typing import Optional

import cloudinary, cloudinary.uploader
from photobooth.config.settings import settings


# Configure once (supports CLOUDINARY_URL or split vars)
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True,
)

def upload_image_bytes(
    data: bytes,
    public_id: str,
    fmt: str,
    folder: str = settings.CLOUDINARY_FOLDER,
    overwrite: bool = True,
    tags: Optional[list[str]] = None,
) -> str:
    buf = BytesIO(data)
    res = cloudinary.uploader.upload(
        buf,
        resource_type="image",
        folder=folder,
        public_id=public_id,
        overwrite=overwrite,
        format=fmt,              # final extension in Cloudinary
        tags=tags or [],
    )
    return res["secure_url"]
