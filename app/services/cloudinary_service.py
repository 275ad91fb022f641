import io
import os
import re
import logging
from pathlib import PurePath
from typing import Optional

from fastapi import HTTPException, status
import cloudinary
from cloudinary.uploader import upload as cld_upload

logger = logging.getLogger(__name__)

# Configure once
cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
    secure=True,
)

UPLOAD_ROOT = os.getenv("CLOUDINARY_UPLOAD_FOLDER", "screenshots")


def screenshot_key(uid: str, filename: Optional[str], millis: int) -> tuple[str, str]:
    """
    Returns (folder, public_id) for a proof screenshot.
    Namespaced by uid and upload time so two uploads never collide.
    The client filename stem is reduced to word characters, dots and dashes.
    """
    stem = PurePath(filename or "").stem.strip()
    stem = re.sub(r"[^\w.-]", "_", stem).strip(".") or "screenshot"
    return f"{UPLOAD_ROOT}/{uid}", f"{millis}-{stem}"


def upload_screenshot(data: bytes, folder: str, public_id: str) -> tuple[str, Optional[str]]:
    """
    Uploads image bytes to Cloudinary. Returns (secure_url, public_id).
    Blocking: call it from a worker thread.
    """
    try:
        res = cld_upload(
            io.BytesIO(data),
            folder=folder,
            public_id=public_id,
            overwrite=False,
            resource_type="image",
        )
        url = res.get("secure_url")
        if not url:
            raise RuntimeError("Cloudinary did not return secure_url")
        logger.info("Uploaded screenshot %s/%s (%d bytes)", folder, public_id, len(data))
        return url, res.get("public_id")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Upload failed: {e}")
