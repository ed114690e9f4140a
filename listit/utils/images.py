from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

MAX_LISTING_IMAGES = 10
MAX_MESSAGE_IMAGES = 4
# ~3MB of binary once base64 overhead is accounted for.
MAX_DATA_URL_LENGTH = int(3 * 1024 * 1024 * 1.6)


def bytes_from_data_uri(data_uri: str) -> bytes:
    if not data_uri.startswith("data:"):
        raise ValueError("not_data_uri")
    marker = ";base64,"
    idx = data_uri.find(marker)
    if idx < 0:
        raise ValueError("unsupported_data_uri")
    try:
        return base64.b64decode(data_uri[idx + len(marker):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("invalid_base64") from e


def is_decodable_image(raw: bytes) -> bool:
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        return False
    return True


def validate_images(images, *, max_count: int = MAX_LISTING_IMAGES, required: bool = True) -> str | None:
    """Return a user-facing error message, or None when every image is acceptable."""
    if images is None:
        images = []
    if not isinstance(images, list):
        return "Images must be a list of data URLs"
    if not images:
        return "At least one image is required" if required else None
    if len(images) > max_count:
        return f"Too many images (max {max_count})"
    for img in images:
        if not isinstance(img, str) or not img.startswith("data:image"):
            return "Each image must be a data URL"
        if len(img) > MAX_DATA_URL_LENGTH:
            return "Each image must be <= ~3MB"
        try:
            raw = bytes_from_data_uri(img)
        except ValueError:
            return "Each image must be base64 encoded"
        if not is_decodable_image(raw):
            return "Each image must be a valid image file"
    return None


def coerce_image_list(images=None, image_data=None) -> list:
    """Accept either an ``images`` array or a single legacy ``image_data`` value."""
    if isinstance(images, list):
        return images
    if image_data:
        return [image_data]
    return []
