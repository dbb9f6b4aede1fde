"""
Image inspection utility for uploads.
Checks that uploaded bytes are a readable image and builds the short
description stored as the image's metadata. Images are never re-encoded.
"""
import io
import logging
from typing import Optional
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def get_image_info(image_bytes: bytes) -> Optional[dict]:
    """
    Get basic information about an image.

    Args:
        image_bytes: Image file bytes

    Returns:
        dict: Image information (format, size, mode, bytes) or None if the
            bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        return {
            'format': image.format,
            'size': image.size,
            'mode': image.mode,
            'bytes': len(image_bytes)
        }
    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return None
    except Exception as e:
        logger.debug(f"Error getting image info: {str(e)}")
        return None


def describe_image(info: dict) -> str:
    """
    Short human readable description, e.g. "JPEG 1920x1080".
    """
    width, height = info['size']
    return f"{info['format']} {width}x{height}"
