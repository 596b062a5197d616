"""
Image inspection utility.
Identifies uploaded bytes as an image before they are sent to Cloudinary and
supplies fallback dimensions when the storage provider reports none.
"""
import io
import logging
from dataclasses import dataclass
from typing import Optional
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageInfo:
    format: Optional[str]
    width: int
    height: int
    bytes: int


def inspect_image(image_bytes: bytes) -> Optional[ImageInfo]:
    """
    Get basic information about an image.

    Args:
        image_bytes: Image file bytes

    Returns:
        ImageInfo: format (lowercase), width, height and byte size,
            or None if the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.verify()
            width, height = image.size
            return ImageInfo(
                format=image.format.lower() if image.format else None,
                width=width,
                height=height,
                bytes=len(image_bytes),
            )
    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return None
    except Exception as e:
        logger.debug(f"Error getting image info: {str(e)}")
        return None
