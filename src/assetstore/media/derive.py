"""
Derived media data: thumbnails, image dimensions, audio duration.

Pillow handles raster images; mutagen reads audio stream info.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Union

from mutagen import File as MutagenFile, MutagenError
from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import AssetNotFoundError, FormatError
from ..project.models import Dimension


ImageSource = Union[Path, str, bytes]

THUMBNAIL_FORMAT = "PNG"


def _open_image(source: ImageSource) -> Image.Image:
    try:
        if isinstance(source, (bytes, bytearray)):
            return Image.open(io.BytesIO(source))
        return Image.open(Path(source))
    except FileNotFoundError as exc:
        raise AssetNotFoundError(f"image not found: {source}", path=str(source)) from exc
    except (UnidentifiedImageError, OSError) as exc:
        label = "<bytes>" if isinstance(source, (bytes, bytearray)) else str(source)
        raise FormatError(f"unreadable image data: {label}") from exc


def create_thumbnail(source: ImageSource, size: int) -> bytes:
    """
    Render a PNG thumbnail that fits in a size x size box.

    Args:
        source: Image path or encoded image bytes.
        size: Bounding box edge in pixels.

    Returns:
        Encoded PNG bytes.
    """
    with _open_image(source) as img:
        img.load()
        mode = "RGBA" if img.mode in ("RGBA", "LA", "P") else "RGB"
        thumb = ImageOps.contain(img.convert(mode), (size, size), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    thumb.save(buffer, format=THUMBNAIL_FORMAT)
    return buffer.getvalue()


def image_dimensions(path: Path | str) -> Dimension:
    with _open_image(path) as img:
        width, height = img.size
    return Dimension(width=width, height=height)


def audio_duration(path: Path | str) -> float:
    """
    Read the duration of an audio file in seconds, rounded to one decimal.

    Unknown or unparseable formats yield 0.0.
    """
    path = Path(path)
    if not path.exists():
        raise AssetNotFoundError(f"sound not found: {path}", path=path)
    try:
        audio = MutagenFile(str(path))
    except MutagenError:
        return 0.0
    if audio is None or not hasattr(audio.info, "length"):
        return 0.0
    return round(float(audio.info.length or 0.0), 1)
