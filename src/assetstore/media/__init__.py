from .derive import audio_duration, create_thumbnail, image_dimensions

__all__ = [
    "audio_duration",
    "create_thumbnail",
    "image_dimensions",
]
