"""
Asset import: external files, resource library, canvas edits, object archives.
"""

from .pipeline import AssetImporter, CanvasPayload

__all__ = [
    "AssetImporter",
    "CanvasPayload",
]
