from .pipeline import AssetExporter

__all__ = [
    "AssetExporter",
]
