"""
Store configuration: workspace locations, archive extensions, default assets.
"""

from .models import StoreSettings
from .store import SettingsStore

__all__ = [
    "StoreSettings",
    "SettingsStore",
]
