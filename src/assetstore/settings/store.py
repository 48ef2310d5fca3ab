"""
JSON persistence for StoreSettings.

The config file holds `StoreSettings.to_persist_dict()`. Reads never fail: a
missing or unreadable file yields defaults. Writes go through a temp file and
an atomic replace.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable

from ..fs.files import atomic_write_bytes
from .models import StoreSettings


logger = logging.getLogger(__name__)

SettingsMutator = Callable[[StoreSettings], StoreSettings]

# Keys whose values are checked by a StoreSettings setter instead of the
# tolerant persist-dict parser.
_VALIDATED_SETTERS: dict[str, Callable[[StoreSettings, Any], None]] = {
    "max_concurrent_assets": StoreSettings.set_max_concurrent_assets,
    "thumbnail_size": StoreSettings.set_thumbnail_size,
}


class SettingsStore:
    """
    Reads and writes the store configuration file.

    Usage:
        store = SettingsStore(path=Path("data/config.json"))
        settings = store.load()
        store.set_value(key="thumbnail_size", value=128)
    """

    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable settings file %s: %s", self._path, exc)
            return None
        if not isinstance(raw, dict):
            logger.warning("ignoring settings file %s: top level is not an object", self._path)
            return None
        return raw

    def load(self) -> StoreSettings:
        with self._lock:
            raw = self._read_raw()
            return StoreSettings() if raw is None else StoreSettings.from_persist_dict(raw)

    def save(self, settings: StoreSettings) -> None:
        text = json.dumps(settings.to_persist_dict(), ensure_ascii=False, indent=2) + "\n"
        with self._lock:
            atomic_write_bytes(self._path, text.encode("utf-8"))

    def update(self, *, mutator: SettingsMutator) -> StoreSettings:
        with self._lock:
            updated = mutator(self.load())
            if not isinstance(updated, StoreSettings):
                raise TypeError("mutator must return StoreSettings")
            self.save(updated)
            return updated

    def set_value(self, *, key: str, value: Any) -> StoreSettings:
        """
        Change one persisted setting.

        Bounded numeric settings go through their StoreSettings setter, so an
        invalid value raises and nothing is written. Other keys are normalized
        by the persist-dict parser (e.g. extensions gain a leading dot).

        Raises:
            KeyError: If `key` is not a persisted setting.
            ValueError: If a validated setting rejects `value`.
        """
        def mutate(settings: StoreSettings) -> StoreSettings:
            setter = _VALIDATED_SETTERS.get(key)
            if setter is not None:
                setter(settings, value)
                return settings

            data = settings.to_persist_dict()
            if key == "version" or key not in data:
                raise KeyError(key)
            data[key] = value
            return StoreSettings.from_persist_dict(data)

        return self.update(mutator=mutate)
