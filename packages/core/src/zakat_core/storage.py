"""Local key/value store for the worksheet snapshot and the price cache.

Each key is one JSON file under the storage directory. Writes go through a
temporary file and ``os.replace`` so a reader never sees a half-written
snapshot. Storage faults never reach the user: they are logged and the
caller falls back to defaults.
"""

import json
import math
import os
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from .aggregator import coerce_amount, coerce_flag
from .exceptions import StorageError
from .models import PersistedSnapshot, PriceCacheEntry

logger = structlog.get_logger()

SNAPSHOT_KEY = "zakat-calculator-data"
PRICE_CACHE_KEY = "zakat-silver-price"


def _sanitize_json_compat(value: Any) -> Any:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if isinstance(value, dict):
        return {key: _sanitize_json_compat(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_sanitize_json_compat(item) for item in value]
    return value


def snapshot_from_raw(raw: Any) -> Optional[PersistedSnapshot]:
    """Build a snapshot from decoded JSON, coercing every value.

    Returns None when the payload is not an object at all.
    """
    if not isinstance(raw, dict):
        return None
    data = raw.get("data")
    if not isinstance(data, dict):
        data = {}
    return PersistedSnapshot(
        data={str(k): float(coerce_amount(v)) for k, v in data.items()},
        nisab_price=float(coerce_amount(raw.get("nisabPrice"))),
        held_one_year=coerce_flag(raw.get("heldOneYear")),
        use_gregorian=coerce_flag(raw.get("useGregorian")),
    )


class LocalStore:
    """
    JSON file store, one file per key.

    ``get``/``set``/``remove`` swallow storage faults after logging them;
    ``read``/``write`` raise StorageError for callers that need to know.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    # -------------------------------------------------------------------------
    # Raising primitives
    # -------------------------------------------------------------------------

    def read(self, key: str) -> Optional[Any]:
        """Decode the value stored under ``key``; None when absent or empty.

        Raises:
            StorageError: If the file cannot be read or is not valid JSON.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            raw_text = path.read_text(encoding="utf-8").strip()
            if not raw_text:
                return None
            return json.loads(raw_text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(
                f"Cannot read {key}: {e}",
                key=key,
                path=str(path),
                operation="read",
            ) from e

    def write(self, key: str, value: Any) -> None:
        """Replace the value stored under ``key``.

        Raises:
            StorageError: If the directory or file cannot be written.
        """
        path = self.path_for(key)
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(_sanitize_json_compat(value), f, allow_nan=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(
                f"Cannot write {key}: {e}",
                key=key,
                path=str(path),
                operation="write",
            ) from e

    # -------------------------------------------------------------------------
    # Fault-tolerant accessors
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        try:
            return self.read(key)
        except StorageError as e:
            logger.warning("storage_read_failed", **e.details, error=e.message)
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            self.write(key, value)
            return True
        except StorageError as e:
            logger.warning("storage_write_failed", **e.details, error=e.message)
            return False

    def remove(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning("storage_remove_failed", key=key, path=str(path), error=str(e))
            return False

    # -------------------------------------------------------------------------
    # Worksheet snapshot
    # -------------------------------------------------------------------------

    def load_snapshot(self) -> Optional[PersistedSnapshot]:
        """Saved snapshot, or None if absent or unreadable."""
        return snapshot_from_raw(self.get(SNAPSHOT_KEY))

    def save_snapshot(self, snapshot: PersistedSnapshot) -> bool:
        """Overwrite the saved snapshot wholesale."""
        return self.set(SNAPSHOT_KEY, snapshot.model_dump(by_alias=True))

    def clear_snapshot(self) -> bool:
        return self.remove(SNAPSHOT_KEY)

    # -------------------------------------------------------------------------
    # Price cache
    # -------------------------------------------------------------------------

    def load_price_cache(self) -> Optional[PriceCacheEntry]:
        raw = self.get(PRICE_CACHE_KEY)
        if raw is None:
            return None
        try:
            return PriceCacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning("price_cache_invalid", error_count=e.error_count())
            return None

    def save_price_cache(self, entry: PriceCacheEntry) -> bool:
        return self.set(PRICE_CACHE_KEY, entry.model_dump(by_alias=True))
