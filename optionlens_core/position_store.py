# optionlens_core/position_store.py
"""
Ordered, id-addressable collection of raw positions.

The store keeps positions exactly as entered (numeric fields are text) and writes the
whole list as JSON to an injected key-value backend after every mutation. Any mutable
mapping of str -> str works as a backend; JsonFileBackend keeps the mapping in a file
so the watchlist survives restarts.
"""

import copy
import json
from collections.abc import MutableMapping
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from loguru import logger

from optionlens_core.helper import CSV_FIELDS, new_position_id, normalize_option_type

DEFAULT_STORAGE_KEY = "optionsRows_v4"

POSITION_FIELDS = ["id"] + CSV_FIELDS


def empty_position() -> Dict[str, str]:
    """A new row with the default sample contract."""
    return {
        "id": new_position_id(),
        "ticker": "CIFR",
        "contract": "CIFR Dec 19 2025 15C",
        "expiration": "2025-12-19",
        "strike": "15",
        "type": "C",
        "contracts": "1",
        "entry_price": "1.00",
        "current_price": "0.90",
        "notes": "",
    }


class JsonFileBackend(MutableMapping):
    """Key-value mapping persisted as a single JSON object on disk."""

    def __init__(self, path):
        self.path = Path(path)
        self._data: Dict[str, str] = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not read store file {self.path}: {e}; starting empty")
                data = {}
            if not isinstance(data, dict):
                logger.warning(f"Store file {self.path} does not hold a JSON object; starting empty")
                data = {}
            self._data = data

    def _flush(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str):
        self._data[key] = value
        self._flush()

    def __delitem__(self, key: str):
        del self._data[key]
        self._flush()

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


def _coerce_position(raw: dict) -> Dict[str, str]:
    position = {field: "" if raw.get(field) is None else str(raw.get(field)) for field in POSITION_FIELDS}
    if not position["id"]:
        position["id"] = new_position_id()
    position["type"] = normalize_option_type(position["type"])
    return position


class PositionStore:
    """
    Holds the ordered list of raw positions.

    Args:
        backend: mutable mapping used for persistence (defaults to an in-memory dict)
        storage_key: key under which the JSON list is stored
    """

    def __init__(self, backend: Optional[MutableMapping] = None, storage_key: str = DEFAULT_STORAGE_KEY):
        self.backend = backend if backend is not None else {}
        self.storage_key = storage_key
        self._positions: List[Dict[str, str]] = self._load()

    def _load(self) -> List[Dict[str, str]]:
        payload = self.backend.get(self.storage_key)
        if payload is None:
            logger.info("No saved positions found, starting with a sample row")
            return [empty_position()]
        try:
            rows = json.loads(payload)
            if not isinstance(rows, list):
                raise ValueError(f"expected a list, got {type(rows).__name__}")
            positions = [_coerce_position(r) for r in rows if isinstance(r, dict)]
        except (ValueError, TypeError) as e:
            logger.warning(f"Saved positions under '{self.storage_key}' are unreadable ({e}), resetting")
            return [empty_position()]
        logger.info(f"Loaded {len(positions)} positions from '{self.storage_key}'")
        return positions

    def _save(self):
        self.backend[self.storage_key] = json.dumps(self._positions)
        logger.debug(f"Saved {len(self._positions)} positions")

    def __len__(self) -> int:
        return len(self._positions)

    def positions(self) -> List[Dict[str, str]]:
        """Snapshot of the current positions (copies, safe to hand to the engine)."""
        return copy.deepcopy(self._positions)

    def get(self, position_id: str) -> Optional[Dict[str, str]]:
        for p in self._positions:
            if p["id"] == position_id:
                return dict(p)
        return None

    def append(self, position: Optional[dict] = None) -> Dict[str, str]:
        new = _coerce_position(position) if position is not None else empty_position()
        self._positions.append(new)
        self._save()
        return dict(new)

    def remove(self, position_id: str):
        remaining = [p for p in self._positions if p["id"] != position_id]
        if len(remaining) == len(self._positions):
            logger.debug(f"remove: no position with id {position_id}")
            return
        self._positions = remaining
        self._save()

    def patch(self, position_id: str, **changes):
        unknown = set(changes) - set(CSV_FIELDS)
        if unknown:
            raise ValueError(f"Unknown position fields: {sorted(unknown)}")
        for p in self._positions:
            if p["id"] == position_id:
                p.update({k: "" if v is None else str(v) for k, v in changes.items()})
                if "type" in changes:
                    p["type"] = normalize_option_type(p["type"])
                self._save()
                return
        logger.debug(f"patch: no position with id {position_id}")

    def replace_all(self, positions):
        self._positions = [_coerce_position(p) for p in positions]
        self._save()
        logger.info(f"Replaced watchlist with {len(self._positions)} positions")
