"""Session-scoped pending-reservation tracker.

After a successful submission the reservation id and payment session id
are written to a session store before the guest is sent to checkout, so an
interrupted redirect can be reconciled later. Markers never expire here;
a marker lives until it is overwritten, cleared, or the session ends.
"""

import json
import os
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from staybook.models.booking import PendingReservationMarker
from staybook.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "pendingReservation"


# =============================================================================
# Key-Value Stores
# =============================================================================


class KeyValueStore(Protocol):
    """Minimal string key-value store (session storage semantics)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemorySessionStore:
    """Process-local store; the session ends with the process."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSessionStore:
    """
    Store backed by one JSON file per session.

    The default session is the parent process (the invoking shell), so
    consecutive CLI commands from one terminal share a session.
    """

    def __init__(self, session_dir: str | Path, session_id: str | None = None):
        self.session_dir = Path(session_dir)
        self.session_id = session_id or f"shell-{os.getppid()}"
        self.path = self.session_dir / f"{self.session_id}.json"

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("session_store_corrupt", path=str(self.path), error=str(e))
            return {}
        except OSError as e:
            logger.warning("session_store_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self.session_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


# =============================================================================
# Tracker
# =============================================================================


class PendingReservationTracker:
    """Records the last submitted reservation + payment session pair."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STORAGE_KEY):
        self.store = store
        self.key = key

    def record(self, marker: PendingReservationMarker) -> None:
        """Store the marker, replacing any previous one."""
        self.store.set(self.key, marker.model_dump_json(by_alias=True))
        logger.info(
            "pending_reservation_recorded",
            reservation_id=marker.reservation_id,
            payment_session_id=marker.payment_session_id,
        )

    def peek(self) -> PendingReservationMarker | None:
        """Return the stored marker without removing it."""
        raw = self.store.get(self.key)
        if raw is None:
            return None

        try:
            return PendingReservationMarker.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("pending_reservation_unreadable", key=self.key, error=str(e))
            return None

    def clear(self) -> None:
        self.store.delete(self.key)
