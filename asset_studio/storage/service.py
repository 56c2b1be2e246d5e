import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Collection

from ..assets.model import StudioModel
from ..exceptions import StorageError, StorageFullError, StorageQuotaExceededError
from .backend import RecordBackend

HISTORY_COLLECTION = "generation-history"
GALLERY_COLLECTION = "gallery-collection"
FOLDERS_COLLECTION = "project-folders"
PROFILES_COLLECTION = "style-profiles"

# Unscoped keys, shared by every user of the storage namespace.
USER_ID_KEY = "user-id"
THEME_KEY = "theme"


@dataclass
class SaveResult:
    """Outcome of a save; truthy when the value was written.

    ``evicted_history_id`` names the history run removed from storage to
    make room, so callers can drop it from their own state.
    """

    ok: bool
    evicted_history_id: str | None = None

    def __bool__(self) -> bool:
        return self.ok


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, StudioModel):
        return value.to_record()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _has_favorite(record: dict) -> bool:
    return any(
        isinstance(image, dict) and image.get("isFavorite")
        for image in record.get("generatedImages") or []
    )


class Persister:
    """The only component that touches durable storage.

    Collections are stored as JSON under ``{collection}-{user_id}``. The
    persister never mutates caller state: it reports what it wrote (and what
    it evicted) and callers apply that to their own in-memory copies.
    """

    def __init__(self, backend: RecordBackend, user_id: str | None = None):
        self.backend = backend
        self.user_id = user_id
        self._migration_checked: set[str] = set()
        self._evict_listeners: list[Callable[[str], None]] = []

    def bind_user(self, user_id: str) -> None:
        self.user_id = user_id
        self._migration_checked.clear()

    def key_for(self, collection: str) -> str:
        if not self.user_id:
            raise StorageError("Storage is not bound to a user.")
        return f"{collection}-{self.user_id}"

    def on_evict(self, listener: Callable[[str], None]) -> None:
        self._evict_listeners.append(listener)

    # --- unscoped keys ---

    def load_raw(self, key: str) -> str | None:
        return self.backend.get(key)

    def save_raw(self, key: str, value: str) -> bool:
        try:
            self.backend.set(key, value)
            return True
        except StorageQuotaExceededError as e:
            logging.error(f"Storage quota exceeded while saving key: {key}: {e}")
        except Exception as e:
            logging.error(f"Failed to save key {key}: {e}", exc_info=True)
        return False

    # --- namespaced collections ---

    def load(self, collection: str) -> Any | None:
        """Load a collection, copying a legacy unscoped record over once."""
        key = self.key_for(collection)
        data = self._read_json(key, discard_malformed=True)
        if data is None and key not in self._migration_checked:
            data = self._migrate_legacy(collection, key)
        return data

    def save(
        self, collection: str, value: Any, protect: Collection[str] = ()
    ) -> SaveResult:
        """Write a collection. ``protect`` names history runs this write
        depends on; quota recovery never evicts them.
        """
        key = self.key_for(collection)
        try:
            self.backend.set(key, json.dumps(_to_jsonable(value)))
            return SaveResult(ok=True)
        except StorageQuotaExceededError as e:
            logging.warning(f"{e}; attempting to free space")
            return self._evict_and_retry(collection, key, value, protect)
        except Exception as e:
            logging.error(f"Failed to save key {key}: {e}", exc_info=True)
            return SaveResult(ok=False)

    def _read_json(self, key: str, discard_malformed: bool) -> Any | None:
        raw = self.backend.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logging.error(f"Error parsing stored record for key {key}: {e}")
            if discard_malformed:
                self.backend.delete(key)
            return None

    def _migrate_legacy(self, collection: str, key: str) -> Any | None:
        """Copy the legacy record over; the key is settled once the copy lands."""
        legacy = self._read_json(collection, discard_malformed=False)
        if not legacy:
            self._migration_checked.add(key)
            return None
        try:
            self.backend.set(key, json.dumps(legacy))
        except Exception as e:
            # Retried on the next load, which serves the legacy value again.
            logging.warning(f"Could not write migrated record {key}: {e}")
            return legacy
        self._migration_checked.add(key)
        logging.info(f"Migrated legacy record {collection} to {key}")
        return legacy

    def _evict_and_retry(
        self, collection: str, key: str, value: Any, protect: Collection[str]
    ) -> SaveResult:
        history_key = self.key_for(HISTORY_COLLECTION)
        stored_history = self._read_json(history_key, discard_malformed=False) or []
        stored_ids = {
            record.get("id") for record in stored_history if isinstance(record, dict)
        }

        if collection == HISTORY_COLLECTION:
            history = _to_jsonable(value)
        else:
            history = stored_history

        # Oldest first; only stored, unprotected runs with no favorited image.
        victim = next(
            (
                record.get("id")
                for record in history
                if isinstance(record, dict)
                and record.get("id") in stored_ids
                and record.get("id") not in protect
                and not _has_favorite(record)
            ),
            None,
        )
        if victim is None:
            logging.error(f"Storage full while saving key {key}; nothing eligible to evict")
            raise StorageFullError()

        remaining = [
            record
            for record in history
            if not (isinstance(record, dict) and record.get("id") == victim)
        ]
        logging.info(f"Evicting history item {victim} to free storage")

        if collection == HISTORY_COLLECTION:
            value = remaining
        else:
            try:
                self.backend.set(history_key, json.dumps(remaining))
            except Exception as e:
                logging.error(f"Failed to evict history item {victim}: {e}")
                return SaveResult(ok=False)
            self._notify_evicted(victim)

        try:
            self.backend.set(key, json.dumps(_to_jsonable(value)))
        except Exception as e:
            logging.error(f"Retry after eviction failed for key {key}: {e}")
            if collection == HISTORY_COLLECTION:
                return SaveResult(ok=False)
            return SaveResult(ok=False, evicted_history_id=victim)

        if collection == HISTORY_COLLECTION:
            self._notify_evicted(victim)
        return SaveResult(ok=True, evicted_history_id=victim)

    def _notify_evicted(self, history_id: str) -> None:
        for listener in self._evict_listeners:
            listener(history_id)
