import logging
import os
from typing import Callable

from dotenv import load_dotenv
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..entities.record import StoredRecord
from ..exceptions import StorageQuotaExceededError

load_dotenv()

# Browsers give localStorage roughly five million characters per origin.
STORAGE_QUOTA_BYTES = int(os.getenv("STORAGE_QUOTA_BYTES", 5 * 1024 * 1024))


class RecordBackend:
    """Key/value records in the ``storage_records`` table with a size quota.

    Sizes are counted in characters of the stored JSON text, summed over
    every record. A write that would push the total past ``quota`` raises
    ``StorageQuotaExceededError`` and leaves the table untouched.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        quota: int | None = STORAGE_QUOTA_BYTES,
    ):
        self._session_factory = session_factory
        self.quota = quota

    def get(self, key: str) -> str | None:
        with self._session_factory() as session:
            record = session.get(StoredRecord, key)
            return record.value if record else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            if self.quota is not None:
                used = (
                    session.query(func.coalesce(func.sum(func.length(StoredRecord.value)), 0))
                    .filter(StoredRecord.key != key)
                    .scalar()
                )
                required = int(used) + len(value)
                if required > self.quota:
                    raise StorageQuotaExceededError(key, required, self.quota)

            record = session.get(StoredRecord, key)
            if record is None:
                session.add(StoredRecord(key=key, value=value))
            else:
                record.value = value  # type: ignore
            try:
                session.commit()
            except Exception as e:
                session.rollback()
                logging.error(f"Database commit failed for key {key}: {e}")
                raise

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            record = session.get(StoredRecord, key)
            if record is not None:
                session.delete(record)
                session.commit()

    def usage(self) -> int:
        with self._session_factory() as session:
            return int(
                session.query(
                    func.coalesce(func.sum(func.length(StoredRecord.value)), 0)
                ).scalar()
            )
