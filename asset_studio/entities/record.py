from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func

from ..database.core import Base


class StoredRecord(Base):
    __tablename__ = "storage_records"

    # Namespaced ("generation-history-<user>") or unscoped ("user-id") key
    key = Column(String, primary_key=True, index=True)
    # JSON text, counted against the storage quota
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<StoredRecord(key={self.key}, size={len(self.value or '')})>"
