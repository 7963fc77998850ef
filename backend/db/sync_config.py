import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Integer

from .database import Base, utcnow


class SyncType(str, enum.Enum):
    WEBDAV = "webdav"
    S3 = "s3"


class SyncConfig(Base):
    """Remote backup target; at most one row per sync type."""
    __tablename__ = "sync_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sync_type = Column(
        Enum(SyncType, name="sync_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        unique=True,
    )
    enabled = Column(Boolean, nullable=False, default=True)
    config = Column(JSON, nullable=False, default=dict)
    last_sync_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "sync_type": SyncType(self.sync_type).value,
            "enabled": bool(self.enabled),
            "last_sync_time": self.last_sync_time,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
