from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


def _strip(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    return v.strip()


class WebDAVConfigIn(BaseModel):
    url: str
    username: str
    password: str
    path: str = ""

    @field_validator("url", "username", "path")
    @classmethod
    def _strip_fields(cls, v: str) -> str:
        return _strip(v) or ""


class S3ConfigIn(BaseModel):
    bucket: str
    region: str
    access_key: str
    secret_key: str
    endpoint: Optional[str] = None

    @field_validator("bucket", "region", "access_key")
    @classmethod
    def _strip_fields(cls, v: str) -> str:
        return _strip(v) or ""

    @field_validator("endpoint")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        v = _strip(v)
        return v or None


class SyncConfigRead(BaseModel):
    id: int
    sync_type: str
    enabled: bool
    last_sync_time: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SyncResult(BaseModel):
    success: bool
    message: str
    timestamp: str
