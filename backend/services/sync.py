"""
Remote backup of the whole store.

Each backend (WebDAV, S3) moves one JSON snapshot object with a plain PUT/GET.
The HTTP and boto3 calls block, so they run in a worker thread; one
process-wide lock keeps two sync runs from interleaving.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import InvalidConfig, NotFound
from db.database import utcnow
from db.sync_config import SyncConfig, SyncType
from schemas.sync import SyncResult
from services.snapshot import export_snapshot, import_snapshot

logger = logging.getLogger(__name__)

_sync_lock = asyncio.Lock()

TRANSPORT_ERRORS = (requests.RequestException, BotoCoreError, ClientError, OSError)


def parse_sync_type(value) -> SyncType:
    try:
        return SyncType(value)
    except ValueError:
        raise InvalidConfig(f"Unknown sync type {value!r}") from None


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise InvalidConfig(f"All required fields must be filled (missing: {', '.join(missing)})")


async def _upsert_config(db: AsyncSession, sync_type: SyncType, config: Dict[str, Any]) -> SyncConfig:
    res = await db.execute(select(SyncConfig).where(SyncConfig.sync_type == sync_type))
    row = res.scalar_one_or_none()
    if row is None:
        row = SyncConfig(sync_type=sync_type, config=config, enabled=True)
        db.add(row)
    else:
        row.config = config
        row.enabled = True
    await db.commit()
    await db.refresh(row)
    logger.info("Configured %s sync", sync_type.value)
    return row


async def configure_webdav(
    db: AsyncSession, url: str, username: str, password: str, path: str = ""
) -> SyncConfig:
    _require(url=url, username=username, password=password)
    if not url.lower().startswith(("http://", "https://")):
        raise InvalidConfig("WebDAV url must start with http:// or https://")
    return await _upsert_config(
        db,
        SyncType.WEBDAV,
        {"url": url, "username": username, "password": password, "path": path or ""},
    )


async def configure_s3(
    db: AsyncSession,
    bucket: str,
    region: str,
    access_key: str,
    secret_key: str,
    endpoint: Optional[str] = None,
) -> SyncConfig:
    _require(bucket=bucket, region=region, access_key=access_key, secret_key=secret_key)
    return await _upsert_config(
        db,
        SyncType.S3,
        {
            "bucket": bucket,
            "region": region,
            "access_key": access_key,
            "secret_key": secret_key,
            "endpoint": endpoint or None,
        },
    )


async def get_config(db: AsyncSession, sync_type: SyncType) -> SyncConfig:
    res = await db.execute(select(SyncConfig).where(SyncConfig.sync_type == sync_type))
    row = res.scalar_one_or_none()
    if row is None or not row.enabled:
        raise NotFound(f"{sync_type.value} sync is not configured")
    return row


async def _load_transport_config(db: AsyncSession, sync_type: SyncType) -> Dict[str, Any]:
    # Copy the settings out and end the read so no lock is held during transfer
    config = dict((await get_config(db, sync_type)).config)
    await db.commit()
    return config


async def list_configs(db: AsyncSession) -> List[SyncConfig]:
    res = await db.execute(select(SyncConfig).order_by(SyncConfig.id))
    return list(res.scalars().all())


# --- WebDAV ---

def webdav_object_url(config: Dict[str, Any]) -> str:
    parts = [config["url"].rstrip("/")]
    path = (config.get("path") or "").strip("/")
    if path:
        parts.append(path)
    parts.append(settings.sync_object_name)
    return "/".join(parts)


def _webdav_put(config: Dict[str, Any], body: bytes) -> None:
    resp = requests.put(
        webdav_object_url(config),
        data=body,
        auth=(config["username"], config["password"]),
        headers={"Content-Type": "application/json"},
        timeout=settings.sync_timeout,
    )
    resp.raise_for_status()


def _webdav_get(config: Dict[str, Any]) -> bytes:
    resp = requests.get(
        webdav_object_url(config),
        auth=(config["username"], config["password"]),
        timeout=settings.sync_timeout,
    )
    resp.raise_for_status()
    return resp.content


# --- S3 ---

def _s3_client(config: Dict[str, Any]):
    return boto3.client(
        "s3",
        region_name=config["region"],
        aws_access_key_id=config["access_key"],
        aws_secret_access_key=config["secret_key"],
        endpoint_url=config.get("endpoint") or None,
    )


def _s3_put(config: Dict[str, Any], body: bytes) -> None:
    _s3_client(config).put_object(
        Bucket=config["bucket"],
        Key=settings.sync_object_name,
        Body=body,
        ContentType="application/json",
    )


def _s3_get(config: Dict[str, Any]) -> bytes:
    obj = _s3_client(config).get_object(Bucket=config["bucket"], Key=settings.sync_object_name)
    return obj["Body"].read()


TRANSPORTS: Dict[SyncType, Tuple[Callable[[Dict[str, Any], bytes], None], Callable[[Dict[str, Any]], bytes]]] = {
    SyncType.WEBDAV: (_webdav_put, _webdav_get),
    SyncType.S3: (_s3_put, _s3_get),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _mark_synced(db: AsyncSession, sync_type: SyncType) -> None:
    await db.execute(
        update(SyncConfig)
        .where(SyncConfig.sync_type == sync_type)
        .values(last_sync_time=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def sync_upload(db: AsyncSession, sync_type) -> SyncResult:
    st = parse_sync_type(sync_type)
    put, _get = TRANSPORTS[st]
    async with _sync_lock:
        config = await _load_transport_config(db, st)
        snapshot = await export_snapshot(db)
        body = json.dumps(snapshot, sort_keys=True).encode("utf-8")
        try:
            await asyncio.to_thread(put, config, body)
        except TRANSPORT_ERRORS as e:
            logger.error("Upload sync via %s failed: %s", st.value, e)
            return SyncResult(success=False, message=f"Upload sync via {st.value} failed: {e}", timestamp=_now())
        await _mark_synced(db, st)

    logger.info("Uploaded snapshot (%d bytes) via %s", len(body), st.value)
    return SyncResult(success=True, message=f"Upload sync via {st.value} completed", timestamp=_now())


async def sync_download(db: AsyncSession, sync_type) -> SyncResult:
    """
    Fetch the remote snapshot and replace the local store with it.

    A snapshot that fails validation raises (InvalidConfig / IntegrityError)
    and leaves local data untouched.
    """
    st = parse_sync_type(sync_type)
    _put, get = TRANSPORTS[st]
    async with _sync_lock:
        config = await _load_transport_config(db, st)
        try:
            body = await asyncio.to_thread(get, config)
        except TRANSPORT_ERRORS as e:
            logger.error("Download sync via %s failed: %s", st.value, e)
            return SyncResult(success=False, message=f"Download sync via {st.value} failed: {e}", timestamp=_now())

        try:
            data = json.loads(body)
        except ValueError as e:
            raise InvalidConfig(f"Remote snapshot is not valid JSON: {e}") from None
        counts = await import_snapshot(db, data)
        await _mark_synced(db, st)

    logger.info("Downloaded snapshot via %s: %s", st.value, counts)
    return SyncResult(success=True, message=f"Download sync via {st.value} completed", timestamp=_now())
