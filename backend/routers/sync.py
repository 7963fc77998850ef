from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from schemas.sync import S3ConfigIn, SyncConfigRead, SyncResult, WebDAVConfigIn
from services import sync as sync_service

router = APIRouter()


@router.get("/", response_model=List[SyncConfigRead])
async def list_sync_configs(db: AsyncSession = Depends(get_async_session)):
    # Credentials are never returned
    configs = await sync_service.list_configs(db)
    return [SyncConfigRead(**c.to_schema) for c in configs]


@router.put("/webdav", response_model=SyncConfigRead)
async def configure_webdav(payload: WebDAVConfigIn, db: AsyncSession = Depends(get_async_session)):
    cfg = await sync_service.configure_webdav(
        db, payload.url, payload.username, payload.password, payload.path
    )
    return SyncConfigRead(**cfg.to_schema)


@router.put("/s3", response_model=SyncConfigRead)
async def configure_s3(payload: S3ConfigIn, db: AsyncSession = Depends(get_async_session)):
    cfg = await sync_service.configure_s3(
        db,
        payload.bucket,
        payload.region,
        payload.access_key,
        payload.secret_key,
        payload.endpoint,
    )
    return SyncConfigRead(**cfg.to_schema)


@router.post("/{sync_type}/upload", response_model=SyncResult)
async def sync_upload(sync_type: str, db: AsyncSession = Depends(get_async_session)):
    return await sync_service.sync_upload(db, sync_type)


@router.post("/{sync_type}/download", response_model=SyncResult)
async def sync_download(sync_type: str, db: AsyncSession = Depends(get_async_session)):
    return await sync_service.sync_download(db, sync_type)
