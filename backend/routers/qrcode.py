from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import PNG_MIME, to_data_url
from db.database import get_async_session
from schemas.qrcode import BatchQRRequest, LocationQRCode
from services import qr_identity

router = APIRouter()


def _qr_payload(loc, code: str, size: Optional[int]) -> LocationQRCode:
    return LocationQRCode(
        id=loc.id,
        name=loc.name,
        qr_code_id=code,
        qr_data=to_data_url(qr_identity.render(code, size), PNG_MIME),
    )


@router.post("/locations/{location_id}", response_model=LocationQRCode)
async def generate_location_qr(
    location_id: int,
    size: Optional[int] = Query(None, ge=21, le=2048, description="Output edge length in pixels"),
    db: AsyncSession = Depends(get_async_session),
):
    """Assigns the location a QR code on first call; later calls return the same code."""
    code = await qr_identity.assign(db, location_id)
    loc = await qr_identity.resolve(db, code)
    return _qr_payload(loc, code, size)


@router.post("/batch", response_model=List[LocationQRCode])
async def generate_batch_qr(
    payload: BatchQRRequest,
    size: Optional[int] = Query(None, ge=21, le=2048),
    db: AsyncSession = Depends(get_async_session),
):
    assigned = await qr_identity.assign_many(db, payload.location_ids)
    return [_qr_payload(loc, code, size) for loc, code in assigned]
