"""
QR identity for locations.

A location's QR payload is an opaque `LOC-<hex>` string stored on the
location row itself; this module only assigns it (once), resolves it back
and renders it as a PNG.
"""
import logging
import secrets
from io import BytesIO
from typing import List, Optional, Tuple

import qrcode
from PIL import Image
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import NotFound
from db.location import Location

logger = logging.getLogger(__name__)

QR_PREFIX = "LOC-"
MAX_ASSIGN_ATTEMPTS = 5


def new_code() -> str:
    return f"{QR_PREFIX}{secrets.token_hex(8).upper()}"


async def _get_location(db: AsyncSession, location_id: int) -> Location:
    res = await db.execute(select(Location).where(Location.id == location_id))
    loc = res.scalar_one_or_none()
    if not loc:
        raise NotFound(f"Location {location_id} not found")
    return loc


async def assign(db: AsyncSession, location_id: int) -> str:
    """
    Return the location's QR code, generating and persisting one if it has none.

    The write is a conditional UPDATE (only while qr_code_id IS NULL), so two
    callers racing on the same location end up with the same code, and the
    unique index turns a cross-location collision into a retry.
    """
    loc = await _get_location(db, location_id)
    if loc.qr_code_id:
        return loc.qr_code_id

    for attempt in range(1, MAX_ASSIGN_ATTEMPTS + 1):
        code = new_code()
        try:
            res = await db.execute(
                update(Location)
                .where(Location.id == location_id, Location.qr_code_id.is_(None))
                .values(qr_code_id=code)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except DBIntegrityError:
            await db.rollback()
            logger.warning("QR code collision on attempt %d for location %s, retrying", attempt, location_id)
            continue

        if res.rowcount == 1:
            logger.info("Assigned QR code %s to location %s", code, location_id)
            await db.refresh(loc)
            return code

        # Someone else assigned first (or the row is gone); report what is stored now
        db.expire(loc)
        current = await _get_location(db, location_id)
        if current.qr_code_id:
            return current.qr_code_id

    raise RuntimeError(f"Could not assign a unique QR code to location {location_id}")


async def resolve(db: AsyncSession, code: str) -> Location:
    """Exact-match lookup of the location holding `code`; no fuzzy matching."""
    code = (code or "").strip()
    if not code:
        raise NotFound("QR code is empty")
    res = await db.execute(select(Location).where(Location.qr_code_id == code))
    loc = res.scalar_one_or_none()
    if not loc:
        raise NotFound(f"No location has QR code {code!r}")
    return loc


def make_image(code: str, size: Optional[int] = None) -> Image.Image:
    """Build the QR image for `code`; `size` rescales to a size x size square."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=settings.qr_box_size,
        border=settings.qr_border,
    )
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image().convert("L")
    if size:
        img = img.resize((size, size), Image.NEAREST)
    return img


def render(code: str, size: Optional[int] = None) -> bytes:
    """PNG bytes for `code`. Pure: the same code and size always give the same bytes."""
    buffer = BytesIO()
    make_image(code, size).save(buffer, format="PNG")
    return buffer.getvalue()


async def assign_many(db: AsyncSession, location_ids: List[int]) -> List[Tuple[Location, str]]:
    """
    Assign codes for a batch. Ids that don't resolve are skipped (and logged)
    rather than failing the whole batch; repeated ids are returned once.
    """
    out = []
    for location_id in dict.fromkeys(location_ids):
        try:
            code = await assign(db, location_id)
        except NotFound:
            logger.warning("Skipping unknown location %s in QR batch", location_id)
            continue
        out.append((await _get_location(db, location_id), code))
    return out
