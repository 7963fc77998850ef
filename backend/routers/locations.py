from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from schemas.locations import (
    LocationCreate,
    LocationDeleteResult,
    LocationNode,
    LocationRead,
    LocationUpdate,
)
from services import locations as location_service

router = APIRouter()


@router.get("/", response_model=List[LocationRead])
async def list_locations(db: AsyncSession = Depends(get_async_session)):
    locations = await location_service.list_locations(db)
    return [LocationRead(**loc.to_schema) for loc in locations]


@router.get("/tree", response_model=List[LocationNode])
async def location_tree(db: AsyncSession = Depends(get_async_session)):
    return await location_service.location_tree(db)


@router.get("/by-qr/{code}", response_model=LocationRead)
async def get_location_by_qr(code: str, db: AsyncSession = Depends(get_async_session)):
    loc = await location_service.get_location_by_qr(db, code)
    return LocationRead(**loc.to_schema)


@router.get("/{location_id}", response_model=LocationRead)
async def get_location(location_id: int, db: AsyncSession = Depends(get_async_session)):
    loc = await location_service.get_location(db, location_id)
    return LocationRead(**loc.to_schema)


@router.get("/{location_id}/path", response_model=List[LocationRead])
async def location_path(location_id: int, db: AsyncSession = Depends(get_async_session)):
    """Breadcrumb from the root shelf down to this location."""
    path = await location_service.location_path(db, location_id)
    return [LocationRead(**loc.to_schema) for loc in path]


@router.post("/", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
async def create_location(payload: LocationCreate, db: AsyncSession = Depends(get_async_session)):
    loc = await location_service.create_location(db, payload)
    return LocationRead(**loc.to_schema)


@router.patch("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: int,
    payload: LocationUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    loc = await location_service.update_location(db, location_id, payload)
    return LocationRead(**loc.to_schema)


@router.delete("/{location_id}", response_model=LocationDeleteResult)
async def delete_location(location_id: int, db: AsyncSession = Depends(get_async_session)):
    """
    Deletes the location and its whole subtree. Items that were stored there
    are kept without a location and listed in `detached_item_ids`.
    """
    result = await location_service.delete_location(db, location_id)
    return LocationDeleteResult(
        deleted_location_ids=result.deleted_location_ids,
        detached_item_ids=result.detached_item_ids,
    )
