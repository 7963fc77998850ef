from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from schemas.items import (
    InventoryLogRead,
    InventorySummary,
    ItemCreate,
    ItemFilter,
    ItemRead,
    ItemUpdate,
    QuantityAt,
    QuantityChange,
    QuantityChangeResult,
)
from services import ledger

router = APIRouter()


@router.get("/", response_model=List[ItemRead])
async def list_items(
    category: Optional[str] = Query(None),
    location_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive match on name and specifications"),
    low_stock_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
):
    item_filter = ItemFilter(
        category=category,
        location_id=location_id,
        search=search,
        low_stock_only=low_stock_only,
    )
    items = await ledger.list_items(db, item_filter)
    return [ItemRead(**it.to_schema) for it in items]


@router.get("/summary", response_model=InventorySummary)
async def inventory_summary(db: AsyncSession = Depends(get_async_session)):
    summary = await ledger.inventory_summary(db)
    return InventorySummary(
        total_locations=summary["total_locations"],
        total_items=summary["total_items"],
        low_stock_count=summary["low_stock_count"],
        low_stock_items=[ItemRead(**it.to_schema) for it in summary["low_stock_items"]],
    )


@router.get("/{item_id}", response_model=ItemRead)
async def get_item(item_id: int, db: AsyncSession = Depends(get_async_session)):
    item = await ledger.get_item(db, item_id)
    return ItemRead(**item.to_schema)


@router.post("/", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(payload: ItemCreate, db: AsyncSession = Depends(get_async_session)):
    item = await ledger.create_item(db, payload)
    return ItemRead(**item.to_schema)


@router.patch("/{item_id}", response_model=ItemRead)
async def update_item(
    item_id: int,
    payload: ItemUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    item = await ledger.update_item(db, item_id, payload)
    return ItemRead(**item.to_schema)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: int, db: AsyncSession = Depends(get_async_session)):
    await ledger.delete_item(db, item_id)
    return None


@router.post("/{item_id}/quantity", response_model=QuantityChangeResult)
async def update_quantity(
    item_id: int,
    payload: QuantityChange,
    db: AsyncSession = Depends(get_async_session),
):
    result = await ledger.adjust_quantity(
        db,
        item_id,
        payload.change,
        payload.operation_type,
        source=payload.source,
        notes=payload.notes,
    )
    return QuantityChangeResult(
        item_id=result.item.id,
        quantity=result.item.quantity,
        is_low_stock=result.item.is_low_stock,
        log=InventoryLogRead(**result.entry.to_schema),
    )


@router.get("/{item_id}/history", response_model=List[InventoryLogRead])
async def item_history(item_id: int, db: AsyncSession = Depends(get_async_session)):
    entries = await ledger.item_history(db, item_id)
    return [InventoryLogRead(**e.to_schema) for e in entries]


@router.get("/{item_id}/quantity-at", response_model=QuantityAt)
async def quantity_at(
    item_id: int,
    at: datetime = Query(..., description="ISO-8601 instant; naive values are read as UTC"),
    db: AsyncSession = Depends(get_async_session),
):
    quantity = await ledger.quantity_at(db, item_id, at)
    return QuantityAt(item_id=item_id, at=at, quantity=quantity)
