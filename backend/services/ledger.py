"""
Item stock ledger.

`adjust_quantity` is the only code path that changes Item.quantity, and it
always appends exactly one InventoryLog row in the same transaction, so the
log replayed from zero reproduces every stored quantity.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidQuantity, NotFound
from db.database import utcnow
from db.inventory.item import Item
from db.inventory.log import InventoryLog, OperationType
from db.location import Location
from schemas.items import ItemCreate, ItemFilter, ItemUpdate
from services.locations import location_exists

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "manual"


@dataclass
class AdjustResult:
    item: Item
    entry: InventoryLog


def _low_stock_clause():
    return and_(Item.min_quantity.is_not(None), Item.quantity <= Item.min_quantity)


async def _ensure_location(db: AsyncSession, location_id: Optional[int]) -> None:
    if location_id is not None and not await location_exists(db, location_id):
        raise NotFound(f"Location {location_id} not found")


async def get_item(db: AsyncSession, item_id: int) -> Item:
    res = await db.execute(select(Item).where(Item.id == item_id))
    item = res.scalar_one_or_none()
    if not item:
        raise NotFound(f"Item {item_id} not found")
    return item


async def list_items(db: AsyncSession, item_filter: Optional[ItemFilter] = None) -> List[Item]:
    """All items matching every supplied filter field; an empty filter returns everything."""
    stmt = select(Item)
    f = item_filter or ItemFilter()
    if f.category:
        stmt = stmt.where(Item.category == f.category)
    if f.location_id is not None:
        stmt = stmt.where(Item.location_id == f.location_id)
    if f.search:
        qq = f"%{f.search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Item.name).like(qq),
                func.lower(func.coalesce(Item.specifications, "")).like(qq),
            )
        )
    if f.low_stock_only:
        stmt = stmt.where(_low_stock_clause())
    res = await db.execute(stmt.order_by(func.lower(Item.name).asc(), Item.id.asc()))
    return list(res.scalars().all())


async def create_item(db: AsyncSession, payload: ItemCreate) -> Item:
    if payload.quantity < 0:
        raise InvalidQuantity("Initial quantity cannot be negative")
    await _ensure_location(db, payload.location_id)

    try:
        item = Item(
            name=payload.name,
            category=payload.category,
            specifications=payload.specifications,
            quantity=payload.quantity,
            unit=payload.unit,
            location_id=payload.location_id,
            min_quantity=payload.min_quantity,
            notes=payload.notes,
            image_path=payload.image_path,
        )
        db.add(item)
        await db.flush()

        # Opening stock is the first ledger entry
        if payload.quantity:
            db.add(
                InventoryLog(
                    item_id=item.id,
                    quantity_change=payload.quantity,
                    quantity_after=payload.quantity,
                    operation_type=OperationType.ADD,
                    source=DEFAULT_SOURCE,
                    notes="initial stock",
                )
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Created item %s (%r, quantity=%d)", item.id, item.name, item.quantity)
    return item


async def update_item(db: AsyncSession, item_id: int, payload: ItemUpdate) -> Item:
    item = await get_item(db, item_id)
    data = payload.model_dump(exclude_unset=True)

    if "quantity" in data:
        quantity = data.pop("quantity")
        if quantity is not None and quantity != item.quantity:
            raise InvalidQuantity("Quantity can only be changed through a quantity adjustment")
    if "name" in data and data["name"] is None:
        data.pop("name")
    if "location_id" in data:
        await _ensure_location(db, data["location_id"])

    for key, value in data.items():
        setattr(item, key, value)

    await db.commit()
    await db.refresh(item)
    return item


async def delete_item(db: AsyncSession, item_id: int) -> None:
    item = await get_item(db, item_id)
    await db.delete(item)
    await db.commit()
    logger.info("Deleted item %s (ledger history kept)", item_id)


def _check_direction(operation: OperationType, delta: int) -> None:
    if delta == 0:
        raise InvalidQuantity("Quantity change must not be zero")
    if operation is OperationType.ADD and delta < 0:
        raise InvalidQuantity("'add' requires a positive change")
    if operation is OperationType.REMOVE and delta > 0:
        raise InvalidQuantity("'remove' requires a negative change")


async def adjust_quantity(
    db: AsyncSession,
    item_id: int,
    delta: int,
    operation_type: str,
    source: Optional[str] = None,
    notes: Optional[str] = None,
) -> AdjustResult:
    """
    Apply `delta` to the item's stock and append the matching log entry.

    The stock update is a single guarded statement
    (quantity + delta >= 0), so concurrent adjustments can't lose updates or
    push stock below zero. Nothing is written when the guard fails.
    """
    try:
        operation = OperationType(operation_type)
    except ValueError:
        raise InvalidQuantity(f"Unknown operation type {operation_type!r}") from None
    _check_direction(operation, delta)

    try:
        res = await db.execute(
            update(Item)
            .where(Item.id == item_id, Item.quantity + delta >= 0)
            .values(quantity=Item.quantity + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            current = await db.execute(select(Item.quantity).where(Item.id == item_id))
            quantity = current.scalar_one_or_none()
            if quantity is None:
                raise NotFound(f"Item {item_id} not found")
            raise InvalidQuantity(
                f"Insufficient quantity: item {item_id} has {quantity}, change {delta} would leave {quantity + delta}"
            )

        fresh = await db.execute(
            select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
        )
        item = fresh.scalar_one()
        entry = InventoryLog(
            item_id=item_id,
            quantity_change=delta,
            quantity_after=item.quantity,
            operation_type=operation,
            source=source or DEFAULT_SOURCE,
            notes=notes,
        )
        db.add(entry)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Item %s %s %+d -> %d (source=%s)",
        item_id, operation.value, delta, item.quantity, entry.source,
    )
    return AdjustResult(item=item, entry=entry)


async def item_history(db: AsyncSession, item_id: int) -> List[InventoryLog]:
    """Ledger entries for an item, oldest first. Works for deleted items too."""
    res = await db.execute(
        select(InventoryLog)
        .where(InventoryLog.item_id == item_id)
        .order_by(InventoryLog.created_at.asc(), InventoryLog.id.asc())
    )
    entries = list(res.scalars().all())
    if not entries:
        await get_item(db, item_id)
    return entries


async def quantity_at(db: AsyncSession, item_id: int, at: datetime) -> int:
    """Stock level of an item at instant `at`, rebuilt from the ledger (0 before the first entry)."""
    if at.tzinfo is not None:
        at = at.astimezone(timezone.utc).replace(tzinfo=None)
    entries = await item_history(db, item_id)
    quantity = 0
    for entry in entries:
        if entry.created_at > at:
            break
        quantity = entry.quantity_after
    return quantity


async def inventory_summary(db: AsyncSession) -> dict:
    total_locations = (await db.execute(select(func.count(Location.id)))).scalar_one()
    total_items = (await db.execute(select(func.count(Item.id)))).scalar_one()
    low_stock = await list_items(db, ItemFilter(low_stock_only=True))
    return {
        "total_locations": int(total_locations or 0),
        "total_items": int(total_items or 0),
        "low_stock_count": len(low_stock),
        "low_stock_items": low_stock,
    }
