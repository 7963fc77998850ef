import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

"""
Seed a demo storage tree (shelves, boxes, compartments) and some items.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Re-running is safe: existing locations and items (matched by name) are reused.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.logging_config import configure_logging
from db.database import async_session_maker, create_db_and_tables
from db.inventory.item import Item
from db.location import Location
from schemas.items import ItemCreate
from schemas.locations import LocationCreate
from services import ledger, locations, qr_identity

logger = logging.getLogger("seed_demo_data")


async def get_or_create_location(session, name: str, location_type: str, parent: Optional[Location] = None) -> Location:
    parent_id = parent.id if parent else None
    result = await session.execute(
        select(Location).where(
            func.lower(Location.name) == name.lower(),
            Location.parent_id.is_(None) if parent_id is None else Location.parent_id == parent_id,
        )
    )
    loc = result.scalar_one_or_none()
    if loc:
        return loc
    return await locations.create_location(
        session, LocationCreate(name=name, location_type=location_type, parent_id=parent_id)
    )


async def get_or_create_item(session, location: Location, **fields) -> Item:
    result = await session.execute(select(Item).where(func.lower(Item.name) == fields["name"].lower()))
    item = result.scalar_one_or_none()
    if item:
        return item
    return await ledger.create_item(session, ItemCreate(location_id=location.id, **fields))


async def seed() -> None:
    configure_logging()
    await create_db_and_tables()

    async with async_session_maker() as session:
        shelf_a = await get_or_create_location(session, "Shelf A", "shelf")
        shelf_b = await get_or_create_location(session, "Shelf B", "shelf")

        electronics = await get_or_create_location(session, "Electronics", "box", shelf_a)
        resistors = await get_or_create_location(session, "Resistors", "compartment", electronics)
        capacitors = await get_or_create_location(session, "Capacitors", "compartment", electronics)
        fasteners = await get_or_create_location(session, "Fasteners", "box", shelf_b)
        screws = await get_or_create_location(session, "Screws", "compartment", fasteners)

        await get_or_create_item(
            session, resistors, name="Resistor 10k", category="electronics",
            specifications="0.25W 1%", quantity=200, unit="pcs", min_quantity=50,
        )
        await get_or_create_item(
            session, resistors, name="Resistor 220R", category="electronics",
            specifications="0.25W 5%", quantity=35, unit="pcs", min_quantity=50,
        )
        await get_or_create_item(
            session, capacitors, name="Ceramic capacitor 100nF", category="electronics",
            specifications="50V X7R", quantity=120, unit="pcs", min_quantity=20,
        )
        await get_or_create_item(
            session, screws, name="M3 screw 8mm", category="hardware",
            specifications="DIN 912, stainless", quantity=80, unit="pcs", min_quantity=100,
        )
        await get_or_create_item(
            session, fasteners, name="Cable ties", category="hardware",
            specifications="200 x 3.6 mm", quantity=3, unit="bags",
        )

        for loc in (shelf_a, shelf_b, electronics, resistors, capacitors, fasteners, screws):
            await qr_identity.assign(session, loc.id)

        summary = await ledger.inventory_summary(session)
        logger.info(
            "Seeded %d location(s) and %d item(s); %d low on stock",
            summary["total_locations"], summary["total_items"], summary["low_stock_count"],
        )


if __name__ == "__main__":
    asyncio.run(seed())
