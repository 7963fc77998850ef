"""
Whole-store snapshots.

A snapshot is a JSON-ready dict holding every location, item and ledger row.
It is what the sync backends upload and download, and what
scripts/export_snapshot.py writes to disk.
"""
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import IntegrityError, InvalidConfig
from db.database import utcnow
from db.inventory.item import Item
from db.inventory.log import InventoryLog, OperationType
from db.location import Location, LocationType
from schemas.snapshot import SNAPSHOT_FORMAT_VERSION, Snapshot
from services.locations import check_acyclic, walk_to_root

logger = logging.getLogger(__name__)


# Isolation needed for the three export reads to see one state; SQLite gets
# it from BEGIN IMMEDIATE (db.database.build_engine)
READ_ISOLATION = {"postgresql": "REPEATABLE READ"}


async def export_snapshot(db: AsyncSession) -> Dict[str, Any]:
    """
    Read every location, item and ledger row in one fresh transaction.

    Any transaction the session already has open is committed first, so the
    snapshot's transaction starts here and can get its own isolation level.
    """
    if db.in_transaction():
        await db.commit()

    options = {}
    level = READ_ISOLATION.get(db.get_bind().dialect.name)
    if level:
        options["isolation_level"] = level
    await db.connection(execution_options=options)
    try:
        locations = (await db.execute(select(Location).order_by(Location.id))).scalars().all()
        items = (await db.execute(select(Item).order_by(Item.id))).scalars().all()
        log = (await db.execute(select(InventoryLog).order_by(InventoryLog.id))).scalars().all()

        snapshot = Snapshot(
            format_version=SNAPSHOT_FORMAT_VERSION,
            exported_at=utcnow(),
            locations=[loc.to_schema for loc in locations],
            items=[it.to_schema for it in items],
            inventory_log=[entry.to_schema for entry in log],
        )
    finally:
        # Releases the SQLite lock before the caller does anything slow
        await db.commit()
    logger.info(
        "Exported snapshot: %d location(s), %d item(s), %d log entr(ies)",
        len(locations), len(items), len(log),
    )
    return snapshot.model_dump(mode="json")


def _duplicates(values) -> List:
    return sorted(v for v, n in Counter(values).items() if n > 1)


def parse_snapshot(data: Any) -> Snapshot:
    """
    Validate a snapshot without touching the database.

    Shape and version problems raise InvalidConfig; broken references, cycles
    and duplicate keys raise IntegrityError.
    """
    if not isinstance(data, dict):
        raise InvalidConfig("Snapshot must be a JSON object")
    version = data.get("format_version")
    if version != SNAPSHOT_FORMAT_VERSION:
        raise InvalidConfig(f"Unsupported snapshot format_version {version!r}")
    try:
        snapshot = Snapshot.model_validate(data)
    except ValidationError as e:
        raise InvalidConfig(f"Malformed snapshot: {e}") from None

    dup = _duplicates(loc.id for loc in snapshot.locations)
    if dup:
        raise IntegrityError(f"Duplicate location ids in snapshot: {dup}")
    parents = {loc.id: loc.parent_id for loc in snapshot.locations}
    for loc in snapshot.locations:
        if loc.parent_id is not None and loc.parent_id not in parents:
            raise IntegrityError(f"Location {loc.id} references missing parent {loc.parent_id}")
    check_acyclic(parents)

    dup = _duplicates(loc.qr_code_id for loc in snapshot.locations if loc.qr_code_id)
    if dup:
        raise IntegrityError(f"Duplicate QR codes in snapshot: {dup}")

    dup = _duplicates(it.id for it in snapshot.items)
    if dup:
        raise IntegrityError(f"Duplicate item ids in snapshot: {dup}")
    for it in snapshot.items:
        if it.location_id is not None and it.location_id not in parents:
            raise IntegrityError(f"Item {it.id} references missing location {it.location_id}")

    dup = _duplicates(entry.id for entry in snapshot.inventory_log)
    if dup:
        raise IntegrityError(f"Duplicate log entry ids in snapshot: {dup}")
    return snapshot


def _parents_first(snapshot: Snapshot) -> List[Dict[str, Any]]:
    parents: Dict[int, Optional[int]] = {loc.id: loc.parent_id for loc in snapshot.locations}
    depth = {loc_id: len(walk_to_root(loc_id, parents)) for loc_id in parents}
    rows = []
    for loc in sorted(snapshot.locations, key=lambda l: (depth[l.id], l.id)):
        row = loc.model_dump()
        row["location_type"] = LocationType(row["location_type"])
        rows.append(row)
    return rows


async def import_snapshot(db: AsyncSession, data: Any) -> Dict[str, int]:
    """
    Replace the whole store with `data`.

    Everything is validated first; the delete and re-insert then happen in a
    single transaction, so a failure leaves the previous state intact.
    """
    snapshot = parse_snapshot(data)
    location_rows = _parents_first(snapshot)
    item_rows = [it.model_dump() for it in snapshot.items]
    log_rows = []
    for entry in snapshot.inventory_log:
        row = entry.model_dump()
        row["operation_type"] = OperationType(row["operation_type"])
        log_rows.append(row)

    try:
        await db.execute(delete(InventoryLog))
        await db.execute(delete(Item))
        await db.execute(delete(Location))
        if location_rows:
            await db.execute(insert(Location), location_rows)
        if item_rows:
            await db.execute(insert(Item), item_rows)
        if log_rows:
            await db.execute(insert(InventoryLog), log_rows)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Snapshot import failed, previous state kept")
        raise

    db.expunge_all()
    counts = {
        "locations": len(location_rows),
        "items": len(item_rows),
        "inventory_log": len(log_rows),
    }
    logger.info("Imported snapshot: %s", counts)
    return counts
