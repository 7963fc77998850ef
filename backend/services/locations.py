"""
Location hierarchy store.

Locations form a forest through `parent_id`. Structural work (subtree,
ancestor path, cycle checks) runs over a plain id -> parent_id index loaded in
one query, never over live ORM relationships, so traversal and bulk removal
are index operations.
"""
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import IntegrityError, InvalidParent, NotFound
from db.inventory.item import Item
from db.location import Location, LocationType
from schemas.locations import LocationCreate, LocationUpdate
from services import qr_identity

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    deleted_location_ids: List[int]
    detached_item_ids: List[int]


def children_index(pairs: Iterable[Tuple[int, Optional[int]]]) -> Dict[Optional[int], List[int]]:
    index: Dict[Optional[int], List[int]] = defaultdict(list)
    for loc_id, parent_id in pairs:
        index[parent_id].append(loc_id)
    return index


def collect_subtree(root_id: int, index: Dict[Optional[int], List[int]]) -> List[int]:
    """
    Breadth-first list of `root_id` and all its descendants.

    Raises IntegrityError if a node is reached twice, which can only happen if
    the stored parent links contain a cycle.
    """
    seen = {root_id}
    order = [root_id]
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for child in index.get(current, []):
            if child in seen:
                raise IntegrityError(f"Cycle detected below location {root_id} (at {child})")
            seen.add(child)
            order.append(child)
            queue.append(child)
    return order


def walk_to_root(location_id: int, parents: Dict[int, Optional[int]]) -> List[int]:
    """
    Ids from `location_id` up to its root (inclusive). The walk is bounded by the
    number of known locations; exceeding it means the parent links loop.
    """
    path = []
    current: Optional[int] = location_id
    limit = len(parents)
    while current is not None:
        if current not in parents:
            raise IntegrityError(f"Location {current} referenced as parent but missing")
        if len(path) >= limit:
            raise IntegrityError(f"Cycle detected in ancestors of location {location_id}")
        path.append(current)
        current = parents[current]
    return path


def check_acyclic(parents: Dict[int, Optional[int]]) -> None:
    """Raise IntegrityError unless every location reaches a root within len(parents) steps."""
    for loc_id in parents:
        walk_to_root(loc_id, parents)


async def _parent_pairs(db: AsyncSession) -> List[Tuple[int, Optional[int]]]:
    res = await db.execute(select(Location.id, Location.parent_id))
    return [(row.id, row.parent_id) for row in res.all()]


async def get_location(db: AsyncSession, location_id: int) -> Location:
    res = await db.execute(select(Location).where(Location.id == location_id))
    loc = res.scalar_one_or_none()
    if not loc:
        raise NotFound(f"Location {location_id} not found")
    return loc


async def location_exists(db: AsyncSession, location_id: int) -> bool:
    res = await db.execute(select(func.count(Location.id)).where(Location.id == location_id))
    return int(res.scalar_one() or 0) > 0


async def create_location(db: AsyncSession, payload: LocationCreate) -> Location:
    if payload.parent_id is not None and not await location_exists(db, payload.parent_id):
        raise InvalidParent(f"Parent location {payload.parent_id} does not exist")

    loc = Location(
        name=payload.name,
        parent_id=payload.parent_id,
        location_type=LocationType(payload.location_type),
        description=payload.description,
    )
    db.add(loc)
    await db.commit()
    await db.refresh(loc)
    logger.info("Created %s location %s (%r, parent=%s)", loc.location_type.value, loc.id, loc.name, loc.parent_id)
    return loc


async def update_location(db: AsyncSession, location_id: int, payload: LocationUpdate) -> Location:
    loc = await get_location(db, location_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        loc.name = data["name"]
    if "description" in data:
        loc.description = data["description"]

    await db.commit()
    await db.refresh(loc)
    return loc


async def delete_location(db: AsyncSession, location_id: int) -> DeleteResult:
    """
    Remove a location together with every descendant, in one transaction.

    Items stored anywhere in the removed subtree are kept and detached
    (location_id set to NULL); their ids are returned so the caller can warn.
    """
    try:
        pairs = await _parent_pairs(db)
        if location_id not in {loc_id for loc_id, _ in pairs}:
            raise NotFound(f"Location {location_id} not found")

        subtree = collect_subtree(location_id, children_index(pairs))

        res = await db.execute(select(Item.id).where(Item.location_id.in_(subtree)).order_by(Item.id))
        detached = [row[0] for row in res.all()]
        if detached:
            await db.execute(
                update(Item)
                .where(Item.id.in_(detached))
                .values(location_id=None)
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(Location)
            .where(Location.id.in_(subtree))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    # Drop stale identities for the removed rows
    db.expunge_all()
    logger.info(
        "Deleted location %s with %d descendant(s); detached %d item(s)",
        location_id, len(subtree) - 1, len(detached),
    )
    return DeleteResult(deleted_location_ids=subtree, detached_item_ids=detached)


async def list_locations(db: AsyncSession) -> List[Location]:
    res = await db.execute(select(Location).order_by(func.lower(Location.name).asc(), Location.id.asc()))
    return list(res.scalars().all())


def build_tree(locations: List[Location]) -> List[dict]:
    """Nest a flat, name-ordered location list into a forest of dicts with `children`."""
    nodes = {loc.id: {**loc.to_schema, "children": []} for loc in locations}
    roots = []
    for loc in locations:
        node = nodes[loc.id]
        parent = nodes.get(loc.parent_id) if loc.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


async def location_tree(db: AsyncSession) -> List[dict]:
    locations = await list_locations(db)
    check_acyclic({loc.id: loc.parent_id for loc in locations})
    return build_tree(locations)


async def location_path(db: AsyncSession, location_id: int) -> List[Location]:
    """Root-first chain of locations ending at `location_id`."""
    locations = {loc.id: loc for loc in await list_locations(db)}
    if location_id not in locations:
        raise NotFound(f"Location {location_id} not found")
    ids = walk_to_root(location_id, {loc_id: loc.parent_id for loc_id, loc in locations.items()})
    return [locations[i] for i in reversed(ids)]


async def get_location_by_qr(db: AsyncSession, code: str) -> Location:
    return await qr_identity.resolve(db, code)
