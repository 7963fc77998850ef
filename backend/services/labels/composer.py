import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import EmptySelection, InvalidConfig, NotFound
from db.inventory.item import Item
from db.location import Location
from services import qr_identity

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "pcs"


@dataclass(frozen=True)
class LabelRequest:
    """Everything a sheet depends on; passed in explicitly, never kept as shared state."""
    item_ids: Tuple[int, ...]
    columns: int
    rows: int
    paper_size: Optional[str] = None


@dataclass(frozen=True)
class Label:
    item_id: int
    name: str
    specifications: Optional[str]
    quantity: int
    unit: str
    location_name: Optional[str]
    qr_code_id: Optional[str]

    @property
    def quantity_text(self) -> str:
        return f"{self.quantity} {self.unit}"


@dataclass(frozen=True)
class LabelSheet:
    columns: int
    rows: int
    pages: Tuple[Tuple[Label, ...], ...]

    @property
    def capacity(self) -> int:
        return self.columns * self.rows

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def label_count(self) -> int:
        return sum(len(p) for p in self.pages)


def validate_grid(columns: int, rows: int) -> None:
    if not 1 <= columns <= settings.label_max_columns:
        raise InvalidConfig(f"columns must be between 1 and {settings.label_max_columns}")
    if not 1 <= rows <= settings.label_max_rows:
        raise InvalidConfig(f"rows must be between 1 and {settings.label_max_rows}")


def paginate(labels: Sequence[Label], capacity: int) -> Tuple[Tuple[Label, ...], ...]:
    """Consecutive pages of `capacity` labels; the last page may be short."""
    page_count = math.ceil(len(labels) / capacity)
    return tuple(tuple(labels[i * capacity:(i + 1) * capacity]) for i in range(page_count))


def cell_position(index: int, columns: int) -> Tuple[int, int]:
    """(row, column) of the index-th label on a page, row-major."""
    return divmod(index, columns)


async def resolve_labels(db: AsyncSession, item_ids: Sequence[int]) -> List[Label]:
    """
    One label per requested id, in request order (repeated ids give copies).

    Fails as a whole with NotFound if any id is unknown. Locations that have
    not been given a QR code yet get one here, since printing it is what the
    code is for.
    """
    if not item_ids:
        raise EmptySelection("No items selected for labels")

    res = await db.execute(
        select(Item, Location)
        .outerjoin(Location, Item.location_id == Location.id)
        .where(Item.id.in_(set(item_ids)))
    )
    found: Dict[int, Tuple[Item, Optional[Location]]] = {it.id: (it, loc) for it, loc in res.all()}

    missing = [i for i in dict.fromkeys(item_ids) if i not in found]
    if missing:
        raise NotFound(f"Items not found: {', '.join(str(i) for i in missing)}")

    codes: Dict[int, str] = {}
    for _it, loc in found.values():
        if loc is not None and loc.id not in codes:
            codes[loc.id] = loc.qr_code_id or await qr_identity.assign(db, loc.id)

    labels = []
    for item_id in item_ids:
        it, loc = found[item_id]
        labels.append(
            Label(
                item_id=it.id,
                name=it.name,
                specifications=it.specifications,
                quantity=int(it.quantity),
                unit=it.unit or DEFAULT_UNIT,
                location_name=loc.name if loc is not None else None,
                qr_code_id=codes.get(loc.id) if loc is not None else None,
            )
        )
    return labels


async def compose(db: AsyncSession, request: LabelRequest) -> LabelSheet:
    validate_grid(request.columns, request.rows)
    labels = await resolve_labels(db, request.item_ids)
    sheet = LabelSheet(
        columns=request.columns,
        rows=request.rows,
        pages=paginate(labels, request.columns * request.rows),
    )
    logger.info(
        "Composed %d label(s) into %d page(s) of %dx%d",
        sheet.label_count, sheet.page_count, sheet.columns, sheet.rows,
    )
    return sheet
