from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.items import OperationTypeName
from schemas.locations import LocationTypeName


SNAPSHOT_FORMAT_VERSION = 1


class SnapshotLocation(BaseModel):
    id: int
    name: str = Field(min_length=1)
    parent_id: Optional[int] = None
    location_type: LocationTypeName
    description: Optional[str] = None
    qr_code_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SnapshotItem(BaseModel):
    id: int
    name: str = Field(min_length=1)
    category: Optional[str] = None
    specifications: Optional[str] = None
    quantity: int = Field(ge=0)
    unit: Optional[str] = None
    location_id: Optional[int] = None
    min_quantity: Optional[int] = None
    notes: Optional[str] = None
    image_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SnapshotLogEntry(BaseModel):
    id: int
    item_id: int
    quantity_change: int
    quantity_after: int = Field(ge=0)
    operation_type: OperationTypeName
    source: str = "manual"
    notes: Optional[str] = None
    created_at: datetime


class Snapshot(BaseModel):
    format_version: int = SNAPSHOT_FORMAT_VERSION
    exported_at: Optional[datetime] = None
    locations: List[SnapshotLocation] = Field(default_factory=list)
    items: List[SnapshotItem] = Field(default_factory=list)
    inventory_log: List[SnapshotLogEntry] = Field(default_factory=list)
