from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator


OperationTypeName = Literal["add", "remove", "adjust"]


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class ItemCreate(BaseModel):
    name: str
    category: Optional[str] = None
    specifications: Optional[str] = None
    quantity: int = 0
    unit: Optional[str] = None
    location_id: Optional[int] = None
    min_quantity: Optional[int] = None
    notes: Optional[str] = None
    image_path: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("category", "specifications", "unit", "notes", "image_path")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)

    @field_validator("min_quantity")
    @classmethod
    def _min_quantity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("min_quantity must be >= 0")
        return v


class ItemUpdate(BaseModel):
    """
    Field-level update. `quantity` is accepted only so a full item form can be
    sent back unchanged: a value that differs from the stored one is rejected,
    stock moves through POST /items/{id}/quantity.
    """
    name: Optional[str] = None
    category: Optional[str] = None
    specifications: Optional[str] = None
    quantity: Optional[int] = None
    unit: Optional[str] = None
    location_id: Optional[int] = None
    min_quantity: Optional[int] = None
    notes: Optional[str] = None
    image_path: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("category", "specifications", "unit", "notes", "image_path")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)

    @field_validator("min_quantity")
    @classmethod
    def _min_quantity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("min_quantity must be >= 0")
        return v


class ItemFilter(BaseModel):
    category: Optional[str] = None
    location_id: Optional[int] = None
    search: Optional[str] = None
    low_stock_only: bool = False

    @field_validator("category", "search")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class ItemRead(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    specifications: Optional[str] = None
    quantity: int
    unit: Optional[str] = None
    location_id: Optional[int] = None
    min_quantity: Optional[int] = None
    notes: Optional[str] = None
    image_path: Optional[str] = None
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuantityChange(BaseModel):
    change: int
    operation_type: OperationTypeName
    source: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("source", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class InventoryLogRead(BaseModel):
    id: int
    item_id: int
    quantity_change: int
    quantity_after: int
    operation_type: OperationTypeName
    source: str
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuantityChangeResult(BaseModel):
    item_id: int
    quantity: int
    is_low_stock: bool
    log: InventoryLogRead


class InventorySummary(BaseModel):
    total_locations: int
    total_items: int
    low_stock_count: int
    low_stock_items: List[ItemRead]


class QuantityAt(BaseModel):
    item_id: int
    at: datetime
    quantity: int
