from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


LocationTypeName = Literal["shelf", "box", "compartment"]


class LocationCreate(BaseModel):
    name: str
    parent_id: Optional[int] = None
    location_type: LocationTypeName
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("description")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class LocationUpdate(BaseModel):
    """Only name and description are mutable; parent and type are fixed at creation."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class LocationRead(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    location_type: LocationTypeName
    description: Optional[str] = None
    qr_code_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LocationNode(LocationRead):
    children: List["LocationNode"] = Field(default_factory=list)


class LocationDeleteResult(BaseModel):
    deleted_location_ids: List[int]
    detached_item_ids: List[int]
