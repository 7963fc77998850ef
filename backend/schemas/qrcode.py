from typing import List

from pydantic import BaseModel, field_validator


class LocationQRCode(BaseModel):
    id: int
    name: str
    qr_code_id: str
    qr_data: str  # data:image/png;base64,...


class BatchQRRequest(BaseModel):
    location_ids: List[int]

    @field_validator("location_ids")
    @classmethod
    def _non_empty(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("location_ids must not be empty")
        return v
