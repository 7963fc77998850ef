from typing import List

from pydantic import BaseModel


class PdfLabelRequest(BaseModel):
    item_ids: List[int]
    paper_size: str = "A4"
    columns: int = 3
    rows: int = 8


class ImageLabelRequest(BaseModel):
    item_ids: List[int]
    columns: int = 3
    rows: int = 4
    page: int = 0


class LabelArtifact(BaseModel):
    data_url: str
    page_count: int
    label_count: int
