from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import PDF_MIME, PNG_MIME, to_data_url
from db.database import get_async_session
from schemas.labels import ImageLabelRequest, LabelArtifact, PdfLabelRequest
from services.labels.composer import LabelRequest, compose
from services.labels.paper import get_paper_size
from services.labels.pdf import render_pdf
from services.labels.raster import render_png

router = APIRouter()


@router.post("/pdf", response_model=LabelArtifact)
async def generate_pdf_labels(payload: PdfLabelRequest, db: AsyncSession = Depends(get_async_session)):
    paper = get_paper_size(payload.paper_size)
    sheet = await compose(
        db,
        LabelRequest(
            item_ids=tuple(payload.item_ids),
            columns=payload.columns,
            rows=payload.rows,
            paper_size=paper.name,
        ),
    )
    return LabelArtifact(
        data_url=to_data_url(render_pdf(sheet, paper), PDF_MIME),
        page_count=sheet.page_count,
        label_count=sheet.label_count,
    )


@router.post("/image", response_model=LabelArtifact)
async def generate_image_labels(payload: ImageLabelRequest, db: AsyncSession = Depends(get_async_session)):
    """
    Renders one grid of the sheet as a PNG. Larger selections span several
    grids: `page_count` tells how many, `page` picks the one to render.
    """
    sheet = await compose(
        db,
        LabelRequest(item_ids=tuple(payload.item_ids), columns=payload.columns, rows=payload.rows),
    )
    return LabelArtifact(
        data_url=to_data_url(render_png(sheet, payload.page), PNG_MIME),
        page_count=sheet.page_count,
        label_count=sheet.label_count,
    )
