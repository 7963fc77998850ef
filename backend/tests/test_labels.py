"""
Tests for label sheet composition and the PDF / PNG renderers.
"""
from io import BytesIO

import pytest
from PIL import Image

from conftest import add_item
from core.errors import EmptySelection, InvalidConfig, NotFound
from services.labels.composer import (
    Label,
    LabelRequest,
    LabelSheet,
    cell_position,
    compose,
    paginate,
    validate_grid,
)
from services.labels.paper import get_paper_size
from services.labels.pdf import fit_text, render_pdf
from services.labels.raster import render_png


def make_labels(n, qr_code_id="LOC-0123456789ABCDEF"):
    return [
        Label(
            item_id=i,
            name=f"Item {i}",
            specifications="M3 x 8" if i % 2 else None,
            quantity=i,
            unit="pcs",
            location_name="Box 1",
            qr_code_id=qr_code_id,
        )
        for i in range(1, n + 1)
    ]


def make_sheet(n, columns=3, rows=4):
    return LabelSheet(columns=columns, rows=rows, pages=paginate(make_labels(n), columns * rows))


class TestPaperAndGrid:

    @pytest.mark.parametrize(
        "name, expected",
        [("A4", (210, 297)), ("letter", (215.9, 279.4)), ("a5", (148, 210))],
    )
    def test_paper_sizes(self, name, expected):
        paper = get_paper_size(name)
        assert (paper.width_mm, paper.height_mm) == expected

    def test_unknown_paper(self):
        with pytest.raises(InvalidConfig):
            get_paper_size("B5")

    @pytest.mark.parametrize("columns, rows", [(0, 4), (3, 0), (11, 4), (3, 21)])
    def test_grid_bounds(self, columns, rows):
        with pytest.raises(InvalidConfig):
            validate_grid(columns, rows)

    def test_cell_position_is_row_major(self):
        assert [cell_position(i, 3) for i in range(5)] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1)]


class TestPagination:

    def test_ten_labels_fit_one_page(self):
        sheet = make_sheet(10)
        assert sheet.page_count == 1
        assert sheet.label_count == 10

    def test_thirteen_labels_need_two_pages(self):
        sheet = make_sheet(13)
        assert sheet.page_count == 2
        assert [len(p) for p in sheet.pages] == [12, 1]

    def test_exact_fill(self):
        assert make_sheet(24).page_count == 2


class TestCompose:

    async def test_empty_selection(self, db):
        with pytest.raises(EmptySelection):
            await compose(db, LabelRequest(item_ids=(), columns=3, rows=4))

    async def test_bad_grid_checked_first(self, db):
        with pytest.raises(InvalidConfig):
            await compose(db, LabelRequest(item_ids=(1,), columns=0, rows=4))

    async def test_missing_items(self, db):
        item = await add_item(db, "Real", 1)
        with pytest.raises(NotFound) as exc_info:
            await compose(db, LabelRequest(item_ids=(item.id, 98, 99), columns=3, rows=4))
        assert "98, 99" in exc_info.value.message

    async def test_order_and_duplicates(self, db, tree):
        a = await add_item(db, "A", 2, tree["compartment"], specifications="spec a", unit="m")
        b = await add_item(db, "B", 5)

        sheet = await compose(db, LabelRequest(item_ids=(b.id, a.id, b.id), columns=2, rows=1))

        labels = [label for page in sheet.pages for label in page]
        assert [label.item_id for label in labels] == [b.id, a.id, b.id]
        assert sheet.page_count == 2
        assert labels[1].location_name == "Left"
        assert labels[1].quantity_text == "2 m"
        assert labels[0].quantity_text == "5 pcs"
        assert labels[0].location_name is None
        assert labels[0].qr_code_id is None

    async def test_qr_assigned_on_demand(self, db, tree):
        item = await add_item(db, "Tagged", 1, tree["box"])
        sheet = await compose(db, LabelRequest(item_ids=(item.id,), columns=1, rows=1))
        code = sheet.pages[0][0].qr_code_id
        assert code and code.startswith("LOC-")

        again = await compose(db, LabelRequest(item_ids=(item.id,), columns=1, rows=1))
        assert again.pages[0][0].qr_code_id == code


class TestPdf:

    def test_pdf_is_deterministic(self):
        paper = get_paper_size("A4")
        first = render_pdf(make_sheet(13), paper)
        second = render_pdf(make_sheet(13), paper)
        assert first.startswith(b"%PDF")
        assert first == second

    def test_pdf_has_one_page_per_grid(self):
        data = render_pdf(make_sheet(13), get_paper_size("A4"))
        assert b"/Count 2" in data

    def test_pdf_without_qr_codes(self):
        sheet = LabelSheet(columns=2, rows=2, pages=paginate(make_labels(3, qr_code_id=None), 4))
        assert render_pdf(sheet, get_paper_size("A5")).startswith(b"%PDF")

    def test_fit_text(self):
        assert fit_text("short", "Helvetica", 10, 200) == "short"
        cut = fit_text("a very long item name " * 5, "Helvetica", 10, 60)
        assert cut.endswith("...")
        assert len(cut) < 40


class TestRaster:

    def test_png_dimensions(self):
        data = render_png(make_sheet(10), cell_width=100, cell_height=60)
        img = Image.open(BytesIO(data))
        assert img.size == (300, 240)

    def test_png_is_deterministic(self):
        assert render_png(make_sheet(5)) == render_png(make_sheet(5))

    def test_second_page(self):
        first = render_png(make_sheet(13), page=0)
        second = render_png(make_sheet(13), page=1)
        assert first != second

    @pytest.mark.parametrize("page", [-1, 2])
    def test_page_out_of_range(self, page):
        with pytest.raises(InvalidConfig):
            render_png(make_sheet(13), page=page)
