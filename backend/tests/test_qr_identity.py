"""
Tests for QR code assignment, lookup and rendering.
"""
import asyncio
import re
from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import async_sessionmaker

from conftest import add_location, from_data_url
from core.converters import PNG_MIME, to_data_url
from core.errors import NotFound
from services import locations, qr_identity

CODE_RE = re.compile(r"^LOC-[0-9A-F]{16}$")


class TestAssign:

    async def test_assign_is_idempotent(self, db, tree):
        first = await qr_identity.assign(db, tree["box"].id)
        second = await qr_identity.assign(db, tree["box"].id)
        assert first == second
        assert CODE_RE.match(first)

    async def test_codes_are_unique(self, db, tree):
        codes = {await qr_identity.assign(db, loc.id) for loc in tree.values()}
        assert len(codes) == len(tree)

    async def test_assign_unknown(self, db):
        with pytest.raises(NotFound):
            await qr_identity.assign(db, 1234)

    async def test_concurrent_assign_same_location(self, engine):
        maker = async_sessionmaker(engine, expire_on_commit=False)
        async with maker() as db:
            box = await add_location(db, "Box", "box")

        async def assign_once():
            async with maker() as session:
                return await qr_identity.assign(session, box.id)

        codes = await asyncio.gather(*(assign_once() for _ in range(8)))

        assert len(set(codes)) == 1
        async with maker() as db:
            assert (await locations.get_location(db, box.id)).qr_code_id == codes[0]

    async def test_concurrent_assign_different_locations(self, engine):
        maker = async_sessionmaker(engine, expire_on_commit=False)
        async with maker() as db:
            ids = [(await add_location(db, f"Box {i}", "box")).id for i in range(8)]

        async def assign_once(location_id):
            async with maker() as session:
                return await qr_identity.assign(session, location_id)

        codes = await asyncio.gather(*(assign_once(i) for i in ids))

        assert len(set(codes)) == len(ids)
        assert all(CODE_RE.match(code) for code in codes)

    async def test_collision_retries_with_fresh_code(self, db, tree):
        taken = await qr_identity.assign(db, tree["shelf"].id)
        with patch.object(qr_identity, "new_code", side_effect=[taken, "LOC-00000000000000AA"]):
            code = await qr_identity.assign(db, tree["other"].id)
        assert code == "LOC-00000000000000AA"

    async def test_assign_many_skips_unknown(self, db, tree):
        assigned = await qr_identity.assign_many(db, [tree["box"].id, 999, tree["box"].id, tree["other"].id])
        assert [loc.id for loc, _ in assigned] == [tree["box"].id, tree["other"].id]
        assert all(CODE_RE.match(code) for _, code in assigned)


class TestResolve:

    async def test_round_trip(self, db, tree):
        code = await qr_identity.assign(db, tree["compartment"].id)
        loc = await locations.get_location_by_qr(db, code)
        assert loc.id == tree["compartment"].id

    async def test_unknown_code(self, db, tree):
        await qr_identity.assign(db, tree["box"].id)
        with pytest.raises(NotFound):
            await qr_identity.resolve(db, "LOC-DOESNOTEXIST0000")

    @pytest.mark.parametrize("code", ["", "   ", None])
    async def test_blank_code(self, db, code):
        with pytest.raises(NotFound):
            await qr_identity.resolve(db, code)

    async def test_no_prefix_matching(self, db, tree):
        code = await qr_identity.assign(db, tree["box"].id)
        with pytest.raises(NotFound):
            await qr_identity.resolve(db, code[:-1])


class TestRender:

    def test_png_is_deterministic(self):
        a = qr_identity.render("LOC-0123456789ABCDEF")
        b = qr_identity.render("LOC-0123456789ABCDEF")
        assert a == b
        assert a.startswith(b"\x89PNG")

    def test_different_codes_differ(self):
        assert qr_identity.render("LOC-0000000000000001") != qr_identity.render("LOC-0000000000000002")

    def test_size(self):
        img = Image.open(BytesIO(qr_identity.render("LOC-0123456789ABCDEF", size=200)))
        assert img.size == (200, 200)

    def test_data_url_round_trip(self):
        png = qr_identity.render("LOC-0123456789ABCDEF")
        url = to_data_url(png, PNG_MIME)
        assert url.startswith("data:image/png;base64,")
        assert from_data_url(url) == (PNG_MIME, png)
