import asyncio
import base64

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import NullPool

from db.database import build_engine, create_db_and_tables, get_async_session
from db.location import LocationType
from schemas.items import ItemCreate
from schemas.locations import LocationCreate
from services import ledger, locations


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = build_engine(sqlite_url(tmp_path / "inventory.db"), poolclass=NullPool)
    await create_db_and_tables(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest.fixture
def client(tmp_path):
    """API client on its own SQLite file; the app lifespan is not run."""
    from main import app

    eng = build_engine(sqlite_url(tmp_path / "api.db"), poolclass=NullPool)
    asyncio.run(create_db_and_tables(eng))
    maker = async_sessionmaker(eng, expire_on_commit=False)

    async def override_session():
        async with maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        asyncio.run(eng.dispose())


async def add_location(db, name, location_type="shelf", parent=None):
    return await locations.create_location(
        db,
        LocationCreate(
            name=name,
            location_type=LocationType(location_type).value,
            parent_id=parent.id if parent is not None else None,
        ),
    )


async def add_item(db, name, quantity=0, location=None, **fields):
    return await ledger.create_item(
        db,
        ItemCreate(
            name=name,
            quantity=quantity,
            location_id=location.id if location is not None else None,
            **fields,
        ),
    )


@pytest_asyncio.fixture
async def tree(db):
    """Shelf -> Box -> Compartment, plus an unrelated second shelf."""
    shelf = await add_location(db, "Shelf A", "shelf")
    box = await add_location(db, "Box 1", "box", shelf)
    compartment = await add_location(db, "Left", "compartment", box)
    other = await add_location(db, "Shelf B", "shelf")
    return {"shelf": shelf, "box": box, "compartment": compartment, "other": other}


def from_data_url(data_url: str):
    """Split a data:<mime>;base64,<payload> string into (mime, bytes)."""
    prefix, payload = data_url.split(",", 1)
    assert prefix.startswith("data:") and prefix.endswith(";base64")
    return prefix[len("data:"):-len(";base64")], base64.b64decode(payload)
