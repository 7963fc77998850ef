import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.errors import InventoryError
from core.logging_config import configure_logging
from db.database import create_db_and_tables
from routers.items import router as items_router
from routers.labels import router as labels_router
from routers.locations import router as locations_router
from routers.qrcode import router as qrcode_router
from routers.sync import router as sync_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    logger.info("Database ready")
    yield


app = FastAPI(
    title="Storage Inventory API",
    description="Locations, item stock ledger, QR codes and printable labels",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.label, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.label},
    )


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}


app.include_router(locations_router, prefix="/locations", tags=["locations"])
app.include_router(items_router, prefix="/items", tags=["items"])
app.include_router(qrcode_router, prefix="/qrcode", tags=["qrcode"])
app.include_router(labels_router, prefix="/labels", tags=["labels"])
app.include_router(sync_router, prefix="/sync", tags=["sync"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
