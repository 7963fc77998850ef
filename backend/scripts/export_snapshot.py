import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

"""
Write the whole store to a snapshot file, or restore it from one.

    python scripts/export_snapshot.py backup.json
    python scripts/export_snapshot.py backup.json --restore

Restoring replaces every location, item and ledger row.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.logging_config import configure_logging
from db.database import async_session_maker, create_db_and_tables
from services.snapshot import export_snapshot, import_snapshot

logger = logging.getLogger("export_snapshot")


async def main(path: Path, restore: bool) -> None:
    configure_logging()
    await create_db_and_tables()

    async with async_session_maker() as session:
        if restore:
            data = json.loads(path.read_text(encoding="utf-8"))
            counts = await import_snapshot(session, data)
            logger.info("Restored %s from %s", counts, path)
        else:
            data = await export_snapshot(session)
            path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            logger.info("Wrote snapshot to %s", path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export or restore an inventory snapshot")
    parser.add_argument("path", type=Path)
    parser.add_argument("--restore", action="store_true", help="load the file instead of writing it")
    args = parser.parse_args()
    asyncio.run(main(args.path, args.restore))
