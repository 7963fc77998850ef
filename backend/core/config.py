import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./inventory.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

    # QR rendering
    qr_box_size: int = int(os.getenv("QR_BOX_SIZE", "10"))
    qr_border: int = int(os.getenv("QR_BORDER", "4"))

    # Label sheets
    label_max_columns: int = int(os.getenv("LABEL_MAX_COLUMNS", "10"))
    label_max_rows: int = int(os.getenv("LABEL_MAX_ROWS", "20"))
    label_image_cell_width: int = int(os.getenv("LABEL_IMAGE_CELL_WIDTH", "400"))
    label_image_cell_height: int = int(os.getenv("LABEL_IMAGE_CELL_HEIGHT", "240"))

    # Remote backup sync
    sync_object_name: str = os.getenv("SYNC_OBJECT_NAME", "inventory-snapshot.json")
    sync_timeout: int = int(os.getenv("SYNC_TIMEOUT", "60"))


settings = Settings()
