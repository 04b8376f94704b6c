# carelog/db/db_config.py

import os
import sqlite3
from pathlib import Path

from carelog.core.env import load_env

load_env()

# Base project directory (care_log_service/)
BASE_DIR = Path(__file__).resolve().parents[2]

# Database directory (care_log_service/carelog/db/)
DB_DIR = BASE_DIR / "carelog" / "db"

# Finished care records
DB_PATH = Path(os.getenv("CARELOG_DB_PATH", str(DB_DIR / "care_records.db")))

# LangGraph checkpoints for drafts under review
CHECKPOINT_DB_PATH = Path(os.getenv("CARELOG_CHECKPOINT_DB_PATH", str(DB_DIR / "checkpoints.db")))

# User-edited field settings (JSON keyed by record type)
FIELD_SETTINGS_PATH = Path(os.getenv("CARELOG_FIELD_SETTINGS_PATH", str(BASE_DIR / "field_settings.json")))


def get_sqlite_connection(path: Path | str = DB_PATH) -> sqlite3.Connection:
    """
    Create and configure SQLite connection with recommended PRAGMA settings.
    """
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)

    # Performance & concurrency settings
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")

    return conn
