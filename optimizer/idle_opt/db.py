"""
Idle Upgrade Optimizer - Sync Store
====================================
SQLite backend for the sync server: one row per user id holding the
serialized game state and its last-modified timestamp.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from idle_opt.config import DEFAULT_DB_PATH


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sync_data (
    user_id       TEXT PRIMARY KEY,
    payload       TEXT NOT NULL,
    last_modified TEXT NOT NULL
);
"""


def init_db(db_path=DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create tables if they don't exist. Returns connection."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.executescript(_SCHEMA)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def save_sync_data(data: dict, db_path=DEFAULT_DB_PATH) -> dict:
    """Upsert a user's state. Stamps and returns the stored document."""
    stored = dict(data)
    stored["last_modified"] = datetime.now(timezone.utc).isoformat()
    conn = init_db(db_path)
    conn.execute(
        "INSERT INTO sync_data (user_id, payload, last_modified) VALUES (?, ?, ?) "
        "ON CONFLICT(user_id) DO UPDATE SET payload = excluded.payload, "
        "last_modified = excluded.last_modified",
        (stored["user_id"], json.dumps(stored), stored["last_modified"]),
    )
    conn.commit()
    conn.close()
    return stored


def load_sync_data(user_id: str, db_path=DEFAULT_DB_PATH) -> Optional[dict]:
    conn = init_db(db_path)
    row = conn.execute("SELECT payload FROM sync_data WHERE user_id = ?",
                       (user_id,)).fetchone()
    conn.close()
    return json.loads(row[0]) if row else None


def get_all_user_ids(db_path=DEFAULT_DB_PATH) -> List[str]:
    conn = init_db(db_path)
    ids = [row[0] for row in conn.execute("SELECT user_id FROM sync_data ORDER BY user_id")]
    conn.close()
    return ids
