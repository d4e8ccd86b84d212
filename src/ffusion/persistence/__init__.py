"""SQLite snapshot of the identity index."""

from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from ffusion.identity import IdentityStore
from ffusion.models import PlayerIdentity


logger = logging.getLogger(__name__)

_DB_ENV = "FFUSION_DB_PATH"


class IdentityRepository:
    """Persists identities and external-id bindings across processes.

    Only ``save`` and ``load_into`` touch the database; the in-memory store stays
    the source of truth while the process runs.
    """

    def __init__(self, db_path: Path | str = "ffusion.sqlite"):
        self._use_uri = False
        env_db = os.getenv(_DB_ENV)
        if env_db:
            if env_db.startswith("file:"):
                self.db_path: Path | str = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        else:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS identities (
                    player_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    normalized_name TEXT NOT NULL,
                    position TEXT NOT NULL,
                    team TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_identities_name ON identities(normalized_name)"
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS external_ids (
                    external_id TEXT PRIMARY KEY,
                    player_id TEXT NOT NULL REFERENCES identities(player_id)
                )
                """
            )

    def save(self, store: IdentityStore) -> int:
        identities, bindings = store.snapshot()
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT OR IGNORE INTO identities (player_id, name, normalized_name, position, team, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (item.player_id, item.name, item.normalized_name, item.position, item.team, now)
                    for item in identities
                ],
            )
            conn.executemany(
                "INSERT OR IGNORE INTO external_ids (external_id, player_id) VALUES (?, ?)",
                sorted(bindings.items()),
            )
        logger.info("Saved %d identities to %s", len(identities), self.db_path)
        return len(identities)

    def load_identities(self) -> List[PlayerIdentity]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT player_id, name, normalized_name, position, team FROM identities ORDER BY player_id"
            ).fetchall()
        return [
            PlayerIdentity(
                player_id=row["player_id"],
                name=row["name"],
                normalized_name=row["normalized_name"],
                position=row["position"],
                team=row["team"],
            )
            for row in rows
        ]

    def load_bindings(self) -> Dict[str, str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT external_id, player_id FROM external_ids").fetchall()
        return {row["external_id"]: row["player_id"] for row in rows}

    def load_into(self, store: IdentityStore) -> int:
        identities = self.load_identities()
        store.restore(identities, self.load_bindings())
        return len(identities)


__all__ = ["IdentityRepository"]
