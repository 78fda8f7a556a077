import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, List


@dataclass(frozen=True)
class Migration:
    migration_id: str
    description: str
    apply: Callable[[sqlite3.Connection], None]


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table});").fetchall()
    return {str(r["name"]) for r in rows}


def _safe_add_column(conn: sqlite3.Connection, table: str, name: str, coltype: str) -> None:
    if name in _table_columns(conn, table):
        return
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {coltype};")


def _migration_0001_initial(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS leaderboards (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          player_name TEXT NOT NULL,
          score INTEGER NOT NULL CHECK (score >= 0),
          category TEXT NOT NULL,
          device_id TEXT,
          country TEXT NOT NULL DEFAULT '??',
          submitted_at REAL NOT NULL,
          metadata TEXT NOT NULL DEFAULT '{}'
        );
        CREATE INDEX IF NOT EXISTS idx_leaderboards_category_score ON leaderboards(category, score DESC);

        CREATE TABLE IF NOT EXISTS cloud_saves (
          device_id TEXT PRIMARY KEY,
          save_data TEXT NOT NULL,
          saved_at REAL NOT NULL,
          last_accessed REAL NOT NULL
        );
        """
    )


def _migration_0002_leaderboard_player_index(conn: sqlite3.Connection) -> None:
    """Index player lookups used by rank and player-stats queries."""
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_leaderboards_player ON leaderboards(player_name, category);"
    )


def _migration_0003_save_player_name(conn: sqlite3.Connection) -> None:
    """Store the player name beside each cloud save for support lookups."""
    _safe_add_column(conn, "cloud_saves", "player_name", "TEXT NOT NULL DEFAULT 'Anonymous'")


def _migrations() -> List[Migration]:
    return [
        Migration("0001_initial", "Create leaderboard and cloud save tables", _migration_0001_initial),
        Migration("0002_leaderboard_player_index", "Add player lookup index to leaderboards", _migration_0002_leaderboard_player_index),
        Migration("0003_save_player_name", "Add player_name column to cloud_saves", _migration_0003_save_player_name),
    ]


def apply_migrations(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
          migration_id TEXT PRIMARY KEY,
          description TEXT NOT NULL,
          applied_at REAL NOT NULL
        );
        """
    )

    applied = {
        str(r["migration_id"])
        for r in conn.execute("SELECT migration_id FROM schema_migrations").fetchall()
    }

    for migration in _migrations():
        if migration.migration_id in applied:
            continue
        migration.apply(conn)
        conn.execute(
            "INSERT INTO schema_migrations (migration_id,description,applied_at) VALUES (?,?,?)",
            (migration.migration_id, migration.description, time.time()),
        )
    conn.commit()
