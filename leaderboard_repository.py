import json
import sqlite3
from typing import Any, Dict, List, Optional

_ENTRY_COLUMNS = "player_name,score,country,device_id,submitted_at"


def insert_score(
    conn: sqlite3.Connection,
    player_name: str,
    score: int,
    category: str,
    device_id: str,
    country: str,
    submitted_at: float,
    metadata: Optional[Dict[str, Any]] = None,
) -> int:
    cur = conn.execute(
        """
        INSERT INTO leaderboards (player_name,score,category,device_id,country,submitted_at,metadata)
        VALUES (?,?,?,?,?,?,?)
        """,
        (player_name, score, category, device_id, country, submitted_at, json.dumps(metadata or {})),
    )
    return int(cur.lastrowid)


def player_rank(conn: sqlite3.Connection, category: str, player_name: str) -> int:
    """Rank of the player's best score in the category, 0 when they have none."""
    row = conn.execute(
        """
        SELECT rank FROM (
          SELECT player_name, score, RANK() OVER (ORDER BY score DESC) AS rank
          FROM leaderboards WHERE category=?
        )
        WHERE player_name=?
        ORDER BY score DESC
        LIMIT 1
        """,
        (category, player_name),
    ).fetchone()
    return int(row["rank"]) if row else 0


def top_entries(conn: sqlite3.Connection, category: str, limit: int) -> List[sqlite3.Row]:
    return conn.execute(
        f"""
        SELECT {_ENTRY_COLUMNS}, RANK() OVER (ORDER BY score DESC) AS rank
        FROM leaderboards
        WHERE category=?
        ORDER BY score DESC, submitted_at ASC
        LIMIT ?
        """,
        (category, limit),
    ).fetchall()


def best_entry_for_player(conn: sqlite3.Connection, category: str, player_name: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        f"""
        SELECT {_ENTRY_COLUMNS}, rank FROM (
          SELECT {_ENTRY_COLUMNS}, RANK() OVER (ORDER BY score DESC) AS rank
          FROM leaderboards WHERE category=?
        )
        WHERE player_name=?
        ORDER BY score DESC, submitted_at ASC
        LIMIT 1
        """,
        (category, player_name),
    ).fetchone()


def player_category_stats(conn: sqlite3.Connection, player_name: str) -> List[sqlite3.Row]:
    return conn.execute(
        """
        WITH ranked AS (
          SELECT category, player_name, score,
                 RANK() OVER (PARTITION BY category ORDER BY score DESC) AS rank
          FROM leaderboards
        )
        SELECT l.category,
               MAX(l.score) AS best_score,
               COUNT(*) AS submissions,
               MAX(l.submitted_at) AS last_submission,
               (SELECT MIN(r.rank) FROM ranked r
                 WHERE r.category=l.category AND r.player_name=l.player_name) AS rank
        FROM leaderboards l
        WHERE l.player_name=?
        GROUP BY l.category
        ORDER BY l.category
        """,
        (player_name,),
    ).fetchall()


def overall_stats(conn: sqlite3.Connection) -> sqlite3.Row:
    return conn.execute(
        """
        SELECT COUNT(DISTINCT player_name) AS total_players,
               COUNT(*) AS total_submissions,
               MAX(submitted_at) AS last_global_submission
        FROM leaderboards
        """
    ).fetchone()
