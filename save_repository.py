import sqlite3
from typing import Optional


def upsert_save(conn: sqlite3.Connection, device_id: str, save_json: str, player_name: str, now: float) -> None:
    conn.execute(
        """
        INSERT INTO cloud_saves (device_id,save_data,saved_at,last_accessed,player_name)
        VALUES (?,?,?,?,?)
        ON CONFLICT(device_id) DO UPDATE SET
          save_data=excluded.save_data,
          saved_at=excluded.saved_at,
          last_accessed=excluded.last_accessed,
          player_name=excluded.player_name
        """,
        (device_id, save_json, now, now, player_name),
    )


def find_save(conn: sqlite3.Connection, device_id: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT device_id,save_data,saved_at,last_accessed FROM cloud_saves WHERE device_id=?",
        (device_id,),
    ).fetchone()


def touch_save(conn: sqlite3.Connection, device_id: str, now: float) -> None:
    conn.execute("UPDATE cloud_saves SET last_accessed=? WHERE device_id=?", (now, device_id))


def delete_save(conn: sqlite3.Connection, device_id: str) -> bool:
    cur = conn.execute("DELETE FROM cloud_saves WHERE device_id=?", (device_id,))
    return cur.rowcount > 0
