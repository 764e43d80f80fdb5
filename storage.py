import json
import sqlite3
from dataclasses import asdict
from datetime import datetime, timezone
from typing import List, Optional

from game import GameHistoryEntry, GameState


def get_db(path: str):
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: str):
    conn = get_db(path)
    cur = conn.cursor()
    cur.execute("""
        CREATE TABLE IF NOT EXISTS games (
            id TEXT PRIMARY KEY,
            state TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    cur.execute("""
        CREATE TABLE IF NOT EXISTS history (
            id TEXT PRIMARY KEY,
            difficulty TEXT NOT NULL,
            started_at REAL NOT NULL,
            completed_at REAL NOT NULL,
            duration_sec INTEGER NOT NULL
        );
    """)
    conn.commit()
    conn.close()


def save_game(path: str, state: GameState):
    conn = get_db(path)
    conn.execute("""
        INSERT INTO games (id, state, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET state=excluded.state, updated_at=excluded.updated_at
    """, (state.id, json.dumps(state.to_dict()), datetime.now(timezone.utc).isoformat()))
    conn.commit()
    conn.close()


def load_game(path: str, game_id: str) -> Optional[GameState]:
    conn = get_db(path)
    row = conn.execute("SELECT state FROM games WHERE id = ?", (game_id,)).fetchone()
    conn.close()
    if not row:
        return None
    try:
        return GameState.from_dict(json.loads(row["state"]))
    except (ValueError, TypeError, KeyError):
        return None


def delete_game(path: str, game_id: str):
    conn = get_db(path)
    conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
    conn.commit()
    conn.close()


def append_history(path: str, entry: GameHistoryEntry):
    conn = get_db(path)
    conn.execute("""
        INSERT OR REPLACE INTO history (id, difficulty, started_at, completed_at, duration_sec)
        VALUES (:id, :difficulty, :started_at, :completed_at, :duration_sec)
    """, asdict(entry))
    conn.commit()
    conn.close()


def load_history(path: str) -> List[GameHistoryEntry]:
    conn = get_db(path)
    rows = conn.execute("""
        SELECT id, difficulty, started_at, completed_at, duration_sec
        FROM history ORDER BY completed_at DESC
    """).fetchall()
    conn.close()
    return [GameHistoryEntry(**dict(row)) for row in rows]
