from __future__ import annotations
import json
import aiosqlite
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from ..domain.models import LightReading, Mode, MoveEvent, Position


class SQLiteRepository:
    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS readings (
                    ts_utc TEXT NOT NULL,
                    sensor_id TEXT NOT NULL,
                    value INTEGER NOT NULL,
                    ok INTEGER NOT NULL,
                    error TEXT
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS moves (
                    ts_utc TEXT NOT NULL,
                    shade_id TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    old_position TEXT NOT NULL,
                    new_position TEXT NOT NULL,
                    light TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_readings_ts ON readings(ts_utc)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_moves_ts ON moves(ts_utc)")
            await db.commit()

    async def insert_reading(self, r: LightReading) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO readings(ts_utc,sensor_id,value,ok,error) VALUES (?,?,?,?,?)",
                (r.ts_utc.isoformat(), r.sensor_id, int(r.value), 1 if r.ok else 0, r.error),
            )
            await db.commit()

    async def insert_move(self, m: MoveEvent) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO moves(ts_utc,shade_id,mode,old_position,new_position,light) VALUES (?,?,?,?,?,?)",
                (
                    m.ts_utc.isoformat(),
                    m.shade_id,
                    m.mode.value,
                    m.old_position.value,
                    m.new_position.value,
                    json.dumps(list(m.light)),
                ),
            )
            await db.commit()

    async def query_readings(self, start_ts: str, end_ts: str, limit: int) -> List[LightReading]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,sensor_id,value,ok,error
                FROM readings
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[LightReading] = []
        for ts, sid, val, ok, err in rows:
            out.append(
                LightReading(
                    ts_utc=datetime.fromisoformat(ts),
                    sensor_id=sid,
                    value=int(val),
                    ok=bool(ok),
                    error=err,
                )
            )
        return list(reversed(out))

    async def query_moves(self, start_ts: str, end_ts: str, limit: int) -> List[MoveEvent]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,shade_id,mode,old_position,new_position,light
                FROM moves
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[MoveEvent] = []
        for ts, sid, mode, old, new, light in rows:
            out.append(
                MoveEvent(
                    ts_utc=datetime.fromisoformat(ts),
                    shade_id=sid,
                    mode=Mode(mode),
                    old_position=Position(old),
                    new_position=Position(new),
                    light=json.loads(light),
                )
            )
        return list(reversed(out))

    async def set_settings_batch(self, updates: Dict[str, str]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self._path) as db:
            for key, value in updates.items():
                await db.execute(
                    "INSERT INTO settings(key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                    (key, value, now),
                )
            await db.commit()

    async def save_state(self, key: str, state: Dict[str, Any]) -> None:
        await self.set_settings_batch({key: json.dumps(state)})

    async def load_state(self, key: str) -> Optional[Dict[str, Any]]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = await cur.fetchone()
        return json.loads(row[0]) if row else None

    async def save_shade_state(self, shade_id: str, mode: Mode, position: Position) -> None:
        await self.save_state(f"shade_state.{shade_id}", {"mode": mode.value, "position": position.value})
