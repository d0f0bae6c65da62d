"""Decision and outcome log with the calibration ledger snapshot, on SQLite."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from oracle_edge.config import get_settings
from oracle_edge.scoring.ledger import CalibrationLedger
from oracle_edge.scoring.models import PerformanceHistory
from oracle_edge.sizing.models import TradeDecision

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS decisions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    market_id TEXT NOT NULL,
    question TEXT,
    category TEXT,
    market_type TEXT,
    outcome TEXT NOT NULL,
    model TEXT,
    raw_confidence REAL,
    confidence REAL NOT NULL,
    aggregate_score REAL,
    signal_count INTEGER,
    market_price REAL NOT NULL,
    size REAL NOT NULL,
    platform TEXT,
    actionable INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    correct INTEGER,  -- NULL until resolved
    pnl REAL,
    resolved_at TEXT
);
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_decisions_market_id ON decisions(market_id);
"""

_CREATE_CALIBRATION = """
CREATE TABLE IF NOT EXISTS calibration (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

_CREATE_VOLUME_SNAPSHOTS = """
CREATE TABLE IF NOT EXISTS volume_snapshots (
    market_id TEXT PRIMARY KEY,
    volume REAL NOT NULL,
    updated_at TEXT NOT NULL
);
"""

_LEDGER_KEY = "ledger"


class DecisionTracker:
    """SQLite store (via aiosqlite) for decisions, outcomes and the ledger."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or get_settings().db_path

    async def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.execute(_CREATE_CALIBRATION)
            await db.execute(_CREATE_VOLUME_SNAPSHOTS)
            await db.commit()

    async def log_decision(self, decision: TradeDecision) -> int:
        """Log a decision. Returns the row ID."""
        await self._ensure_db()
        prediction = decision.prediction
        params = (
            decision.market.market_id,
            decision.market.question,
            prediction.category.value,
            prediction.market_type,
            prediction.outcome,
            prediction.model,
            prediction.raw_confidence,
            decision.confidence,
            decision.aggregate_score,
            decision.signal_count,
            decision.market_price,
            decision.position.size,
            decision.position.platform.value,
            int(decision.actionable),
            decision.timestamp.isoformat(),
        )
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                """INSERT INTO decisions
                   (market_id, question, category, market_type, outcome, model,
                    raw_confidence, confidence, aggregate_score, signal_count,
                    market_price, size, platform, actionable, timestamp)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                params,
            )
            await db.commit()
            return cursor.lastrowid

    async def log_decisions(self, decisions: list[TradeDecision]) -> list[int]:
        """Log multiple decisions. Returns list of row IDs."""
        ids = []
        for decision in decisions:
            row_id = await self.log_decision(decision)
            ids.append(row_id)
        return ids

    async def record_outcome(
        self,
        market_id: str,
        correct: bool,
        pnl: float = 0.0,
        resolved_at: str | None = None,
    ) -> int:
        """Backfill correctness and PnL for unresolved decisions on a market.

        Returns:
            Number of rows updated
        """
        await self._ensure_db()
        resolved_at = resolved_at or datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                """UPDATE decisions
                   SET correct = ?, pnl = ?, resolved_at = ?
                   WHERE market_id = ? AND correct IS NULL""",
                (int(correct), pnl, resolved_at, market_id),
            )
            await db.commit()
            return cursor.rowcount

    async def get_unresolved(self, market_id: str) -> list[dict]:
        """Unresolved decisions for a market, oldest first."""
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """SELECT id, market_id, confidence, market_type, category, outcome
                   FROM decisions
                   WHERE market_id = ? AND correct IS NULL
                   ORDER BY id""",
                (market_id,),
            )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def get_performance_history(
        self, category: str | None = None, recent_window: int = 20,
    ) -> PerformanceHistory:
        """Track record from resolved decisions, optionally for one category."""
        await self._ensure_db()
        query = "SELECT correct, pnl FROM decisions WHERE correct IS NOT NULL"
        params: tuple = ()
        if category:
            query += " AND category = ?"
            params = (category,)
        query += " ORDER BY resolved_at, id"

        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()

        results = [(bool(row[0]), float(row[1] or 0.0)) for row in rows]
        return PerformanceHistory.from_results(results, recent_window=recent_window)

    async def get_performance_summary(self) -> dict:
        """Get a summary of decision performance."""
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row

            cursor = await db.execute("SELECT COUNT(*) as total FROM decisions")
            total = (await cursor.fetchone())["total"]

            cursor = await db.execute(
                "SELECT COUNT(*) as actionable FROM decisions WHERE actionable = 1"
            )
            actionable = (await cursor.fetchone())["actionable"]

            cursor = await db.execute(
                """SELECT COUNT(*) as resolved,
                          COALESCE(SUM(correct), 0) as wins,
                          COALESCE(SUM(pnl), 0.0) as pnl
                   FROM decisions WHERE correct IS NOT NULL"""
            )
            row = await cursor.fetchone()
            resolved, wins, pnl = row["resolved"], row["wins"], row["pnl"]

            cursor = await db.execute(
                """SELECT AVG((confidence - correct) * (confidence - correct))
                   as brier FROM decisions WHERE correct IS NOT NULL"""
            )
            brier = (await cursor.fetchone())["brier"]

            return {
                "total_decisions": total,
                "actionable": actionable,
                "resolved": resolved,
                "wins": wins,
                "win_rate": wins / resolved if resolved > 0 else None,
                "pnl": pnl,
                "brier_score": brier,
            }

    async def save_calibration(self, key: str, data: str) -> None:
        """Upsert a calibration row (key → JSON blob)."""
        now = datetime.now(timezone.utc).isoformat()
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                """INSERT INTO calibration (key, data, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT (key) DO UPDATE
                   SET data = excluded.data, updated_at = excluded.updated_at""",
                (key, data, now),
            )
            await db.commit()

    async def load_calibration(self, key: str) -> str | None:
        """Read the JSON blob for a calibration key. Returns None if not found."""
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT data FROM calibration WHERE key = ?", (key,),
            )
            row = await cursor.fetchone()
            return row[0] if row else None

    async def save_ledger(self, ledger: CalibrationLedger) -> None:
        await self.save_calibration(_LEDGER_KEY, json.dumps(ledger.to_dict()))

    async def load_ledger(self) -> CalibrationLedger:
        """Restore the persisted ledger, or an empty one."""
        data = await self.load_calibration(_LEDGER_KEY)
        if data is None:
            return CalibrationLedger()
        return CalibrationLedger.from_dict(json.loads(data))

    async def save_volume_snapshot(self, market_id: str, volume: float) -> None:
        """Upsert the last seen traded volume for a market."""
        now = datetime.now(timezone.utc).isoformat()
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                """INSERT INTO volume_snapshots (market_id, volume, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT (market_id) DO UPDATE
                   SET volume = excluded.volume, updated_at = excluded.updated_at""",
                (market_id, volume, now),
            )
            await db.commit()

    async def load_volume_snapshots(self) -> dict[str, float]:
        """Last seen volume per market id."""
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT market_id, volume FROM volume_snapshots")
            rows = await cursor.fetchall()
        return {row[0]: float(row[1]) for row in rows}
