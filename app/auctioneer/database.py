"""
SQLite persistence for tracked users, auctions, fills and cached prices.

All writes are keyed upserts or deletes, so replaying an event never corrupts state.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .logging_config import setup_logger
from .models import AuctionEntry, AuctionType, FilledAuctionEntry, PriceEntry, UserEntry

logger = setup_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    health_factor REAL NOT NULL,
    collateral TEXT NOT NULL,
    liabilities TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_users_health_factor ON users(health_factor);

CREATE TABLE IF NOT EXISTS auctions (
    user_id TEXT NOT NULL,
    auction_type INTEGER NOT NULL,
    filler TEXT NOT NULL,
    start_block INTEGER NOT NULL,
    fill_block INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    PRIMARY KEY (user_id, auction_type)
);

CREATE TABLE IF NOT EXISTS filled_auctions (
    tx_hash TEXT PRIMARY KEY,
    filler TEXT NOT NULL,
    user_id TEXT NOT NULL,
    auction_type INTEGER NOT NULL,
    bid TEXT NOT NULL,
    bid_total REAL NOT NULL,
    lot TEXT NOT NULL,
    lot_total REAL NOT NULL,
    est_profit REAL NOT NULL,
    fill_block INTEGER NOT NULL,
    timestamp INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS prices (
    asset_id TEXT PRIMARY KEY,
    price REAL NOT NULL,
    timestamp INTEGER NOT NULL
);
"""


def _dump_amounts(amounts: Dict[str, int]) -> str:
    # amounts can exceed 64 bits, store as strings
    return json.dumps({asset: str(amount) for asset, amount in amounts.items()})


def _load_amounts(raw: str) -> Dict[str, int]:
    return {asset: int(amount) for asset, amount in json.loads(raw).items()}


class AuctioneerDatabase:
    """
    SQLite backed store for the auctioneer.

    A single connection is shared between threads and guarded by a lock.
    Use ":memory:" for an in-memory database.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(db_path, timeout=30.0, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")

        with self._lock, self._conn:
            self._conn.executescript(SCHEMA)

        logger.info("AuctioneerDatabase: Connected to %s", db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ********** Users **********

    def set_user_entry(self, entry: UserEntry) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO users (user_id, health_factor, collateral, liabilities, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    entry.user_id,
                    entry.health_factor,
                    _dump_amounts(entry.collateral),
                    _dump_amounts(entry.liabilities),
                    entry.updated_at,
                ),
            )

    def get_user_entry(self, user_id: str) -> Optional[UserEntry]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
        return self._to_user_entry(row) if row else None

    def delete_user_entry(self, user_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM users WHERE user_id = ?", (user_id,))

    def get_user_entries_under_health_factor(self, health_factor: float) -> List[UserEntry]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM users WHERE health_factor < ? ORDER BY health_factor ASC", (health_factor,)
            ).fetchall()
        return [self._to_user_entry(row) for row in rows]

    def get_user_entries_with_collateral(self, asset_id: str) -> List[UserEntry]:
        return [entry for entry in self._all_user_entries() if asset_id in entry.collateral]

    def get_user_entries_with_liability(self, asset_id: str) -> List[UserEntry]:
        return [entry for entry in self._all_user_entries() if asset_id in entry.liabilities]

    def _all_user_entries(self) -> List[UserEntry]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM users").fetchall()
        return [self._to_user_entry(row) for row in rows]

    @staticmethod
    def _to_user_entry(row: sqlite3.Row) -> UserEntry:
        return UserEntry(
            user_id=row["user_id"],
            health_factor=row["health_factor"],
            collateral=_load_amounts(row["collateral"]),
            liabilities=_load_amounts(row["liabilities"]),
            updated_at=row["updated_at"],
        )

    # ********** Auctions **********

    def set_auction_entry(self, entry: AuctionEntry) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO auctions (user_id, auction_type, filler, start_block, fill_block, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    entry.user_id,
                    int(entry.auction_type),
                    entry.filler,
                    entry.start_block,
                    entry.fill_block,
                    entry.updated_at,
                ),
            )

    def get_auction_entry(self, user_id: str, auction_type: AuctionType) -> Optional[AuctionEntry]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM auctions WHERE user_id = ? AND auction_type = ?", (user_id, int(auction_type))
            ).fetchone()
        return self._to_auction_entry(row) if row else None

    def get_all_auction_entries(self) -> List[AuctionEntry]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM auctions ORDER BY start_block ASC").fetchall()
        return [self._to_auction_entry(row) for row in rows]

    def delete_auction_entry(self, user_id: str, auction_type: AuctionType) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM auctions WHERE user_id = ? AND auction_type = ?", (user_id, int(auction_type))
            )

    @staticmethod
    def _to_auction_entry(row: sqlite3.Row) -> AuctionEntry:
        return AuctionEntry(
            user_id=row["user_id"],
            auction_type=AuctionType(row["auction_type"]),
            filler=row["filler"],
            start_block=row["start_block"],
            fill_block=row["fill_block"],
            updated_at=row["updated_at"],
        )

    # ********** Filled auctions **********

    def set_filled_auction_entry(self, entry: FilledAuctionEntry) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO filled_auctions (tx_hash, filler, user_id, auction_type, bid, bid_total, "
                "lot, lot_total, est_profit, fill_block, timestamp) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.tx_hash,
                    entry.filler,
                    entry.user_id,
                    int(entry.auction_type),
                    _dump_amounts(entry.bid),
                    entry.bid_total,
                    _dump_amounts(entry.lot),
                    entry.lot_total,
                    entry.est_profit,
                    entry.fill_block,
                    entry.timestamp,
                ),
            )

    def get_filled_auction_entries(self, limit: int = 50) -> List[FilledAuctionEntry]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM filled_auctions ORDER BY timestamp DESC LIMIT ?", (limit,)
            ).fetchall()
        return [
            FilledAuctionEntry(
                tx_hash=row["tx_hash"],
                filler=row["filler"],
                user_id=row["user_id"],
                auction_type=AuctionType(row["auction_type"]),
                bid=_load_amounts(row["bid"]),
                bid_total=row["bid_total"],
                lot=_load_amounts(row["lot"]),
                lot_total=row["lot_total"],
                est_profit=row["est_profit"],
                fill_block=row["fill_block"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    # ********** Prices **********

    def set_price_entries(self, entries: List[PriceEntry]) -> None:
        with self._lock, self._conn:
            self._conn.executemany(
                "INSERT OR REPLACE INTO prices (asset_id, price, timestamp) VALUES (?, ?, ?)",
                [(entry.asset_id, entry.price, entry.timestamp) for entry in entries],
            )

    def get_price_entry(self, asset_id: str) -> Optional[PriceEntry]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM prices WHERE asset_id = ?", (asset_id,)).fetchone()
        if row is None:
            return None
        return PriceEntry(asset_id=row["asset_id"], price=row["price"], timestamp=row["timestamp"])
