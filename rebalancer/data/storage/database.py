"""SQLite trade-log store implementation.

This module provides the TradeLogDatabase class, the append-only store behind
the trade history: one row per attempted rebalance action, never updated or
deleted.
"""

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List

import pandas as pd

from rebalancer.data.base import TradeLogStore
from rebalancer.execution.base import TradeLog, TradeStatus, Venue
from rebalancer.portfolio.base import TradeSide
from rebalancer.utils.exceptions import StorageError
from rebalancer.utils.logging import get_logger

logger = get_logger(__name__)


class TradeLogDatabase(TradeLogStore):
    """Manages the SQLite trade log.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str):
        """Initialize database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self.create_tables()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a thread-local database connection."""
        if not hasattr(self._local, "connection"):
            # Closed from the main thread while other threads may still hold it
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.connection

    def create_tables(self) -> None:
        """Create necessary database tables if they don't exist."""
        schema_path = Path(__file__).parent / "schema.sql"
        try:
            with open(schema_path, "r") as f:
                schema = f.read()

            conn = self._get_connection()
            conn.executescript(schema)
            conn.commit()
            logger.info("Trade log database initialized at %s", self.db_path)
        except (OSError, sqlite3.Error) as e:
            logger.error("Failed to create tables: %s", e)
            raise StorageError(f"Database initialization failed: {e}") from e

    def append(self, receipt: TradeLog) -> None:
        """Insert one receipt."""
        insert_sql = """
            INSERT INTO trade_logs
            (timestamp, venue, pair, side, amount, price, total_usd, status, tx_hash, error)
            VALUES (:timestamp, :venue, :pair, :side, :amount, :price, :total_usd,
                    :status, :tx_hash, :error)
        """
        record = {
            "timestamp": receipt.timestamp.isoformat(),
            "venue": receipt.venue.value,
            "pair": receipt.pair,
            "side": receipt.side.value,
            "amount": receipt.amount,
            "price": receipt.price,
            "total_usd": receipt.total_usd,
            "status": receipt.status.value,
            "tx_hash": receipt.tx_hash,
            "error": receipt.error,
        }

        conn = self._get_connection()
        try:
            with conn:
                conn.execute(insert_sql, record)
            logger.debug(
                "Logged %s %s %s trade", receipt.status.value, receipt.side.value, receipt.pair
            )
        except sqlite3.Error as e:
            logger.error("Failed to log trade for %s: %s", receipt.pair, e)
            raise StorageError(f"Failed to log trade: {e}") from e

    def list_all(self) -> List[TradeLog]:
        """Load every receipt, newest first."""
        df = self.load_frame()
        return [self._row_to_trade_log(row) for row in df.to_dict("records")]

    def load_frame(self) -> pd.DataFrame:
        """Trade log as a DataFrame, newest first."""
        query = """
            SELECT id, timestamp, venue, pair, side, amount, price, total_usd,
                   status, tx_hash, error
            FROM trade_logs
            ORDER BY timestamp DESC, id DESC
        """
        conn = self._get_connection()
        try:
            return pd.read_sql_query(query, conn)
        except Exception as e:
            logger.error("Failed to load trade log: %s", e)
            raise StorageError(f"Failed to load trade log: {e}") from e

    @staticmethod
    def _row_to_trade_log(row: dict) -> TradeLog:
        def optional(value):
            return None if pd.isna(value) else str(value)

        return TradeLog(
            id=int(row["id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            venue=Venue(row["venue"]),
            pair=row["pair"],
            side=TradeSide(row["side"]),
            amount=float(row["amount"]),
            price=float(row["price"]),
            total_usd=float(row["total_usd"]),
            status=TradeStatus(row["status"]),
            tx_hash=optional(row["tx_hash"]),
            error=optional(row["error"]),
        )

    def close(self):
        """Close the connections of every thread that used this database."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        # Every thread reconnects on its next use
        self._local = threading.local()
        logger.debug("Closed %d trade log connection(s)", len(connections))
