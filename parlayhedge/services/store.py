"""SQLite storage for purchases, leg outcomes and user balances."""

import json
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from parlayhedge.errors import InvalidInput
from parlayhedge.logger import get_logger
from parlayhedge.models.hedge import HedgingStrategy
from parlayhedge.models.parlay import Leg
from parlayhedge.models.settlement import LegOutcome, ParlayStatus, Purchase

logger = get_logger(__name__)

DB_PATH = Path("parlayhedge.db")


class SettlementStore:
    """Purchase and settlement persistence.

    Every method opens its own connection so the store can be shared across
    threads. Claims rely on a single conditional UPDATE for at-most-once
    semantics.
    """

    def __init__(self, db_path: Path | str = DB_PATH):
        self.db_path = Path(db_path)
        self._init_db()
        logger.debug(f"SettlementStore initialized with db: {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=30.0)

    def _init_db(self):
        """Initialize the database tables."""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS purchases (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL UNIQUE,
                    user_id TEXT NOT NULL,
                    stake REAL NOT NULL,
                    payout REAL NOT NULL,
                    legs TEXT NOT NULL,
                    hedging_strategy TEXT,
                    hedge_executed INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'pending',
                    claimable_amount REAL NOT NULL DEFAULT 0,
                    claimed_at TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS leg_outcomes (
                    purchase_id INTEGER NOT NULL,
                    leg_number INTEGER NOT NULL,
                    ticker TEXT,
                    market_status TEXT NOT NULL,
                    outcome TEXT NOT NULL,
                    settlement_price REAL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (purchase_id, leg_number)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS balances (
                    user_id TEXT PRIMARY KEY,
                    balance REAL NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS balance_credits (
                    reference TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    amount REAL NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_purchases_status ON purchases(status)")
            conn.commit()
        logger.debug("Database tables initialized")

    # --- purchases ---

    def save_purchase(self, purchase: Purchase, strategy: Optional[HedgingStrategy] = None) -> Purchase:
        """Insert a completed purchase and return it with its id.

        Raises:
            InvalidInput: a purchase with the same session id already exists
        """
        now = time.time()
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO purchases
                    (session_id, user_id, stake, payout, legs, hedging_strategy,
                     hedge_executed, status, claimable_amount, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        purchase.session_id,
                        purchase.user_id,
                        purchase.stake,
                        purchase.payout,
                        json.dumps([leg.model_dump() for leg in purchase.legs]),
                        strategy.model_dump_json() if strategy else None,
                        1 if purchase.hedge_executed else 0,
                        purchase.status.value,
                        purchase.claimable_amount,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as e:
                logger.warning(f"Duplicate purchase {purchase.session_id} rejected")
                raise InvalidInput(f"Purchase {purchase.session_id} already recorded") from e
            conn.commit()
            purchase_id = cursor.lastrowid
        logger.info(f"Saved purchase {purchase.session_id} as id {purchase_id}")
        return purchase.model_copy(update={"id": purchase_id})

    def get_purchase(self, session_id: str) -> Optional[Purchase]:
        """Look up a purchase by checkout session id."""
        return self._fetch_one("SELECT * FROM purchases WHERE session_id = ?", (session_id,))

    def get_purchase_by_id(self, purchase_id: int) -> Optional[Purchase]:
        """Look up a purchase by primary key."""
        return self._fetch_one("SELECT * FROM purchases WHERE id = ?", (purchase_id,))

    def get_active_purchases(self) -> List[Purchase]:
        """Purchases still worth a settlement pass: pending, or won and maybe unclaimed."""
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM purchases WHERE status IN (?, ?) ORDER BY id",
                (ParlayStatus.PENDING.value, ParlayStatus.WON.value),
            ).fetchall()
        return [self._row_to_purchase(row) for row in rows]

    def update_parlay_status(self, purchase_id: int, status: ParlayStatus, claimable_amount: float):
        """Write the aggregate status. Rewriting the same values is harmless."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE purchases SET status = ?, claimable_amount = ?, updated_at = ? WHERE id = ?",
                (status.value, claimable_amount, time.time(), purchase_id),
            )
            conn.commit()
        logger.debug(f"Purchase {purchase_id} status -> {status.value} (${claimable_amount:.2f})")

    def mark_hedge_executed(self, session_id: str):
        """Record that the purchase's hedge orders were sent."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE purchases SET hedge_executed = 1, updated_at = ? WHERE session_id = ?",
                (time.time(), session_id),
            )
            conn.commit()

    def mark_claimed(self, purchase_id: int, claimed_at: datetime) -> bool:
        """Set claimed_at only if the purchase is won and unclaimed.

        Returns True if this call made the claim.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE purchases SET claimed_at = ?, updated_at = ?
                WHERE id = ? AND status = ? AND claimed_at IS NULL
                """,
                (claimed_at.isoformat(), time.time(), purchase_id, ParlayStatus.WON.value),
            )
            conn.commit()
            return cursor.rowcount == 1

    def release_claim(self, purchase_id: int, claimed_at: datetime) -> bool:
        """Undo a claim made at `claimed_at` whose credit never went through."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE purchases SET claimed_at = NULL, updated_at = ? WHERE id = ? AND claimed_at = ?",
                (time.time(), purchase_id, claimed_at.isoformat()),
            )
            conn.commit()
            released = cursor.rowcount == 1
        if released:
            logger.warning(f"Released claim on purchase {purchase_id}")
        return released

    def _fetch_one(self, query: str, params: tuple) -> Optional[Purchase]:
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(query, params).fetchone()
        return self._row_to_purchase(row) if row else None

    @staticmethod
    def _row_to_purchase(row: sqlite3.Row) -> Purchase:
        return Purchase(
            id=row["id"],
            session_id=row["session_id"],
            user_id=row["user_id"],
            stake=row["stake"],
            payout=row["payout"],
            legs=[Leg(**leg) for leg in json.loads(row["legs"])],
            status=ParlayStatus(row["status"]),
            claimable_amount=row["claimable_amount"],
            claimed_at=datetime.fromisoformat(row["claimed_at"]) if row["claimed_at"] else None,
            hedge_executed=bool(row["hedge_executed"]),
        )

    # --- leg outcomes ---

    def get_leg_outcomes(self, purchase_id: int) -> dict[int, LegOutcome]:
        """Stored outcomes keyed by leg number."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT leg_number, ticker, market_status, outcome, settlement_price
                FROM leg_outcomes WHERE purchase_id = ?
                """,
                (purchase_id,),
            ).fetchall()
        return {
            row[0]: LegOutcome(
                leg_number=row[0],
                ticker=row[1],
                market_status=row[2],
                outcome=row[3],
                settlement_price=row[4],
            )
            for row in rows
        }

    def upsert_leg_outcome(self, purchase_id: int, outcome: LegOutcome):
        """Create or replace the outcome for (purchase_id, leg_number).

        Rows already marked settled are never overwritten.
        """
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO leg_outcomes
                (purchase_id, leg_number, ticker, market_status, outcome, settlement_price, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(purchase_id, leg_number) DO UPDATE SET
                    ticker = excluded.ticker,
                    market_status = excluded.market_status,
                    outcome = excluded.outcome,
                    settlement_price = excluded.settlement_price,
                    updated_at = excluded.updated_at
                WHERE leg_outcomes.market_status != 'settled'
                """,
                (
                    purchase_id,
                    outcome.leg_number,
                    outcome.ticker,
                    outcome.market_status,
                    outcome.outcome,
                    outcome.settlement_price,
                    time.time(),
                ),
            )
            conn.commit()

    # --- balances ---

    def credit(self, user_id: str, amount: float, reference: str) -> bool:
        """Credit a user's balance once per reference.

        Returns False if the reference was already credited.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO balance_credits (reference, user_id, amount, created_at) VALUES (?, ?, ?, ?)",
                (reference, user_id, amount, time.time()),
            )
            if cursor.rowcount != 1:
                logger.warning(f"Credit {reference} already applied, ignoring")
                return False
            conn.execute(
                """
                INSERT INTO balances (user_id, balance) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET balance = balance + excluded.balance
                """,
                (user_id, amount),
            )
            conn.commit()
        logger.info(f"Credited ${amount:.2f} to {user_id} ({reference})")
        return True

    def get_balance(self, user_id: str) -> float:
        """Current balance for a user, 0 if none."""
        with self._connect() as conn:
            row = conn.execute("SELECT balance FROM balances WHERE user_id = ?", (user_id,)).fetchone()
        return row[0] if row else 0.0
