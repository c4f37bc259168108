"""DuckDB-backed store for link items, accounts and balance snapshots.

The store owns one DuckDB connection for its lifetime. It is created by the
process entry point and passed to whatever needs it; there is no module-level
connection. Each operation runs on its own cursor so the API's worker
threads never share one.

Balance snapshots are append-only: the store has no update or delete for
them. Timestamps are written as naive UTC.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from types import TracebackType
from typing import Any, NamedTuple

import duckdb

from finboard.models import Account, AccountBalance, BalanceSnapshot, LinkItem

logger = logging.getLogger(__name__)


class TableRef(NamedTuple):
    """Reference to a database table with schema and name."""

    schema: str
    name: str

    @property
    def full_name(self) -> str:
        """Schema-qualified table name for use in SQL queries."""
        return f"{self.schema}.{self.name}"


LINK_ITEMS = TableRef("main", "link_items")
ACCOUNTS = TableRef("main", "accounts")
BALANCE_SNAPSHOTS = TableRef("main", "balance_snapshots")

_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {LINK_ITEMS.full_name} (
    id VARCHAR PRIMARY KEY,
    provider_item_id VARCHAR NOT NULL UNIQUE,
    access_token VARCHAR NOT NULL,
    institution_id VARCHAR,
    institution_name VARCHAR,
    institution_logo VARCHAR,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS {ACCOUNTS.full_name} (
    id VARCHAR PRIMARY KEY,
    provider_account_id VARCHAR NOT NULL,
    item_id VARCHAR NOT NULL REFERENCES {LINK_ITEMS.full_name} (id),
    name VARCHAR NOT NULL,
    category VARCHAR NOT NULL,
    subcategory VARCHAR,
    mask VARCHAR,
    created_at TIMESTAMP NOT NULL,
    UNIQUE (item_id, provider_account_id)
);

CREATE SEQUENCE IF NOT EXISTS balance_snapshot_seq;

CREATE TABLE IF NOT EXISTS {BALANCE_SNAPSHOTS.full_name} (
    id VARCHAR PRIMARY KEY,
    seq BIGINT NOT NULL DEFAULT nextval('balance_snapshot_seq'),
    account_id VARCHAR NOT NULL REFERENCES {ACCOUNTS.full_name} (id),
    current_balance DECIMAL(18, 4) NOT NULL,
    available_balance DECIMAL(18, 4),
    balance_limit DECIMAL(18, 4),
    recorded_at TIMESTAMP NOT NULL
);
"""

_SNAPSHOT_COLUMNS = (
    "s.id, s.account_id, s.current_balance, s.available_balance, "
    "s.balance_limit, s.recorded_at"
)
_ACCOUNT_COLUMNS = (
    "a.id, a.provider_account_id, a.item_id, a.name, a.category, "
    "a.subcategory, a.mask, a.created_at"
)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


def _link_item_from_row(row: tuple[Any, ...]) -> LinkItem:
    return LinkItem(
        id=row[0],
        provider_item_id=row[1],
        access_token=row[2],
        institution_id=row[3],
        institution_name=row[4],
        institution_logo=row[5],
        created_at=row[6],
    )


def _account_from_row(row: tuple[Any, ...]) -> Account:
    return Account(
        id=row[0],
        provider_account_id=row[1],
        item_id=row[2],
        name=row[3],
        category=row[4],
        subcategory=row[5],
        mask=row[6],
        created_at=row[7],
    )


def _snapshot_from_row(row: tuple[Any, ...]) -> BalanceSnapshot:
    return BalanceSnapshot(
        id=row[0],
        account_id=row[1],
        current=row[2],
        available=row[3],
        limit=row[4],
        recorded_at=row[5],
    )


class BalanceStore:
    """Persistent store for Finboard's link items, accounts and balances."""

    def __init__(self, database_path: Path | str = ":memory:"):
        """Open (and create if needed) the DuckDB database.

        Args:
            database_path: Path to the database file, or ``":memory:"``
        """
        self.database_path = str(database_path)
        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Opening DuckDB database: {self.database_path}")
        self._conn: duckdb.DuckDBPyConnection | None = duckdb.connect(
            self.database_path
        )
        self.initialize()

    def __enter__(self) -> "BalanceStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """The underlying connection.

        Raises:
            RuntimeError: If the store has been closed.
        """
        if self._conn is None:
            raise RuntimeError("BalanceStore is closed")
        return self._conn

    @contextmanager
    def _cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        cursor = self.connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def initialize(self) -> None:
        """Create tables and sequences if they do not exist."""
        with self._cursor() as cur:
            cur.execute(_SCHEMA_SQL)

    def close(self) -> None:
        """Close the DuckDB connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("DuckDB connection closed")

    # Link items

    def create_link_item(
        self,
        provider_item_id: str,
        access_token: str,
        institution_id: str | None = None,
        institution_name: str | None = None,
        institution_logo: str | None = None,
    ) -> LinkItem:
        """Persist a new bank connection."""
        item = LinkItem(
            id=_new_id(),
            provider_item_id=provider_item_id,
            access_token=access_token,
            institution_id=institution_id,
            institution_name=institution_name,
            institution_logo=institution_logo,
            created_at=_utcnow(),
        )
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {LINK_ITEMS.full_name}
                (id, provider_item_id, access_token, institution_id,
                 institution_name, institution_logo, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,  # noqa: S608
                [
                    item.id,
                    item.provider_item_id,
                    item.access_token,
                    item.institution_id,
                    item.institution_name,
                    item.institution_logo,
                    item.created_at,
                ],
            )
        logger.debug(f"Created link item {item.id} ({institution_name})")
        return item

    def get_link_item(self, item_id: str) -> LinkItem | None:
        with self._cursor() as cur:
            row = cur.execute(
                f"""
                SELECT id, provider_item_id, access_token, institution_id,
                       institution_name, institution_logo, created_at
                FROM {LINK_ITEMS.full_name}
                WHERE id = ?
                """,  # noqa: S608
                [item_id],
            ).fetchone()
        return _link_item_from_row(row) if row else None

    def list_link_items(self) -> list[LinkItem]:
        with self._cursor() as cur:
            rows = cur.execute(
                f"""
                SELECT id, provider_item_id, access_token, institution_id,
                       institution_name, institution_logo, created_at
                FROM {LINK_ITEMS.full_name}
                ORDER BY created_at, id
                """  # noqa: S608
            ).fetchall()
        return [_link_item_from_row(row) for row in rows]

    # Accounts

    def create_account(
        self,
        item_id: str,
        provider_account_id: str,
        name: str,
        category: str,
        subcategory: str | None = None,
        mask: str | None = None,
    ) -> Account:
        """Persist a new account under a link item."""
        account = Account(
            id=_new_id(),
            provider_account_id=provider_account_id,
            item_id=item_id,
            name=name,
            category=category,
            subcategory=subcategory,
            mask=mask,
            created_at=_utcnow(),
        )
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {ACCOUNTS.full_name}
                (id, provider_account_id, item_id, name, category,
                 subcategory, mask, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,  # noqa: S608
                [
                    account.id,
                    account.provider_account_id,
                    account.item_id,
                    account.name,
                    account.category,
                    account.subcategory,
                    account.mask,
                    account.created_at,
                ],
            )
        return account

    def list_accounts(self, item_id: str | None = None) -> list[Account]:
        """List accounts, optionally only those of one link item."""
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM {ACCOUNTS.full_name} a"  # noqa: S608
        params: list[object] = []
        if item_id is not None:
            sql += " WHERE a.item_id = ?"
            params.append(item_id)
        sql += " ORDER BY a.created_at, a.id"

        with self._cursor() as cur:
            rows = cur.execute(sql, params).fetchall()
        return [_account_from_row(row) for row in rows]

    # Balance snapshots

    def insert_snapshot(
        self,
        account_id: str,
        current: Decimal,
        available: Decimal | None = None,
        limit: Decimal | None = None,
        recorded_at: datetime | None = None,
    ) -> BalanceSnapshot:
        """Append a balance snapshot for an account."""
        snapshot = BalanceSnapshot(
            id=_new_id(),
            account_id=account_id,
            current=current,
            available=available,
            limit=limit,
            recorded_at=_to_naive_utc(recorded_at) if recorded_at else _utcnow(),
        )
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {BALANCE_SNAPSHOTS.full_name}
                (id, account_id, current_balance, available_balance,
                 balance_limit, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,  # noqa: S608
                [
                    snapshot.id,
                    snapshot.account_id,
                    snapshot.current,
                    snapshot.available,
                    snapshot.limit,
                    snapshot.recorded_at,
                ],
            )
        return snapshot

    def latest_snapshot(self, account_id: str) -> BalanceSnapshot | None:
        """Most recent snapshot for one account, if any."""
        with self._cursor() as cur:
            row = cur.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS}
                FROM {BALANCE_SNAPSHOTS.full_name} s
                WHERE s.account_id = ?
                ORDER BY s.recorded_at DESC, s.seq DESC
                LIMIT 1
                """,  # noqa: S608
                [account_id],
            ).fetchone()
        return _snapshot_from_row(row) if row else None

    def latest_snapshots(self) -> dict[str, BalanceSnapshot]:
        """Most recent snapshot per account, keyed by account id."""
        with self._cursor() as cur:
            rows = cur.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS}
                FROM {BALANCE_SNAPSHOTS.full_name} s
                QUALIFY row_number() OVER (
                    PARTITION BY s.account_id
                    ORDER BY s.recorded_at DESC, s.seq DESC
                ) = 1
                """  # noqa: S608
            ).fetchall()
        snapshots = [_snapshot_from_row(row) for row in rows]
        return {snapshot.account_id: snapshot for snapshot in snapshots}

    def list_account_balances(self) -> list[AccountBalance]:
        """Every account with its institution and latest balance."""
        with self._cursor() as cur:
            rows = cur.execute(
                f"""
                SELECT {_ACCOUNT_COLUMNS}, i.institution_name, i.institution_logo
                FROM {ACCOUNTS.full_name} a
                JOIN {LINK_ITEMS.full_name} i ON i.id = a.item_id
                ORDER BY a.created_at, a.id
                """  # noqa: S608
            ).fetchall()

        latest = self.latest_snapshots()
        balances: list[AccountBalance] = []
        for row in rows:
            account = _account_from_row(row)
            balances.append(
                AccountBalance(
                    account=account,
                    institution_name=row[8],
                    institution_logo=row[9],
                    latest=latest.get(account.id),
                )
            )
        return balances

    def snapshot_history(self) -> list[tuple[str, BalanceSnapshot]]:
        """All snapshots, oldest first, paired with their account's category."""
        with self._cursor() as cur:
            rows = cur.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS}, a.category
                FROM {BALANCE_SNAPSHOTS.full_name} s
                JOIN {ACCOUNTS.full_name} a ON a.id = s.account_id
                ORDER BY s.recorded_at, s.seq
                """  # noqa: S608
            ).fetchall()
        return [(row[6], _snapshot_from_row(row)) for row in rows]

    def get_table_counts(self) -> dict[str, int]:
        """Row count per table, for status output."""
        counts: dict[str, int] = {}
        with self._cursor() as cur:
            for table in (LINK_ITEMS, ACCOUNTS, BALANCE_SNAPSHOTS):
                result = cur.execute(
                    f"SELECT COUNT(*) FROM {table.full_name}"  # noqa: S608
                ).fetchone()
                counts[table.name] = int(result[0]) if result else 0
        return counts
