"""
Repository pattern for data access.

Read-only queries against the tables written by the Fitsee application.
Filtering, counting, distinct selection, grouping and skip/take all happen
in SQL; aggregation that needs exact arithmetic happens in ``core``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from fitsee_dashboard.core.date_range import DateRange, to_naive_utc
from .db import DEFAULT_DB_PATH, get_connection
from .models import ApiLog, BillingLog, Generation, Plan, Session, Shop

# Stay well below SQLite's bound-parameter limit for IN (...) lists
_MAX_IN_PARAMS = 500

# Largest value SQLite can bind as an INTEGER
_SQLITE_MAX_INT = 2 ** 63 - 1

_SHOP_COLUMNS = """
    id, domain, shopifyId, email, phone, country, externalId, apiKey,
    allowTestPayment, isUninstalled, createdAt
"""
_BILLING_COLUMNS = "id, shopId, price, credits, eventType, chargeId, timestamp"
_GENERATION_COLUMNS = "id, shopId, productId, createdAt"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return to_naive_utc(datetime.fromisoformat(value))


def _chunks(values: Sequence[str]) -> Iterator[Sequence[str]]:
    for i in range(0, len(values), _MAX_IN_PARAMS):
        yield values[i:i + _MAX_IN_PARAMS]


def _where(conditions: List[str]) -> str:
    conditions = [c for c in conditions if c]
    if not conditions:
        return ""
    return " WHERE " + " AND ".join(conditions)


def _range_condition(
    date_range: Optional[DateRange],
    column: str,
    conditions: List[str],
    params: list
) -> None:
    if date_range is None or date_range.is_unbounded:
        return
    clause, clause_params = date_range.sql_predicate(column)
    conditions.append(clause)
    params.extend(clause_params)


def _row_to_shop(row) -> Shop:
    return Shop(
        id=row["id"],
        domain=row["domain"],
        shopify_id=row["shopifyId"],
        email=row["email"],
        phone=row["phone"],
        country=row["country"],
        external_id=row["externalId"],
        api_key=row["apiKey"],
        allow_test_payment=bool(row["allowTestPayment"]),
        is_uninstalled=bool(row["isUninstalled"]),
        created_at=_parse_timestamp(row["createdAt"])
    )


def _row_to_billing_log(row) -> BillingLog:
    return BillingLog(
        id=row["id"],
        shop_id=row["shopId"],
        price=Decimal(str(row["price"])),
        credits=row["credits"] or 0,
        event_type=row["eventType"],
        charge_id=row["chargeId"],
        timestamp=_parse_timestamp(row["timestamp"])
    )


def _row_to_generation(row) -> Generation:
    return Generation(
        id=row["id"],
        shop_id=row["shopId"],
        product_id=row["productId"],
        created_at=_parse_timestamp(row["createdAt"])
    )


def _row_to_plan(row) -> Plan:
    return Plan(
        id=row["id"],
        shop_id=row["shopId"],
        name=row["name"],
        available_generations=row["availableGenerations"] or 0,
        has_unlimited_generations=bool(row["hasUnlimitedGenerations"]),
        total_generations_used=row["totalGenerationsUsed"] or 0,
        is_active=bool(row["isActive"]),
        last_reset_at=_parse_timestamp(row["lastResetAt"])
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row["id"],
        shop_id=row["shopId"],
        user_id=row["userId"],
        email=row["email"],
        first_name=row["firstName"],
        last_name=row["lastName"],
        is_online=bool(row["isOnline"]),
        account_owner=bool(row["accountOwner"]),
        email_verified=bool(row["emailVerified"])
    )


def _row_to_api_log(row) -> ApiLog:
    return ApiLog(
        id=row["id"],
        shop_id=row["shopId"],
        endpoint=row["endpoint"],
        method=row["method"],
        status=row["status"],
        created_at=_parse_timestamp(row["createdAt"])
    )


class DashboardRepository:
    """Read-only access to shops, usage events and billing records.

    Every method opens its own connection, so one instance can serve any
    number of independent requests.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def _fetch_all(self, query: str, params: Sequence = ()) -> list:
        conn = get_connection(self.db_path)
        try:
            return conn.execute(query, list(params)).fetchall()
        finally:
            conn.close()

    def _fetch_scalar(self, query: str, params: Sequence = ()):
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(query, list(params)).fetchone()
            return row[0] if row is not None else None
        finally:
            conn.close()

    # Shops

    def list_shops(self, date_range: Optional[DateRange] = None) -> List[Shop]:
        """List shops created within a range, newest first."""
        conditions: List[str] = []
        params: list = []
        _range_condition(date_range, "createdAt", conditions, params)
        query = f'SELECT {_SHOP_COLUMNS} FROM "Shop"{_where(conditions)} ORDER BY createdAt DESC'
        return [_row_to_shop(row) for row in self._fetch_all(query, params)]

    def list_shops_page(self, offset: int, limit: int) -> List[Shop]:
        """List one page of shops, newest first.

        Args:
            offset: Number of shops to skip
            limit: Maximum number of shops to return

        Returns:
            Shops on the requested page (empty past the last page)
        """
        if offset > _SQLITE_MAX_INT:
            return []
        query = f'SELECT {_SHOP_COLUMNS} FROM "Shop" ORDER BY createdAt DESC LIMIT ? OFFSET ?'
        return [_row_to_shop(row) for row in self._fetch_all(query, [limit, offset])]

    def count_shops(self, date_range: Optional[DateRange] = None) -> int:
        conditions: List[str] = []
        params: list = []
        _range_condition(date_range, "createdAt", conditions, params)
        return self._fetch_scalar(f'SELECT COUNT(*) FROM "Shop"{_where(conditions)}', params) or 0

    def get_shop(self, shop_id: str) -> Optional[Shop]:
        rows = self._fetch_all(f'SELECT {_SHOP_COLUMNS} FROM "Shop" WHERE id = ?', [shop_id])
        return _row_to_shop(rows[0]) if rows else None

    def get_shop_domains(self, shop_ids: Sequence[str]) -> Dict[str, str]:
        """Map shop ids to domains; unknown ids are simply absent."""
        domains: Dict[str, str] = {}
        for chunk in _chunks(list(shop_ids)):
            placeholders = ", ".join("?" for _ in chunk)
            rows = self._fetch_all(
                f'SELECT id, domain FROM "Shop" WHERE id IN ({placeholders})', chunk
            )
            domains.update({row["id"]: row["domain"] for row in rows})
        return domains

    # Plans and sessions

    def get_plan(self, shop_id: str) -> Optional[Plan]:
        rows = self._fetch_all('SELECT * FROM "Plan" WHERE shopId = ?', [shop_id])
        return _row_to_plan(rows[0]) if rows else None

    def get_plans(self, shop_ids: Sequence[str]) -> Dict[str, Plan]:
        plans: Dict[str, Plan] = {}
        for chunk in _chunks(list(shop_ids)):
            placeholders = ", ".join("?" for _ in chunk)
            rows = self._fetch_all(
                f'SELECT * FROM "Plan" WHERE shopId IN ({placeholders})', chunk
            )
            plans.update({row["shopId"]: _row_to_plan(row) for row in rows})
        return plans

    def get_session(self, shop_id: str) -> Optional[Session]:
        rows = self._fetch_all('SELECT * FROM "Session" WHERE shopId = ?', [shop_id])
        return _row_to_session(rows[0]) if rows else None

    # Generations

    def count_generations(
        self,
        date_range: Optional[DateRange] = None,
        shop_id: Optional[str] = None
    ) -> int:
        conditions: List[str] = []
        params: list = []
        if shop_id is not None:
            conditions.append("shopId = ?")
            params.append(shop_id)
        _range_condition(date_range, "createdAt", conditions, params)
        return self._fetch_scalar(
            f'SELECT COUNT(*) FROM "Generation"{_where(conditions)}', params
        ) or 0

    def count_distinct_generation_shops(self, date_range: Optional[DateRange] = None) -> int:
        """Number of distinct shops with at least one generation in range."""
        conditions: List[str] = []
        params: list = []
        _range_condition(date_range, "createdAt", conditions, params)
        return self._fetch_scalar(
            f'SELECT COUNT(DISTINCT shopId) FROM "Generation"{_where(conditions)}', params
        ) or 0

    def generation_counts_by_shop(
        self,
        shop_ids: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None
    ) -> Dict[str, int]:
        """Count generations per shop.

        Args:
            shop_ids: Restrict to these shops; None means every shop
            date_range: Optional range on the generation timestamp

        Returns:
            Mapping of shop id to generation count (shops without events omitted)
        """
        if shop_ids is None:
            batches: List[Optional[Sequence[str]]] = [None]
        else:
            batches = list(_chunks(list(shop_ids)))

        counts: Dict[str, int] = {}
        for batch in batches:
            conditions: List[str] = []
            params: list = []
            if batch is not None:
                conditions.append(f"shopId IN ({', '.join('?' for _ in batch)})")
                params.extend(batch)
            _range_condition(date_range, "createdAt", conditions, params)
            rows = self._fetch_all(
                f'SELECT shopId, COUNT(*) AS total FROM "Generation"{_where(conditions)} GROUP BY shopId',
                params
            )
            counts.update({row["shopId"]: row["total"] for row in rows})
        return counts

    def list_generation_timestamps(self, date_range: Optional[DateRange] = None) -> List[datetime]:
        """Creation timestamps of generations in range, oldest first."""
        conditions: List[str] = []
        params: list = []
        _range_condition(date_range, "createdAt", conditions, params)
        rows = self._fetch_all(
            f'SELECT createdAt FROM "Generation"{_where(conditions)} ORDER BY createdAt ASC', params
        )
        return [_parse_timestamp(row["createdAt"]) for row in rows]

    def list_generation_shop_ids(self, date_range: Optional[DateRange] = None) -> List[Tuple[str, str]]:
        """(shop id, generation id) pairs for generations in range."""
        conditions: List[str] = []
        params: list = []
        _range_condition(date_range, "createdAt", conditions, params)
        rows = self._fetch_all(f'SELECT shopId, id FROM "Generation"{_where(conditions)}', params)
        return [(row["shopId"], row["id"]) for row in rows]

    def list_shop_generations(self, shop_id: str, limit: Optional[int] = None) -> List[Generation]:
        """Generations of one shop, newest first."""
        query = f'SELECT {_GENERATION_COLUMNS} FROM "Generation" WHERE shopId = ? ORDER BY createdAt DESC'
        params: list = [shop_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return [_row_to_generation(row) for row in self._fetch_all(query, params)]

    # Billing

    def list_billing_logs(
        self,
        shop_ids: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None
    ) -> List[BillingLog]:
        """Billing logs, newest first, optionally restricted to shops and a range."""
        if shop_ids is None:
            batches: List[Optional[Sequence[str]]] = [None]
        else:
            batches = list(_chunks(list(shop_ids)))

        logs: List[BillingLog] = []
        for batch in batches:
            conditions: List[str] = []
            params: list = []
            if batch is not None:
                conditions.append(f"shopId IN ({', '.join('?' for _ in batch)})")
                params.extend(batch)
            _range_condition(date_range, "timestamp", conditions, params)
            rows = self._fetch_all(
                f'SELECT {_BILLING_COLUMNS} FROM "BillingLog"{_where(conditions)} ORDER BY timestamp DESC',
                params
            )
            logs.extend(_row_to_billing_log(row) for row in rows)
        if len(batches) > 1:
            logs.sort(key=lambda log: log.timestamp, reverse=True)
        return logs

    def list_shop_billing_logs(self, shop_id: str, limit: Optional[int] = None) -> List[BillingLog]:
        """Billing logs of one shop, newest first."""
        query = f'SELECT {_BILLING_COLUMNS} FROM "BillingLog" WHERE shopId = ? ORDER BY timestamp DESC'
        params: list = [shop_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return [_row_to_billing_log(row) for row in self._fetch_all(query, params)]

    # API logs

    def list_shop_api_logs(self, shop_id: str, limit: int = 50) -> List[ApiLog]:
        """Most recent API logs of one shop, newest first."""
        rows = self._fetch_all(
            'SELECT id, shopId, endpoint, method, status, createdAt FROM "Log" '
            'WHERE shopId = ? ORDER BY createdAt DESC LIMIT ?',
            [shop_id, limit]
        )
        return [_row_to_api_log(row) for row in rows]


# Shared repository instances, one per database path
_repositories: Dict[str, DashboardRepository] = {}


def get_repository(db_path: str = DEFAULT_DB_PATH) -> DashboardRepository:
    """Get the shared repository instance for a database path.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of DashboardRepository reading from ``db_path``
    """
    if db_path not in _repositories:
        _repositories[db_path] = DashboardRepository(db_path)
    return _repositories[db_path]
