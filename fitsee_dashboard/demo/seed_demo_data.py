# fitsee_dashboard/demo/seed_demo_data.py
"""
Local demo store.

The real tables belong to the Fitsee application. This module creates a
SQLite mirror of them and fills it with sample shops so the dashboard can
be run and tested without the production database.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fitsee_dashboard.storage.db import DEFAULT_DB_PATH, get_connection

logger = logging.getLogger(__name__)

DEMO_SCHEMA = """
CREATE TABLE IF NOT EXISTS "Shop" (
    id TEXT PRIMARY KEY,
    domain TEXT NOT NULL,
    shopifyId TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    country TEXT,
    externalId TEXT,
    apiKey TEXT NOT NULL,
    allowTestPayment INTEGER NOT NULL DEFAULT 0,
    isUninstalled INTEGER NOT NULL DEFAULT 0,
    createdAt TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS "Generation" (
    id TEXT PRIMARY KEY,
    shopId TEXT NOT NULL REFERENCES "Shop"(id),
    productId TEXT,
    createdAt TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS "BillingLog" (
    id TEXT PRIMARY KEY,
    shopId TEXT NOT NULL REFERENCES "Shop"(id),
    price REAL NOT NULL,
    credits INTEGER NOT NULL DEFAULT 0,
    eventType TEXT,
    chargeId TEXT,
    timestamp TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS "Plan" (
    id TEXT PRIMARY KEY,
    shopId TEXT NOT NULL UNIQUE REFERENCES "Shop"(id),
    name TEXT NOT NULL,
    availableGenerations INTEGER NOT NULL DEFAULT 0,
    hasUnlimitedGenerations INTEGER NOT NULL DEFAULT 0,
    totalGenerationsUsed INTEGER NOT NULL DEFAULT 0,
    isActive INTEGER NOT NULL DEFAULT 0,
    lastResetAt TEXT
);
CREATE TABLE IF NOT EXISTS "Session" (
    id TEXT PRIMARY KEY,
    shopId TEXT NOT NULL UNIQUE REFERENCES "Shop"(id),
    userId TEXT,
    email TEXT,
    firstName TEXT,
    lastName TEXT,
    isOnline INTEGER NOT NULL DEFAULT 0,
    accountOwner INTEGER NOT NULL DEFAULT 0,
    emailVerified INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS "Log" (
    id TEXT PRIMARY KEY,
    shopId TEXT NOT NULL REFERENCES "Shop"(id),
    endpoint TEXT NOT NULL,
    method TEXT NOT NULL,
    status INTEGER NOT NULL,
    createdAt TEXT NOT NULL
);
"""


def _new_id() -> str:
    return uuid.uuid4().hex


def _ts(value: datetime) -> str:
    return value.isoformat()


def initialize_demo_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the mirror tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript(DEMO_SCHEMA)
        conn.commit()
    finally:
        conn.close()


def insert_shop(
    conn,
    domain: str,
    created_at: datetime,
    shop_id: Optional[str] = None,
    is_uninstalled: bool = False,
    email: Optional[str] = None
) -> str:
    """Insert a shop row and return its id."""
    shop_id = shop_id or _new_id()
    conn.execute(
        'INSERT INTO "Shop" (id, domain, shopifyId, email, apiKey, isUninstalled, createdAt) '
        'VALUES (?, ?, ?, ?, ?, ?, ?)',
        (shop_id, domain, f"gid://shopify/Shop/{shop_id[:8]}", email,
         f"shpat_{uuid.uuid4().hex}", int(is_uninstalled), _ts(created_at))
    )
    return shop_id


def insert_generations(conn, shop_id: str, timestamps: Iterable[datetime]) -> None:
    for created_at in timestamps:
        conn.execute(
            'INSERT INTO "Generation" (id, shopId, productId, createdAt) VALUES (?, ?, ?, ?)',
            (_new_id(), shop_id, f"prod_{_new_id()[:6]}", _ts(created_at))
        )


def insert_billing_log(
    conn,
    shop_id: str,
    price: float,
    timestamp: datetime,
    credits: int = 0,
    event_type: str = "purchase"
) -> None:
    conn.execute(
        'INSERT INTO "BillingLog" (id, shopId, price, credits, eventType, chargeId, timestamp) '
        'VALUES (?, ?, ?, ?, ?, ?, ?)',
        (_new_id(), shop_id, price, credits, event_type, f"ch_{_new_id()[:10]}", _ts(timestamp))
    )


def insert_plan(conn, shop_id: str, name: str, available: int = 100, used: int = 0,
                unlimited: bool = False, is_active: bool = True) -> None:
    conn.execute(
        'INSERT INTO "Plan" (id, shopId, name, availableGenerations, hasUnlimitedGenerations, '
        'totalGenerationsUsed, isActive) VALUES (?, ?, ?, ?, ?, ?, ?)',
        (_new_id(), shop_id, name, available, int(unlimited), used, int(is_active))
    )


def insert_session(conn, shop_id: str, email: str, first_name: str, last_name: str) -> None:
    conn.execute(
        'INSERT INTO "Session" (id, shopId, userId, email, firstName, lastName, isOnline, '
        'accountOwner, emailVerified) VALUES (?, ?, ?, ?, ?, ?, 1, 1, 1)',
        (_new_id(), shop_id, _new_id()[:12], email, first_name, last_name)
    )


def insert_api_log(conn, shop_id: str, endpoint: str, method: str, status: int,
                   created_at: datetime) -> None:
    conn.execute(
        'INSERT INTO "Log" (id, shopId, endpoint, method, status, createdAt) VALUES (?, ?, ?, ?, ?, ?)',
        (_new_id(), shop_id, endpoint, method, status, _ts(created_at))
    )


def seed_demo_data(db_path: str = DEFAULT_DB_PATH, now: Optional[datetime] = None) -> int:
    """Populate the demo store with a handful of shops and their activity.

    Args:
        db_path: Path to SQLite database file
        now: Reference time for the generated timestamps (naive UTC)

    Returns:
        Number of shops inserted (0 when the store already has shops)
    """
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    initialize_demo_schema(db_path)

    shops = [
        ("aurora-apparel.myshopify.com", 45, False, "Pro", [29.99, 29.99]),
        ("north-pier-shoes.myshopify.com", 20, False, "Starter", [9.99]),
        ("lumen-eyewear.myshopify.com", 6, False, None, []),
        ("old-harbor-hats.myshopify.com", 2, True, "Starter", [9.99]),
    ]

    conn = get_connection(db_path)
    try:
        existing = conn.execute('SELECT COUNT(*) FROM "Shop"').fetchone()[0]
        if existing:
            logger.info("Demo store %s already has %d shops, skipping seed", db_path, existing)
            return 0
        conn.execute("BEGIN TRANSACTION")
        for index, (domain, age_days, uninstalled, plan, prices) in enumerate(shops):
            created_at = now - timedelta(days=age_days)
            shop_id = insert_shop(
                conn, domain, created_at,
                is_uninstalled=uninstalled,
                email=f"owner@{domain}"
            )
            insert_generations(
                conn, shop_id,
                [now - timedelta(days=day, hours=index) for day in range(age_days) for _ in range(index + 1)]
            )
            for offset, price in enumerate(prices):
                insert_billing_log(conn, shop_id, price, created_at + timedelta(days=offset), credits=100)
            if plan:
                insert_plan(conn, shop_id, plan, available=500 if plan == "Pro" else 100)
            insert_session(conn, shop_id, f"owner@{domain}", "Demo", "Owner")
            insert_api_log(conn, shop_id, "/api/generate", "POST", 200, now - timedelta(hours=1))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    return len(shops)
