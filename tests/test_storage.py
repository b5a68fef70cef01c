"""
Unit tests for the storage layer.

Tests repository reads against a temporary SQLite mirror of the store.
"""

import os
import shutil
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from fitsee_dashboard.core.date_range import DateRange
from fitsee_dashboard.demo.seed_demo_data import (
    initialize_demo_schema,
    insert_api_log,
    insert_billing_log,
    insert_generations,
    insert_plan,
    insert_session,
    insert_shop,
    seed_demo_data,
)
from fitsee_dashboard.storage.db import get_connection
from fitsee_dashboard.storage.repository import DashboardRepository, get_repository


class TestShopQueries:
    """Test shop listing, counting and pagination."""

    def setup_method(self):
        """Create a store with 25 shops, one per day in January 2024."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_demo_schema(self.db_path)

        conn = get_connection(self.db_path)
        try:
            for day in range(1, 26):
                insert_shop(
                    conn,
                    f"shop-{day:02d}.myshopify.com",
                    datetime(2024, 1, day, 12, 0),
                    shop_id=f"shop-{day:02d}",
                    is_uninstalled=(day % 5 == 0)
                )
            conn.commit()
        finally:
            conn.close()

        self.repository = DashboardRepository(self.db_path)

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_list_shops_newest_first(self):
        shops = self.repository.list_shops()
        assert len(shops) == 25
        assert shops[0].id == "shop-25"
        assert shops[-1].id == "shop-01"

    def test_list_shops_in_range(self):
        date_range = DateRange(start=datetime(2024, 1, 10), end=datetime(2024, 1, 13))
        shops = self.repository.list_shops(date_range)
        assert [shop.id for shop in shops] == ["shop-12", "shop-11", "shop-10"]

    def test_count_shops(self):
        assert self.repository.count_shops() == 25
        assert self.repository.count_shops(DateRange(start=datetime(2024, 1, 21))) == 5

    def test_second_page_returns_remaining_five(self):
        page = self.repository.list_shops_page(offset=20, limit=20)
        assert len(page) == 5
        assert page[0].id == "shop-05"
        assert page[-1].id == "shop-01"

    def test_page_past_end_is_empty(self):
        assert self.repository.list_shops_page(offset=40, limit=20) == []

    def test_offset_beyond_integer_range_is_empty(self):
        assert self.repository.list_shops_page(offset=2 ** 63, limit=20) == []
        assert self.repository.list_shops_page(offset=10 ** 20, limit=20) == []

    def test_get_shop(self):
        shop = self.repository.get_shop("shop-05")
        assert shop is not None
        assert shop.domain == "shop-05.myshopify.com"
        assert shop.is_uninstalled is True
        assert shop.created_at == datetime(2024, 1, 5, 12, 0)

    def test_get_unknown_shop(self):
        assert self.repository.get_shop("missing") is None

    def test_get_shop_domains(self):
        domains = self.repository.get_shop_domains(["shop-01", "shop-02", "missing"])
        assert domains == {
            "shop-01": "shop-01.myshopify.com",
            "shop-02": "shop-02.myshopify.com",
        }

    def test_get_shop_domains_empty(self):
        assert self.repository.get_shop_domains([]) == {}


class TestActivityQueries:
    """Test generation, billing, plan, session and log reads."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_demo_schema(self.db_path)

        conn = get_connection(self.db_path)
        try:
            insert_shop(conn, "alpha.myshopify.com", datetime(2024, 1, 1), shop_id="alpha")
            insert_shop(conn, "beta.myshopify.com", datetime(2024, 1, 2), shop_id="beta")
            insert_generations(conn, "alpha", [
                datetime(2024, 1, 10, 9, 0),
                datetime(2024, 1, 10, 18, 0),
                datetime(2024, 1, 12, 7, 0),
            ])
            insert_generations(conn, "beta", [datetime(2024, 2, 1, 10, 0)])
            insert_billing_log(conn, "alpha", 29.99, datetime(2024, 1, 5))
            insert_billing_log(conn, "alpha", 9.99, datetime(2024, 2, 5))
            insert_billing_log(conn, "beta", 100.0, datetime(2024, 1, 20))
            insert_plan(conn, "alpha", "Pro", available=500, used=3)
            insert_session(conn, "alpha", "owner@alpha.com", "Ada", "Lovelace")
            for minute in range(60):
                insert_api_log(conn, "alpha", "/api/generate", "POST", 200,
                               datetime(2024, 1, 10) + timedelta(minutes=minute))
            conn.commit()
        finally:
            conn.close()

        self.repository = DashboardRepository(self.db_path)
        self.january = DateRange(start=datetime(2024, 1, 1), end=datetime(2024, 2, 1))

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_count_generations(self):
        assert self.repository.count_generations() == 4
        assert self.repository.count_generations(self.january) == 3
        assert self.repository.count_generations(shop_id="beta") == 1

    def test_count_distinct_generation_shops(self):
        assert self.repository.count_distinct_generation_shops() == 2
        assert self.repository.count_distinct_generation_shops(self.january) == 1

    def test_generation_counts_by_shop(self):
        assert self.repository.generation_counts_by_shop() == {"alpha": 3, "beta": 1}
        assert self.repository.generation_counts_by_shop(["beta"]) == {"beta": 1}
        assert self.repository.generation_counts_by_shop(None, self.january) == {"alpha": 3}

    def test_generation_counts_for_no_shops(self):
        assert self.repository.generation_counts_by_shop([]) == {}

    def test_generation_timestamps_ascending(self):
        timestamps = self.repository.list_generation_timestamps()
        assert timestamps == sorted(timestamps)
        assert timestamps[0] == datetime(2024, 1, 10, 9, 0)

    def test_generation_shop_ids(self):
        pairs = self.repository.list_generation_shop_ids(self.january)
        assert sorted(shop_id for shop_id, _ in pairs) == ["alpha", "alpha", "alpha"]

    def test_list_shop_generations_newest_first(self):
        generations = self.repository.list_shop_generations("alpha", limit=2)
        assert [g.created_at for g in generations] == [
            datetime(2024, 1, 12, 7, 0),
            datetime(2024, 1, 10, 18, 0),
        ]

    def test_billing_logs_decimal_prices(self):
        logs = self.repository.list_billing_logs(["alpha"])
        assert [log.price for log in logs] == [Decimal("9.99"), Decimal("29.99")]

    def test_billing_logs_in_range(self):
        logs = self.repository.list_billing_logs(date_range=self.january)
        assert sorted(log.shop_id for log in logs) == ["alpha", "beta"]

    def test_list_shop_billing_logs(self):
        logs = self.repository.list_shop_billing_logs("alpha", limit=1)
        assert len(logs) == 1
        assert logs[0].timestamp == datetime(2024, 2, 5)

    def test_plan_and_session(self):
        plan = self.repository.get_plan("alpha")
        assert plan.name == "Pro"
        assert plan.available_generations == 500
        assert plan.total_generations_used == 3
        assert plan.is_active is True
        assert self.repository.get_plan("beta") is None

        session = self.repository.get_session("alpha")
        assert session.full_name == "Ada Lovelace"
        assert session.is_online is True

    def test_get_plans(self):
        plans = self.repository.get_plans(["alpha", "beta"])
        assert list(plans) == ["alpha"]

    def test_api_logs_limited(self):
        logs = self.repository.list_shop_api_logs("alpha", limit=50)
        assert len(logs) == 50
        assert logs[0].created_at == datetime(2024, 1, 10, 0, 59)


class TestStoreFailures:
    """Test that store errors propagate."""

    def test_missing_tables_raise(self):
        import sqlite3
        with tempfile.TemporaryDirectory() as temp_dir:
            repository = DashboardRepository(os.path.join(temp_dir, "empty.db"))
            with pytest.raises(sqlite3.OperationalError, match="no such table"):
                repository.count_shops()


class TestDemoSeed:
    """Test the local demo store."""

    def test_seed_demo_data(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "demo.db")
            assert seed_demo_data(db_path) == 4

            repository = DashboardRepository(db_path)
            assert repository.count_shops() == 4
            assert repository.count_generations() > 0
            assert len(repository.list_billing_logs()) == 4

    def test_seeding_twice_keeps_original_shops(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "demo.db")
            assert seed_demo_data(db_path) == 4
            assert seed_demo_data(db_path) == 0

            repository = DashboardRepository(db_path)
            assert repository.count_shops() == 4
            assert len(repository.list_billing_logs()) == 4


class TestSharedRepository:
    """Test the shared repository lookup."""

    def test_same_path_returns_same_instance(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "a.db")
            assert get_repository(db_path) is get_repository(db_path)

    def test_each_path_gets_its_own_repository(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            first = get_repository(os.path.join(temp_dir, "a.db"))
            second = get_repository(os.path.join(temp_dir, "b.db"))

            assert first is not second
            assert first.db_path == os.path.join(temp_dir, "a.db")
            assert second.db_path == os.path.join(temp_dir, "b.db")
