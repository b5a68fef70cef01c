"""
HTTP surface for the dashboard.

Each view parses its query parameters, calls a report builder and returns
the view-model as JSON for the rendering layer.
"""

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from fitsee_dashboard.config.loader import DashboardConfig
from fitsee_dashboard.core.pagination import Pagination, parse_page
from fitsee_dashboard.core.reports import (
    DateFilterParams,
    GenerationsReport,
    InvalidShopId,
    OverviewFilters,
    ShopDetail,
    ShopNotFound,
    ShopRow,
    build_generations_report,
    build_overview,
    build_shop_detail,
    build_shops_page,
)
from fitsee_dashboard.core.revenue import quantize_currency
from fitsee_dashboard.storage.repository import DashboardRepository

logger = logging.getLogger(__name__)


def _money(amount: Decimal) -> str:
    return str(quantize_currency(amount))


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _shop_row(row: ShopRow) -> Dict[str, Any]:
    shop = row.shop
    return {
        "id": shop.id,
        "domain": shop.domain,
        "email": shop.email,
        "status": "active" if shop.is_active else "uninstalled",
        "plan": row.plan.name if row.plan else None,
        "generations": row.generations,
        "revenue": _money(row.revenue),
        "created_at": _timestamp(shop.created_at),
    }


def _generations_payload(report: GenerationsReport) -> Dict[str, Any]:
    return {
        "total_generations": report.total_generations,
        "unique_shops": report.unique_shops,
        "avg_per_shop": round(report.avg_per_shop, 2),
        "chart_data": [{"date": b.date, "count": b.count} for b in report.chart_data],
        "top_shops": [
            {"shop_id": s.shop_id, "domain": s.domain, "count": s.count}
            for s in report.top_shops
        ],
        "date_filter": report.date_filter,
        "custom_start": report.custom_start,
        "custom_end": report.custom_end,
    }


def _shop_detail_payload(detail: ShopDetail) -> Dict[str, Any]:
    shop = detail.shop
    plan = detail.plan
    session = detail.session
    return {
        "shop": {
            "id": shop.id,
            "domain": shop.domain,
            "status": "active" if shop.is_active else "uninstalled",
            "email": shop.email,
            "phone": shop.phone,
            "country": shop.country,
            "shopify_id": shop.shopify_id,
            "external_id": shop.external_id,
            "api_key": shop.api_key_preview,
            "allow_test_payment": shop.allow_test_payment,
            "created_at": _timestamp(shop.created_at),
        },
        "plan": None if plan is None else {
            "name": plan.name,
            "available_generations": None if plan.has_unlimited_generations else plan.available_generations,
            "unlimited": plan.has_unlimited_generations,
            "total_generations_used": plan.total_generations_used,
            "is_active": plan.is_active,
            "last_reset_at": _timestamp(plan.last_reset_at),
        },
        "session": None if session is None else {
            "user_id": session.user_id,
            "email": session.email,
            "name": session.full_name,
            "is_online": session.is_online,
            "account_owner": session.account_owner,
            "email_verified": session.email_verified,
        },
        "total_revenue": _money(detail.total_revenue),
        "generations_count": detail.generations_count,
        "billing_logs_count": detail.billing_logs_count,
        "recent_generations": [
            {"id": g.id, "product_id": g.product_id, "created_at": _timestamp(g.created_at)}
            for g in detail.recent_generations
        ],
        "recent_billing_logs": [
            {
                "id": log.id,
                "event_type": log.event_type,
                "credits": log.credits,
                "price": _money(log.price),
                "charge_id": log.charge_id,
                "timestamp": _timestamp(log.timestamp),
            }
            for log in detail.recent_billing_logs
        ],
        "api_logs": [
            {
                "endpoint": log.endpoint,
                "method": log.method,
                "status": log.status,
                "created_at": _timestamp(log.created_at),
            }
            for log in detail.api_logs
        ],
    }


def create_app(
    config: Optional[DashboardConfig] = None,
    repository: Optional[DashboardRepository] = None
) -> FastAPI:
    """Build the dashboard application.

    Args:
        config: Dashboard configuration; defaults apply when omitted
        repository: Data-access collaborator; built from ``config`` when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or DashboardConfig()
    repository = repository or DashboardRepository(config.database.path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Dashboard started, reading from %s", repository.db_path)
        yield
        logger.info("Dashboard shutdown complete")

    app = FastAPI(title="Fitsee Dashboard", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.repository = repository

    @app.exception_handler(InvalidShopId)
    async def invalid_shop_id_handler(request: Request, exc: InvalidShopId):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ShopNotFound)
    async def shop_not_found_handler(request: Request, exc: ShopNotFound):
        return JSONResponse(status_code=404, content={"detail": "Shop not found"})

    @app.exception_handler(sqlite3.Error)
    async def store_error_handler(request: Request, exc: sqlite3.Error):
        logger.exception("Store query failed for %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/")
    def overview(
        request: Request,
        date_filter: Optional[str] = Query(None, alias="dateFilter"),
        generations_date_filter: Optional[str] = Query(None, alias="generationsDateFilter"),
        revenue_date_filter: Optional[str] = Query(None, alias="revenueDateFilter"),
        generations_start: Optional[str] = Query(None, alias="generationsStart"),
        generations_end: Optional[str] = Query(None, alias="generationsEnd"),
        revenue_start: Optional[str] = Query(None, alias="revenueStart"),
        revenue_end: Optional[str] = Query(None, alias="revenueEnd"),
    ):
        report = build_overview(
            request.app.state.repository,
            OverviewFilters(
                date_filter=date_filter,
                generations_date_filter=generations_date_filter,
                revenue_date_filter=revenue_date_filter,
                generations_start=generations_start,
                generations_end=generations_end,
                revenue_start=revenue_start,
                revenue_end=revenue_end,
            )
        )
        stats = report.stats
        return {
            "shops": [_shop_row(row) for row in report.rows],
            "stats": {
                "total_shops": stats.total_shops,
                "active_shops": stats.active_shops,
                "total_generations": stats.total_generations,
                "total_revenue": _money(stats.total_revenue),
                "shops_with_plans": stats.shops_with_plans,
            },
            "date_filter": report.date_filter,
        }

    @app.get("/shops")
    def shops(request: Request, page: Optional[str] = Query(None)):
        pagination = Pagination(
            page=parse_page(page),
            page_size=request.app.state.config.reports.page_size
        )
        result = build_shops_page(request.app.state.repository, pagination)
        return {
            "shops": [_shop_row(row) for row in result.rows],
            "total_shops": result.total_shops,
            "page": result.page,
            "total_pages": result.total_pages,
        }

    @app.get("/shops/{shop_id}")
    def shop_detail(request: Request, shop_id: str):
        reports = request.app.state.config.reports
        detail = build_shop_detail(
            request.app.state.repository,
            shop_id,
            recent_limit=reports.recent_items_limit,
            api_log_limit=reports.api_log_limit
        )
        return _shop_detail_payload(detail)

    @app.get("/generations")
    def generations(
        request: Request,
        date_filter: Optional[str] = Query(None, alias="dateFilter"),
        start: Optional[str] = Query(None),
        end: Optional[str] = Query(None),
    ):
        report = build_generations_report(
            request.app.state.repository,
            DateFilterParams(date_filter=date_filter, start=start, end=end),
            top_n=request.app.state.config.reports.top_shops_limit
        )
        return _generations_payload(report)

    @app.get("/health")
    def health():
        return {"ok": True, "service": "fitsee-dashboard"}

    return app
