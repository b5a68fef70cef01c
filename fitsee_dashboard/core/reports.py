"""
Dashboard report builders.

Each builder takes a repository plus filters and pagination and returns a
plain view-model. Builders are read-only and independent of the web layer;
store errors propagate unchanged.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from fitsee_dashboard.storage.models import ApiLog, BillingLog, Generation, Plan, Session, Shop
from fitsee_dashboard.storage.repository import DashboardRepository
from .date_range import DateFilter, DateRange, resolve_date_range
from .pagination import Pagination
from .ranking import DEFAULT_TOP_N, rank_top_shops
from .revenue import calculate_net_revenue
from .timeseries import DailyCount, bucket_by_day

logger = logging.getLogger(__name__)

RECENT_ITEMS_LIMIT = 10
API_LOG_LIMIT = 50


class InvalidShopId(ValueError):
    """Raised when a shop id is missing or blank."""


class ShopNotFound(LookupError):
    """Raised when no shop exists for the requested id."""
    def __init__(self, shop_id: str):
        super().__init__(f"Shop not found: {shop_id}")
        self.shop_id = shop_id


@dataclass(frozen=True)
class DateFilterParams:
    """Raw date filter inputs as received from a request."""
    date_filter: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass(frozen=True)
class OverviewFilters:
    """Independent filters of the overview page.

    ``date_filter`` selects shops by creation date. The per-metric filters,
    when given, additionally restrict which generations and billing logs
    are counted for those shops. A ``custom`` per-metric filter takes its
    bounds from the matching start and end dates.
    """
    date_filter: Optional[str] = None
    generations_date_filter: Optional[str] = None
    revenue_date_filter: Optional[str] = None
    generations_start: Optional[str] = None
    generations_end: Optional[str] = None
    revenue_start: Optional[str] = None
    revenue_end: Optional[str] = None


@dataclass
class ShopRow:
    """One shop with its per-shop aggregates."""
    shop: Shop
    generations: int
    revenue: Decimal
    plan: Optional[Plan] = None


@dataclass
class OverviewStats:
    total_shops: int
    active_shops: int
    total_generations: int
    total_revenue: Decimal
    shops_with_plans: int


@dataclass
class OverviewReport:
    rows: List[ShopRow]
    stats: OverviewStats
    date_filter: str


@dataclass
class ShopsPage:
    rows: List[ShopRow]
    total_shops: int
    page: int
    total_pages: int


@dataclass
class TopShop:
    shop_id: str
    domain: Optional[str]
    count: int


@dataclass
class GenerationsReport:
    total_generations: int
    unique_shops: int
    avg_per_shop: float
    chart_data: List[DailyCount]
    top_shops: List[TopShop]
    date_filter: str
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None


@dataclass
class ShopDetail:
    shop: Shop
    plan: Optional[Plan]
    session: Optional[Session]
    total_revenue: Decimal
    generations_count: int
    billing_logs_count: int
    recent_generations: List[Generation] = field(default_factory=list)
    recent_billing_logs: List[BillingLog] = field(default_factory=list)
    api_logs: List[ApiLog] = field(default_factory=list)


def _filter_token(token: Optional[str], default: DateFilter) -> str:
    return DateFilter.parse(token, default).value


def _revenue_by_shop(logs: List[BillingLog]) -> Dict[str, Decimal]:
    grouped: Dict[str, List[BillingLog]] = {}
    for log in logs:
        grouped.setdefault(log.shop_id, []).append(log)
    return {shop_id: calculate_net_revenue(shop_logs) for shop_id, shop_logs in grouped.items()}


def _metric_range(token: Optional[str], start: Optional[str], end: Optional[str]) -> Optional[DateRange]:
    if not token:
        return None
    return resolve_date_range(token, start=start, end=end)


def _build_rows(
    repository: DashboardRepository,
    shops: List[Shop],
    generation_range: Optional[DateRange] = None,
    revenue_range: Optional[DateRange] = None
) -> List[ShopRow]:
    if not shops:
        return []

    shop_ids = [shop.id for shop in shops]

    generation_counts = repository.generation_counts_by_shop(shop_ids, generation_range)
    revenue = _revenue_by_shop(repository.list_billing_logs(shop_ids, revenue_range))
    plans = repository.get_plans(shop_ids)

    return [
        ShopRow(
            shop=shop,
            generations=generation_counts.get(shop.id, 0),
            revenue=revenue.get(shop.id, Decimal("0")),
            plan=plans.get(shop.id)
        )
        for shop in shops
    ]


def build_overview(
    repository: DashboardRepository,
    filters: OverviewFilters = OverviewFilters()
) -> OverviewReport:
    """Build the all-shops overview with summary statistics.

    Args:
        repository: Data-access collaborator
        filters: Shop creation filter plus optional per-metric filters

    Returns:
        OverviewReport with one row per shop (newest first) and totals
    """
    shop_range = resolve_date_range(filters.date_filter, default=DateFilter.ALL)
    shops = repository.list_shops(shop_range)
    rows = _build_rows(
        repository,
        shops,
        generation_range=_metric_range(
            filters.generations_date_filter, filters.generations_start, filters.generations_end
        ),
        revenue_range=_metric_range(
            filters.revenue_date_filter, filters.revenue_start, filters.revenue_end
        )
    )

    stats = OverviewStats(
        total_shops=len(rows),
        active_shops=sum(1 for row in rows if row.shop.is_active),
        total_generations=sum(row.generations for row in rows),
        total_revenue=sum((row.revenue for row in rows), Decimal("0")),
        shops_with_plans=sum(1 for row in rows if row.plan is not None)
    )
    logger.debug("Overview built for %d shops", stats.total_shops)

    return OverviewReport(
        rows=rows,
        stats=stats,
        date_filter=_filter_token(filters.date_filter, DateFilter.ALL)
    )


def build_shops_page(
    repository: DashboardRepository,
    pagination: Pagination = Pagination()
) -> ShopsPage:
    """Build one page of the shop listing.

    Pages past the end are empty rather than an error.
    """
    total = repository.count_shops()
    shops = repository.list_shops_page(pagination.offset, pagination.limit)
    return ShopsPage(
        rows=_build_rows(repository, shops),
        total_shops=total,
        page=pagination.page,
        total_pages=pagination.total_pages(total)
    )


def build_generations_report(
    repository: DashboardRepository,
    filters: DateFilterParams = DateFilterParams(),
    top_n: int = DEFAULT_TOP_N
) -> GenerationsReport:
    """Build generation statistics, daily chart data and top shops.

    The date filter defaults to the last 30 days. A custom range with a
    missing or malformed bound covers all time.

    Args:
        repository: Data-access collaborator
        filters: ``dateFilter`` token plus optional custom start/end
        top_n: Number of shops in the ranking

    Returns:
        GenerationsReport view-model
    """
    date_range = resolve_date_range(
        filters.date_filter,
        start=filters.start,
        end=filters.end,
        default=DateFilter.THIRTY_DAYS
    )

    total = repository.count_generations(date_range)
    unique_shops = repository.count_distinct_generation_shops(date_range)
    chart_data = bucket_by_day(repository.list_generation_timestamps(date_range))

    ranking = rank_top_shops(repository.list_generation_shop_ids(date_range), limit=top_n)
    domains = repository.get_shop_domains([entry.shop_id for entry in ranking])
    top_shops = [
        TopShop(shop_id=entry.shop_id, domain=domains.get(entry.shop_id), count=entry.count)
        for entry in ranking
    ]

    return GenerationsReport(
        total_generations=total,
        unique_shops=unique_shops,
        avg_per_shop=total / (unique_shops or 1),
        chart_data=chart_data,
        top_shops=top_shops,
        date_filter=_filter_token(filters.date_filter, DateFilter.THIRTY_DAYS),
        custom_start=filters.start,
        custom_end=filters.end
    )


def build_shop_detail(
    repository: DashboardRepository,
    shop_id: Optional[str],
    recent_limit: int = RECENT_ITEMS_LIMIT,
    api_log_limit: int = API_LOG_LIMIT
) -> ShopDetail:
    """Build the detail view of a single shop.

    Args:
        repository: Data-access collaborator
        shop_id: Shop identifier from the request path
        recent_limit: Number of recent generations and billing logs to include
        api_log_limit: Number of recent API logs to include

    Returns:
        ShopDetail view-model

    Raises:
        InvalidShopId: If shop_id is missing or blank
        ShopNotFound: If no shop has this id
    """
    if shop_id is None or not shop_id.strip():
        raise InvalidShopId("Shop ID is required")

    shop = repository.get_shop(shop_id)
    if shop is None:
        raise ShopNotFound(shop_id)

    billing_logs = repository.list_shop_billing_logs(shop_id)

    return ShopDetail(
        shop=shop,
        plan=repository.get_plan(shop_id),
        session=repository.get_session(shop_id),
        total_revenue=calculate_net_revenue(billing_logs),
        generations_count=repository.count_generations(shop_id=shop_id),
        billing_logs_count=len(billing_logs),
        recent_generations=repository.list_shop_generations(shop_id, limit=recent_limit),
        recent_billing_logs=billing_logs[:recent_limit],
        api_logs=repository.list_shop_api_logs(shop_id, limit=api_log_limit)
    )
