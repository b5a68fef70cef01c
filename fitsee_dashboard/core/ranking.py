"""
Top-N ranking of shops by event volume.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Tuple

DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class ShopCount:
    """Event count attributed to a single shop."""
    shop_id: str
    count: int


def rank_top_shops(
    pairs: Iterable[Tuple[str, Any]],
    limit: int = DEFAULT_TOP_N
) -> List[ShopCount]:
    """Rank shops by number of events, highest first.

    The order among shops with equal counts is unspecified.

    Args:
        pairs: (shop_id, event) pairs; only the shop id is counted
        limit: Maximum number of shops to return

    Returns:
        Up to ``limit`` ShopCount entries, count descending

    Raises:
        ValueError: If limit is negative
    """
    if limit < 0:
        raise ValueError("limit cannot be negative")

    counts = Counter(shop_id for shop_id, _ in pairs)
    return [ShopCount(shop_id=shop_id, count=count) for shop_id, count in counts.most_common(limit)]
