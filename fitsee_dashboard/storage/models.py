"""
Data models for the storage layer.

Read-only views of the records written by the Fitsee application.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Shop:
    """An installed tenant of the application."""
    id: str
    domain: str
    shopify_id: str
    api_key: str
    created_at: datetime
    email: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    external_id: Optional[str] = None
    allow_test_payment: bool = False
    is_uninstalled: bool = False

    @property
    def is_active(self) -> bool:
        return not self.is_uninstalled

    @property
    def api_key_preview(self) -> str:
        """First 20 characters of the API key, never the full secret."""
        return f"{self.api_key[:20]}..."


@dataclass(frozen=True)
class Generation:
    """A single usage event attributed to a shop."""
    id: str
    shop_id: str
    created_at: datetime
    product_id: Optional[str] = None


@dataclass(frozen=True)
class BillingLog:
    """A monetary transaction attributed to a shop."""
    id: str
    shop_id: str
    price: Decimal
    timestamp: datetime
    credits: int = 0
    event_type: Optional[str] = None
    charge_id: Optional[str] = None


@dataclass(frozen=True)
class Plan:
    """Subscription state and generation quota for a shop."""
    id: str
    shop_id: str
    name: str
    available_generations: int = 0
    has_unlimited_generations: bool = False
    total_generations_used: int = 0
    is_active: bool = False
    last_reset_at: Optional[datetime] = None


@dataclass(frozen=True)
class Session:
    """Snapshot of the shop owner's auth session."""
    id: str
    shop_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_online: bool = False
    account_owner: bool = False
    email_verified: bool = False

    @property
    def full_name(self) -> Optional[str]:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return None


@dataclass(frozen=True)
class ApiLog:
    """An API request made on behalf of a shop."""
    id: str
    shop_id: str
    endpoint: str
    method: str
    status: int
    created_at: datetime
