"""Provider-agnostic data models produced by the ad platform clients.

This module contains the dataclass definitions shared by every provider.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional


@dataclass
class NormalizedMetric:
    """One day of spend/delivery for one campaign (or account).

    Attributes:
        provider_id: Provider identifier ("google", "tiktok", "linkedin").
        date: ISO calendar day (YYYY-MM-DD).
        spend: Spend in account currency units.
        impressions: Impression count.
        clicks: Click count.
        conversions: Conversion count.
        revenue: Conversion value; None when not reported or zero.
        campaign_id: Provider campaign id.
        campaign_name: Provider campaign name.
        account_id: Provider ad account id.
        raw_payload: Unmodified provider row, kept for audit.
    """

    provider_id: str
    date: str
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: Optional[float] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    account_id: Optional[str] = None
    raw_payload: dict = field(default_factory=dict)

    def to_dict(self, include_raw: bool = True) -> dict[str, Any]:
        data = asdict(self)
        if not include_raw:
            data.pop("raw_payload")
        return data


@dataclass
class AdAccount:
    """Ad account reachable with the current credentials.

    Attributes:
        id: Provider account id (Google customer id, TikTok advertiser id,
            LinkedIn sponsored account id).
        name: Display name.
        provider_id: Provider identifier.
        currency_code: ISO currency code.
        manager: True for Google Ads manager (MCC) accounts.
        login_customer_id: Google manager id to send as login-customer-id.
        manager_customer_id: Google manager that exposed this account.
        status: Provider account status.
        timezone: Account reporting timezone.
    """

    id: str
    name: str
    provider_id: str
    currency_code: Optional[str] = None
    manager: bool = False
    login_customer_id: Optional[str] = None
    manager_customer_id: Optional[str] = None
    status: Optional[str] = None
    timezone: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HealthStatus:
    """Outcome of an integration health check."""

    healthy: bool
    token_valid: bool
    account_accessible: bool
    developer_token_valid: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def merge_account(accounts: dict[str, AdAccount], account: AdAccount) -> None:
    """Merge ``account`` into ``accounts`` keyed by id, first writer wins.

    Fields already populated on an existing entry are never overwritten;
    only fields still unset (None) are filled from the later record.
    """
    existing = accounts.get(account.id)
    if existing is None:
        accounts[account.id] = account
        return

    for f in fields(AdAccount):
        if getattr(existing, f.name) is None:
            setattr(existing, f.name, getattr(account, f.name))
