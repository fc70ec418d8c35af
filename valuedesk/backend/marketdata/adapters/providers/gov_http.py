# marketdata/adapters/providers/gov_http.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any

from ...config import settings
from ...domain.dates import add_months
from ...domain.errors import MalformedResponse
from ...domain.parsing import as_list_of_dicts, get_first, to_str
from ..clients.http_resilience import ProviderHttpClient
from .base import RawTransaction

# data.gov.il "nadlan" deals resource
NADLAN_RESOURCE_ID = "5c78e9fa-c2e2-4771-93ff-7f400a12f7ba"


def _headers() -> dict[str, str]:
    if not settings.GOV_API_KEY:
        return {"accept": "application/json"}
    return {"accept": "application/json", "authorization": f"Bearer {settings.GOV_API_KEY}"}


def _object_payload(data: Any, provider: str, *envelope_keys: str) -> dict[str, Any]:
    """Unwrap {"result": {...}} / {"data": {...}} envelopes; bare objects pass through."""
    if isinstance(data, dict):
        for k in envelope_keys:
            inner = data.get(k)
            if isinstance(inner, dict):
                return inner
        return data
    raise MalformedResponse(provider, f"expected an object, got {type(data).__name__}")


@dataclass
class GovTransactionFeed:
    """Land-registry deals via the CKAN datastore_search API."""

    base_url: str
    client: ProviderHttpClient
    name: str = "land-registry"
    page_limit: int = 500

    @classmethod
    def from_settings(cls) -> "GovTransactionFeed":
        return cls(base_url=settings.TRANSACTIONS_BASE_URL.rstrip("/"), client=ProviderHttpClient("land-registry"))

    async def fetch_transactions(
        self,
        *,
        latitude: float,
        longitude: float,
        radius_km: float,
        months: int,
    ) -> list[RawTransaction]:
        since = add_months(date.today(), -int(months))
        params = {
            "resource_id": NADLAN_RESOURCE_ID,
            "limit": self.page_limit,
            "q": json.dumps({"lat": latitude, "lng": longitude, "radius_km": radius_km}),
            "filters": json.dumps({"dealDateFrom": since.isoformat()}),
        }
        data = await self.client.request_json(
            "GET", f"{self.base_url}/datastore_search", headers=_headers(), params=params
        )
        if isinstance(data, dict) and data.get("success") is False:
            raise MalformedResponse(self.name, "API returned success: false")

        items = as_list_of_dicts(data, "result.records", "records", "value")
        return [
            RawTransaction(payload=it, provider=self.name, source_ref=to_str(get_first(it, "_id", "id")))
            for it in items
        ]


@dataclass
class GovPlanningProvider:
    base_url: str
    client: ProviderHttpClient
    name: str = "planning"

    @classmethod
    def from_settings(cls) -> "GovPlanningProvider":
        return cls(base_url=settings.PLANNING_BASE_URL.rstrip("/"), client=ProviderHttpClient("planning"))

    async def fetch_planning(self, key: str) -> dict[str, Any]:
        data = await self.client.request_json(
            "GET", f"{self.base_url}/plans/by-address", headers=_headers(), params={"address": key}
        )
        return _object_payload(data, self.name, "result", "data")


@dataclass
class GovTaxProvider:
    base_url: str
    client: ProviderHttpClient
    name: str = "tax-authority"

    @classmethod
    def from_settings(cls) -> "GovTaxProvider":
        return cls(base_url=settings.TAX_BASE_URL.rstrip("/"), client=ProviderHttpClient("tax-authority"))

    async def fetch_tax_assessment(self, key: str) -> dict[str, Any]:
        data = await self.client.request_json("GET", f"{self.base_url}/assessments/{key}", headers=_headers())
        return _object_payload(data, self.name, "result", "data")


@dataclass
class GovMunicipalProvider:
    base_url: str
    client: ProviderHttpClient
    name: str = "municipal"

    @classmethod
    def from_settings(cls) -> "GovMunicipalProvider":
        return cls(base_url=settings.MUNICIPAL_BASE_URL.rstrip("/"), client=ProviderHttpClient("municipal"))

    async def fetch_municipal(self, key: str) -> dict[str, Any]:
        data = await self.client.request_json(
            "GET", f"{self.base_url}/lookup", headers=_headers(), params={"address": key}
        )
        return _object_payload(data, self.name, "result", "data")


@dataclass
class GovGisProvider:
    base_url: str
    client: ProviderHttpClient
    name: str = "gis"

    @classmethod
    def from_settings(cls) -> "GovGisProvider":
        return cls(base_url=settings.GIS_BASE_URL.rstrip("/"), client=ProviderHttpClient("gis"))

    async def fetch_gis(self, latitude: float, longitude: float) -> dict[str, Any]:
        params = {"lat": latitude, "lng": longitude}
        data = await self.client.request_json("GET", f"{self.base_url}/point", headers=_headers(), params=params)
        return _object_payload(data, self.name, "result", "data")
