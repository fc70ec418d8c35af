# marketdata/service_layer/bootstrap.py
from __future__ import annotations

from dataclasses import dataclass

from ..adapters.providers.fixtures import FixtureLookupProvider, FixtureTransactionFeed
from ..adapters.providers.gateway import ProviderGateway
from ..adapters.providers.gov_http import (
    GovGisProvider,
    GovMunicipalProvider,
    GovPlanningProvider,
    GovTaxProvider,
    GovTransactionFeed,
)
from ..adapters.providers.quota import CallBudget
from ..config import settings
from ..domain.errors import ConfigurationError
from .enrichment import EnrichmentCoordinator
from .run_lock import RunLock
from .use_cases.importer import TransactionImporter
from .use_cases.sync import MarketDataSync


@dataclass
class Services:
    gateway: ProviderGateway
    run_lock: RunLock
    enrichment: EnrichmentCoordinator
    importer: TransactionImporter
    sync: MarketDataSync
    quota: CallBudget | None = None


def build_gateway(quota: CallBudget | None = None) -> ProviderGateway:
    """
    Provider builder that will NOT brick local dev.

    - fixtures -> offline JSON under FIXTURES_DIR
    - gov_http -> live endpoints
    - unknown sources -> fixtures in dev/local/test, error in prod-like
    """
    src = (settings.PROVIDER_SOURCE or "").strip()

    if src not in ("fixtures", "gov_http"):
        if settings.ENV.lower() not in ("dev", "local", "test"):
            raise ConfigurationError(f"Unknown PROVIDER_SOURCE={src!r}. Use fixtures or gov_http.")
        src = "fixtures"

    if src == "gov_http":
        return ProviderGateway(
            feed=GovTransactionFeed.from_settings(),
            planning=GovPlanningProvider.from_settings(),
            tax=GovTaxProvider.from_settings(),
            municipal=GovMunicipalProvider.from_settings(),
            spatial=GovGisProvider.from_settings(),
            quota=quota,
        )

    return ProviderGateway(
        feed=FixtureTransactionFeed.from_settings(),
        planning=FixtureLookupProvider.from_settings("planning"),
        tax=FixtureLookupProvider.from_settings("tax"),
        municipal=FixtureLookupProvider.from_settings("municipal"),
        spatial=FixtureLookupProvider.from_settings("gis"),
        quota=quota,
    )


def build_services(gateway: ProviderGateway | None = None, run_lock: RunLock | None = None) -> Services:
    quota = None
    if gateway is None:
        if settings.PROVIDER_CALL_BUDGET is not None:
            quota = CallBudget(default_limit=settings.PROVIDER_CALL_BUDGET)
        gateway = build_gateway(quota)
    lock = run_lock or RunLock()
    enrichment = EnrichmentCoordinator(gateway)
    return Services(
        gateway=gateway,
        run_lock=lock,
        enrichment=enrichment,
        importer=TransactionImporter(gateway, lock),
        sync=MarketDataSync(gateway, lock, enrichment=enrichment),
        quota=quota,
    )
