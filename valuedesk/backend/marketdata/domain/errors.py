# marketdata/domain/errors.py
from __future__ import annotations


class MarketDataError(Exception):
    """Base for everything the pipeline raises on purpose."""


class ProviderUnavailable(MarketDataError):
    """
    A provider call failed (network, timeout, bad payload, auth, quota).
    Tolerated by runs: secondary calls leave a field absent, primary calls
    become a per-region error.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ProviderTimeout(ProviderUnavailable):
    pass


class MalformedResponse(ProviderUnavailable):
    pass


class ProviderUnauthorized(ProviderUnavailable):
    pass


class QuotaRefused(ProviderUnavailable):
    """The external quota/throttle collaborator refused the call."""


class ConfigurationError(MarketDataError):
    """Fatal to a single run (e.g. import config without a location filter)."""


class ConcurrencyViolation(MarketDataError):
    """A run is already in flight for this config id."""

    def __init__(self, config_id: str) -> None:
        super().__init__(f"run already in progress for config {config_id!r}")
        self.config_id = config_id


class DecodeError(MarketDataError):
    """
    One provider item could not be normalized.
    Returned (not raised) by the decoders so callers can count rejects.
    """

    def __init__(self, provider: str, reason: str, ref: str | None = None) -> None:
        super().__init__(f"{provider}: {reason}" + (f" (ref={ref})" if ref else ""))
        self.provider = provider
        self.reason = reason
        self.ref = ref
