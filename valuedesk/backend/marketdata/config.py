from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    MARKETDATA_DB_URL: str = "sqlite+aiosqlite:///./marketdata.db"
    LOG_LEVEL: str = "INFO"

    # --- Minimal B2B Auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Providers ---
    # fixtures: offline JSON under FIXTURES_DIR (dev default)
    # gov_http: live government endpoints below
    PROVIDER_SOURCE: str = "fixtures"
    FIXTURES_DIR: str = "data/fixtures"

    GOV_API_KEY: str | None = None
    TRANSACTIONS_BASE_URL: str = "https://data.gov.il/api/3/action"
    PLANNING_BASE_URL: str = "https://www.iplan.gov.il/api"
    TAX_BASE_URL: str = "https://taxes.gov.il/api"
    MUNICIPAL_BASE_URL: str = "https://www.municipalities.org.il/api"
    GIS_BASE_URL: str = "https://www.govmap.gov.il/api"

    # gateway timeout per call; the gateway itself never retries
    PROVIDER_TIMEOUT_S: float = 20.0

    # max calls per provider per scheduler tick (None = unlimited)
    PROVIDER_CALL_BUDGET: int | None = None

    # --- HTTP client guard rails ---
    HTTP_RATE_LIMIT_RPS: float = 4.0
    HTTP_CIRCUIT_FAIL_THRESHOLD: int = 5
    HTTP_CIRCUIT_RESET_S: float = 60.0

    # retry policy for the primary feed (caller side)
    FETCH_MAX_RETRIES: int = 1
    FETCH_BACKOFF_BASE_S: float = 0.5

    # --- Pipeline tuning ---
    ENRICH_CONCURRENCY: int = 4
    SYNC_REGION_CONCURRENCY: int = 1  # 1 == sequential regions
    LOCATION_SIMILARITY_DEFAULT: float = 0.8

    # spatial lookups fall back to this point when a record has no coordinates
    DEFAULT_LATITUDE: float = 32.0853
    DEFAULT_LONGITUDE: float = 34.7818

    # --- Scheduler tuning ---
    SCHED_TICK_MINUTES: int = 15
    SCHED_RUN_HOUR: int = 2


settings = Settings()
