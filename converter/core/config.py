from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, DATA_DIR,
    TEMPLATE_SOURCE, PAGE_EDGE_TTL_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Currency Converter"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence (rate key-value store)
    data_dir: Path = Path("data")
    db_filename: str = "rates.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Exchange rates
    base_currency: str = "USD"
    rates_seed_path: Optional[Path] = None
    rates_ttl_seconds: int = 60 * 60 * 6

    # Templates: 'file' reads from static_dir, 'http' fetches from template_base_url
    template_source: str = "file"
    static_dir: Path = Path(__file__).resolve().parent.parent / "static"
    template_base_url: Optional[AnyHttpUrl] = None
    template_path: str = "/template.html"
    index_path: str = "/index.html"
    http_timeout_seconds: float = 5.0

    # Downstream caching
    page_browser_ttl_seconds: int = 600
    page_edge_ttl_seconds: int = 3600
    api_browser_ttl_seconds: int = 300
    enable_edge_cache: bool = True
    edge_cache_max_entries: int = 256

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.base_currency = self.base_currency.upper()
        if len(self.base_currency) != 3 or not self.base_currency.isalpha():
            raise ValueError(f"Invalid base_currency '{self.base_currency}'")
        allowed = {"file", "http"}
        if self.template_source not in allowed:
            raise ValueError(
                f"Unsupported template_source '{self.template_source}'. Allowed: {allowed}"
            )
        if self.template_source == "http" and self.template_base_url is None:
            raise ValueError("template_base_url is required when template_source='http'")
        if self.page_browser_ttl_seconds > self.page_edge_ttl_seconds:
            raise ValueError("page_browser_ttl_seconds must not exceed page_edge_ttl_seconds")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
