"""Application configuration using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quickorder.context import Context


class AirtableCredentials(BaseModel):
    """Airtable credentials for one storefront context."""

    api_key: str = ""
    base_id: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.base_id)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Paths
    data_dir: Path = Path("./data")
    media_dir: Path = Path("./data/media")
    timestamps_file_name: str = "sync-timestamps.json"

    # Airtable (REGULAR__API_KEY, VIRTUAL__BASE_ID, ...)
    regular: AirtableCredentials = Field(default_factory=AirtableCredentials)
    virtual: AirtableCredentials = Field(default_factory=AirtableCredentials)
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_products_table: str = "Products"
    airtable_webphotos_table: str = "WebPhotos"
    airtable_view: str = "Grid view"
    airtable_timeout: float = 30.0

    # Media downloads
    download_timeout: float = 10.0
    probe_timeout: float = 5.0
    product_media_contexts: list[Context] = [Context.REGULAR]

    # Sync behaviour
    protected_webphotos: list[str] = [
        "logo_massnu", "logo_reno", "logo_najos", "logo_aj", "logo_tiber", "logo_importado",
    ]
    allow_empty_remote: bool = False

    # Query cache
    query_cache_ttl: int = 300  # seconds
    query_cache_max_size: int = 1000

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.media_dir.mkdir(parents=True, exist_ok=True)

    def database_url(self, context: Context) -> str:
        """SQLite URL of the mirror database for a context."""
        filename = "virtual-products.db" if context is Context.VIRTUAL else "products.db"
        return f"sqlite+aiosqlite:///{self.data_dir / filename}"

    def airtable_credentials(self, context: Context) -> AirtableCredentials:
        return self.virtual if context is Context.VIRTUAL else self.regular

    @property
    def timestamps_path(self) -> Path:
        return self.data_dir / self.timestamps_file_name

    def media_path(self, context: Context, media_type: str) -> Path:
        """Directory holding downloaded media of one type for a context."""
        return self.media_dir / context.value / media_type


settings = Settings()
