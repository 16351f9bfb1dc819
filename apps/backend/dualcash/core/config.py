from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Runtime settings, read from ``DUALCASH_*`` environment variables or ``.env``."""

    APP_NAME: str = "dualcash"
    ENV: str = "dev"

    # Ledger file lives next to the package (apps/backend/dualcash.sqlite3)
    _default_db_path = Path(__file__).resolve().parents[2] / "dualcash.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"
    DB_ECHO: bool = False
    # How long a connection waits on the SQLite writer lock before "database is locked"
    SQLITE_BUSY_TIMEOUT_MS: int = 5000

    # Web client dev servers
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # DolarApi quotes; both responses carry the average price in "promedio"
    RATE_OFFICIAL_URL: str = "https://ve.dolarapi.com/v1/dolares/oficial"
    RATE_PARALLEL_URL: str = "https://ve.dolarapi.com/v1/dolares/paralelo"
    RATE_CACHE_TTL_SECONDS: float = 600.0
    RATE_FETCH_TIMEOUT_SECONDS: float = 5.0
    # euro quote = official quote * markup
    EURO_MARKUP: float = 1.156

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="DUALCASH_", case_sensitive=False)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
