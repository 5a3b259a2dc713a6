from pydantic_settings import BaseSettings
from pydantic import Field
import os
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Config(BaseSettings):
    # Database Configuration (SQLite file by default, Postgres via asyncpg in production)
    database_url: str = Field(
        default=f"sqlite+aiosqlite:///{PROJECT_ROOT}/data/drafts.db",
        alias="DB_URL",
    )
    drafts_table_name: str = Field(default="invoice_drafts", alias="DRAFTS_TABLE_NAME")

    # Device-local draft storage
    local_drafts_dir: str = Field(
        default=str(PROJECT_ROOT / "data" / "local_drafts"),
        alias="LOCAL_DRAFTS_DIR",
    )
    local_drafts_key_prefix: str = Field(
        default="invoice_drafts_local", alias="LOCAL_DRAFTS_KEY_PREFIX"
    )

    # Draft listing: timeout and read retry policy
    drafts_list_timeout: float = Field(default=12.0, alias="DRAFTS_LIST_TIMEOUT")
    drafts_retry_attempts: int = Field(default=3, alias="DRAFTS_RETRY_ATTEMPTS")
    drafts_retry_base_delay: float = Field(default=0.5, alias="DRAFTS_RETRY_BASE_DELAY")
    drafts_retry_multiplier: float = Field(default=2.0, alias="DRAFTS_RETRY_MULTIPLIER")

    # Per-user draft facades kept in memory by the web process
    drafts_max_sessions: int = Field(default=1000, alias="DRAFTS_MAX_SESSIONS")

    # JWT Configuration
    jwt_secret: str = Field(default="dev-secret-change-me", alias="JWT_SECRET")
    algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )

    is_production: bool = (
        os.getenv("ENVIRONMENT", "development").lower() == "production"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True


# Instantiate the settings
config = Config()
