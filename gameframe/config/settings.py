"""
Runtime settings for the GameFrame activity service.

Every value comes from an environment variable (or .env) of the same
name, upper-cased. pydantic-settings validates types at startup, so a
bad DIGEST_WINDOW_DAYS stops the process instead of the first request.

With SNOWFLAKE_MOCK_MODE=true the service reads from the in-memory
entity store and needs no warehouse credentials at all.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    GameFrame service settings.

    Comma-separated strings are used for multi-valued settings
    (API_KEYS, CORS_ORIGINS); the *_list properties split them.
    """

    # HTTP surface
    api_title: str = "GameFrame Activity API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Accepted X-API-Key values, comma separated. Keep two during a rotation."
    )
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Browser origins allowed to call the API, comma separated, or * in development."
    )

    # Warehouse connection
    snowflake_account: str = Field(default="", description="Account locator, e.g. xy12345.us-east-1")
    snowflake_user: str = Field(default="", description="Service user the API connects as")
    snowflake_password: str = Field(default="", description="Password for the service user")
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="PEM key file for key-pair auth; preferred over a password"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Same PEM key, base64 encoded, for hosts without a writable filesystem"
    )
    snowflake_database: str = Field(default="GAMEFRAME", description="Database holding the feedback tables")
    snowflake_schema: str = Field(default="FEEDBACK", description="Schema holding the feedback tables")
    snowflake_warehouse: str = Field(default="COMPUTE_WH", description="Warehouse that runs digest queries")
    snowflake_role: Optional[str] = Field(default=None, description="Role to assume, if not the user default")

    # Local development
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Serve from the in-memory entity store instead of Snowflake"
    )
    mock_data_path: Optional[str] = Field(
        default=None,
        description="JSON seed file loaded into the in-memory store on first use"
    )

    # Digest behavior
    digest_window_days: int = Field(
        default=7,
        ge=1,
        description="How many days back the activity digest looks."
    )
    digest_resolution_concurrency: int = Field(
        default=8,
        ge=1,
        description="Max comments enriched at once. 1 resolves them one at a time."
    )

    log_level: str = Field(default="INFO", description="Root log level name, e.g. DEBUG or WARNING")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def api_keys_list(self) -> list[str]:
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def has_snowflake_credentials(self) -> bool:
        return bool(
            self.snowflake_password
            or self.snowflake_private_key_path
            or self.snowflake_private_key_base64
        )

    def validate_required_fields(self) -> list[str]:
        """
        Names of settings that must be set but aren't.

        Snowflake settings are only required outside mock mode, which
        is why this lives here rather than in field validators.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        if self.snowflake_mock_mode:
            return missing

        for name in ("snowflake_account", "snowflake_user"):
            if not getattr(self, name):
                missing.append(name.upper())
        if not self.has_snowflake_credentials:
            missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing

    def snowflake_config(self):
        """Connection settings in the shape the Snowflake client takes."""
        from ..infrastructure.snowflake.client import SnowflakeConfig

        return SnowflakeConfig(
            account=self.snowflake_account,
            user=self.snowflake_user,
            password=self.snowflake_password or None,
            private_key_path=self.snowflake_private_key_path,
            private_key_base64=self.snowflake_private_key_base64,
            database=self.snowflake_database,
            schema=self.snowflake_schema,
            warehouse=self.snowflake_warehouse,
            role=self.snowflake_role,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, read once.

    Tests override this dependency, or call get_settings.cache_clear().
    """
    return Settings()
