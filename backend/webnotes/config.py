from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    data_dir: str = Field("data", validation_alias=AliasChoices("WEBNOTES_DATA_DIR", "DATA_DIR"))

    # Relational backend is used when either of these is set
    database_url: str | None = None
    pghost: str | None = None
    pgport: int = 5432
    pguser: str = "postgres"
    pgpassword: str = "postgres"
    pgdatabase: str = "webnotes"
    db_connect_timeout: float = 5.0

    # File backend: coalesce writes arriving within this window (0 = flush on every mutation)
    flush_delay_ms: int = 100

    bulk_rate_limit: str = "30/minute"
    log_level: str = "INFO"

    cors_origins: str = "http://localhost,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def relational_url(self) -> str | None:
        if self.database_url:
            # libpq-style URLs need the async driver named explicitly
            for scheme in ("postgres://", "postgresql://"):
                if self.database_url.startswith(scheme):
                    return "postgresql+asyncpg://" + self.database_url[len(scheme):]
            return self.database_url
        if self.pghost:
            return (
                f"postgresql+asyncpg://{self.pguser}:{self.pgpassword}"
                f"@{self.pghost}:{self.pgport}/{self.pgdatabase}"
            )
        return None


settings = Settings()
