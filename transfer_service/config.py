"""
Archives Transfer Service — Application Configuration
=======================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and returns a frozen `Settings` object.
Who:   Built once by the application factory and carried inside the
       ServiceContext; handlers never read the environment themselves.
When:  Loaded when create_app() runs (or explicitly in tests).

Database connection:
    The reference store is MySQL, reached through SQLAlchemy's async
    engine with the aiomysql driver. The URL is assembled from the
    DB_HOST / DB_USER / DB_PASS / DB_NAME parts unless DATABASE_URL is
    set, in which case it is used verbatim (tests point it at aiosqlite).
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development.
    Attributes are grouped by concern.
    """

    # ── Upload Storage ────────────────────────────────────────────────────
    # What: Root directory holding one subdirectory per submission identifier
    upload_dir: str = Field(default="./uploads")

    # What: Bytes read from the incoming part per write to disk
    # Valid range: 4KB to 64MB
    upload_copy_buffer: int = Field(default=1_048_576, ge=4096, le=67_108_864)

    # ── Reference Database ────────────────────────────────────────────────
    # Format: host or host:port
    db_host: str = Field(default="localhost:3306")
    db_user: str = Field(default="transfer")
    db_pass: str = Field(default="")
    db_name: str = Field(default="archives_transfer")

    # What: Full SQLAlchemy URL; overrides the DB_* parts when present
    database_url: Optional[str] = Field(default=None)

    # Pool settings only apply to server databases (ignored for sqlite)
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=5, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Development ───────────────────────────────────────────────────────
    # What: User attributed to uploads when no remote_user header is sent
    dev_auth_user: str = Field(default="")

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="http://localhost:8080")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8080, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # UPLOAD_DIR and upload_dir both work
        "frozen": True,
    }

    @property
    def sqlalchemy_url(self) -> URL:
        """
        What:    The async SQLAlchemy URL for the reference store.
        How:     DATABASE_URL wins; otherwise a mysql+aiomysql URL is built
                 from the DB_* parts (URL.create escapes the password).
        """
        if self.database_url:
            return make_url(self.database_url)

        host, _, port = self.db_host.partition(":")
        return URL.create(
            "mysql+aiomysql",
            username=self.db_user,
            password=self.db_pass or None,
            host=host,
            port=int(port) if port else None,
            database=self.db_name,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.sqlalchemy_url.get_backend_name() == "sqlite"
