"""Application settings and configuration."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(
        default="Profile Avatar Service",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    environment: Literal["local", "dev", "stage", "prod"] = Field(
        default="local",
        description="Deployment environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # API Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Storage Configuration (for avatar files)
    storage_type: Literal["s3", "fs"] = Field(
        default="fs",
        description="Storage backend for avatar files, chosen once at startup"
    )
    storage_root: Path = Field(
        default=Path("data/avatars"),
        description="Root directory for local filesystem storage"
    )
    storage_base_url: str = Field(
        default="http://localhost:8000/files",
        description="Public base URL that stored keys are appended to"
    )

    @field_validator("storage_root", mode="before")
    @classmethod
    def resolve_storage_path(cls, v: str | Path) -> Path:
        """Ensure storage root is a Path object."""
        if isinstance(v, str):
            return Path(v)
        return v

    # S3 Configuration
    s3_bucket: Optional[str] = Field(
        default=None,
        description="Bucket holding avatar objects (required for s3 storage)"
    )
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region of the bucket"
    )
    aws_access_key: str = Field(
        default="",
        description="Explicit access key; the default credential chain is used when empty"
    )
    aws_secret_key: str = Field(
        default="",
        description="Explicit secret key; the default credential chain is used when empty"
    )

    # User record storage
    user_storage: Literal["memory", "database"] = Field(
        default="database",
        description="Storage backend for user records"
    )
    database_url: str = Field(
        default="sqlite:///data/users.sqlite3",
        description="Database connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements (for debugging)"
    )

    # Remote avatar services
    gravatar_url: str = Field(
        default="https://www.gravatar.com/avatar",
        description="Base URL of the identity-image (Gravatar) service"
    )
    ui_avatars_url: str = Field(
        default="https://ui-avatars.com/api",
        description="Base URL of the initials-image generator"
    )
    avatar_size: int = Field(
        default=200,
        gt=0,
        description="Edge length in pixels requested from remote avatar services"
    )
    avatar_service_timeout: Optional[float] = Field(
        default=None,
        description="Timeout for remote avatar requests (seconds); httpx default when unset"
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Path to log file (if None, logs to stdout only)"
    )

    # Upload limits
    max_upload_size: int = Field(
        default=5 * 1024 * 1024,  # 5MB
        description="Maximum avatar upload size in bytes"
    )

    @property
    def log_level_numeric(self) -> int:
        """Get numeric log level."""
        return getattr(logging, self.log_level)

    @property
    def has_static_credentials(self) -> bool:
        """True when both halves of an explicit AWS key pair are configured."""
        return bool(self.aws_access_key) and bool(self.aws_secret_key)

    def configure_logging(self) -> None:
        """Configure logging based on settings."""
        import sys

        handlers: list[logging.Handler] = []

        console_handler = logging.StreamHandler(sys.stdout)
        handlers.append(console_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file)
            handlers.append(file_handler)

        if self.log_json:
            import json

            class JSONFormatter(logging.Formatter):
                def format(self, record: logging.LogRecord) -> str:
                    log_obj = {
                        "timestamp": self.formatTime(record),
                        "level": record.levelname,
                        "logger": record.name,
                        "message": record.getMessage(),
                        "module": record.module,
                        "function": record.funcName,
                        "line": record.lineno,
                    }
                    if record.exc_info:
                        log_obj["exception"] = self.formatException(record.exc_info)
                    return json.dumps(log_obj)

            formatter = JSONFormatter()
        else:
            formatter = logging.Formatter(self.log_format)

        for handler in handlers:
            handler.setFormatter(formatter)

        logging.basicConfig(
            level=self.log_level_numeric,
            handlers=handlers,
            force=True,
        )

        if self.debug:
            logging.getLogger("profile_avatars").setLevel(logging.DEBUG)
        else:
            # botocore logs every request at DEBUG
            for name in ("boto3", "botocore", "s3transfer", "urllib3", "httpx"):
                logging.getLogger(name).setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
