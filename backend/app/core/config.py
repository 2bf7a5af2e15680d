"""Application configuration."""

import logging
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    environment: str = "development"  # development, staging, production

    # API Configuration
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000
    cors_origins: str = "https://admin.shopify.com"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    # Shopify app credentials (session tokens are signed with the API secret)
    shopify_api_key: str = ""
    shopify_api_secret: str = ""
    shopify_app_url: str = "http://localhost:8000"
    session_token_leeway_seconds: int = 10

    # Supplier API calls
    supplier_request_timeout_seconds: float = 10.0
    supplier_user_agent: str = "Shopify-Product-Import/1.0"
    supplier_error_max_length: int = 500
    supplier_max_concurrent_per_host: int = 4  # 0 disables the cap

    # Temp data
    temp_data_ttl_hours: int = 24

    # App database. database_url wins when set; otherwise MySQL is assumed.
    database_url: Optional[str] = None
    local_mysql_host: str = "localhost"
    local_mysql_port: int = 3306
    local_mysql_user: str = "root"
    local_mysql_password: str = ""
    local_mysql_database: str = "supplier_import"

    @property
    def database_url_resolved(self) -> str:
        """Database URL for the async engine."""
        if self.database_url:
            return self.database_url
        # URL-encode the password to handle special characters
        encoded_password = quote_plus(self.local_mysql_password)
        return (
            f"mysql+aiomysql://{self.local_mysql_user}:{encoded_password}"
            f"@{self.local_mysql_host}:{self.local_mysql_port}/{self.local_mysql_database}"
        )

    # Logging
    log_level: str = "INFO"
    log_format: str = "development"  # "development" for readable, "json" for structured

    # Application version (for health checks)
    version: str = "1.0.0"

    @field_validator("supplier_request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Reject non-positive timeouts; an unbounded supplier call is never allowed."""
        if v <= 0:
            raise ValueError("supplier_request_timeout_seconds must be positive")
        return v

    @field_validator("supplier_max_concurrent_per_host")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 0:
            raise ValueError("supplier_max_concurrent_per_host must be >= 0")
        return v

    @field_validator("temp_data_ttl_hours")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("temp_data_ttl_hours must be positive")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
