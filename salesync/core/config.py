"""
Unified Configuration
All environment variables and settings in one place

ARCHITECTURE:
- ONE primary (control) database holds the site directory, the audit log
  and the upload markers committed after a successful run
- N site databases (one per customer site) hold tenant configs, payments
  and item lines; all share the same credentials and database name
- Per-tenant OAuth credentials and API endpoints live in the site data,
  not in the environment

SECURITY:
- All secrets loaded from environment variables
- No hardcoded credentials
"""
from typing import Optional
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings.
    Validates all environment variables at startup.
    """

    # ============================================================================
    # SERVER
    # ============================================================================

    environment: str = Field(default="production", description="Environment: development/staging/production")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")

    # ============================================================================
    # DATABASES (PostgreSQL)
    # ============================================================================

    db_user: str = Field(default="postgres", description="Database user (shared by primary and site databases)")
    db_password: Optional[str] = Field(default=None, description="Database password")
    db_server: str = Field(default="localhost", description="Primary database host")
    db_port: int = Field(default=5432, description="Primary database port")
    primary_database: str = Field(default="salesync", description="Primary database name (directory, audit log, upload markers)")
    site_database: str = Field(default="possales", description="Database name on every customer site server")
    db_connect_timeout: int = Field(default=10, description="Connect timeout in seconds for every database connection")
    db_connect_attempts: int = Field(default=3, description="Connection attempts before a site is reported unreachable")

    # ============================================================================
    # TENANT HTTP CALLS (OAuth token + sales API)
    # ============================================================================

    http_timeout_seconds: float = Field(default=10.0, description="Timeout for token exchange and API dispatch")
    success_field: str = Field(default="returnStatus", description="Response body field carrying the application-level status")
    success_value: str = Field(default="Success", description="Value of success_field that gates the upload commit")

    # ============================================================================
    # AUDIT LOG (tb_sync_log column widths)
    # ============================================================================

    audit_status_width: int = Field(default=10, description="Max characters stored in the STATUS column")
    audit_message_width: int = Field(default=500, description="Max characters stored in the MESSAGE column")
    audit_context_width: int = Field(default=1000, description="Max characters stored in the CONTEXT column")

    # ============================================================================
    # BACKGROUND JOBS
    # ============================================================================

    redis_url: Optional[str] = Field(default=None, description="Redis connection URL (Dramatiq broker)")

    # ============================================================================
    # PRODUCTION INFRASTRUCTURE
    # ============================================================================

    # Error tracking (Sentry)
    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @model_validator(mode='after')
    def validate_settings(self):
        """
        Validate critical settings at startup.

        SECURITY CHECKS:
        - Warn if running in production without a database password
        - Warn if debug mode enabled in production
        """
        if self.environment == "production":
            if self.debug:
                logger.warning("⚠️  DEBUG MODE ENABLED IN PRODUCTION! This is insecure.")

            if not self.sentry_dsn:
                logger.warning("⚠️  Sentry not configured in production. Error tracking disabled.")

        if not self.db_password:
            logger.warning("⚠️  DB_PASSWORD not set. Database connections may be rejected.")

        logger.info("=" * 80)
        logger.info("SaleSync Configuration Loaded")
        logger.info("=" * 80)
        logger.info(f"Environment: {self.environment}")
        logger.info(f"Debug: {self.debug}")
        logger.info(f"Primary DB: {self.db_server}:{self.db_port}/{self.primary_database}")
        logger.info(f"Site DB name: {self.site_database}")
        logger.info(f"HTTP timeout: {self.http_timeout_seconds}s")
        logger.info(f"Redis: {'✅ Configured' if self.redis_url else '❌ Not configured'}")
        logger.info(f"Sentry: {'✅ Configured' if self.sentry_dsn else '❌ Not configured'}")
        logger.info("=" * 80)

        return self


# Global settings instance
settings = Settings()
