"""
Centralized configuration for the Sitespeed Result Service
All environment variables and settings are defined here
"""

import tempfile
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Provides centralized configuration with validation and defaults.
    """

    # ======================
    # Object Storage Configuration
    # ======================
    S3_SERVICE_URL: Optional[str] = Field(
        default=None,
        description="Endpoint of an S3-compatible service (None = AWS default)"
    )
    S3_ACCESS_KEY: Optional[str] = Field(default=None, description="S3 access key id")
    S3_SECRET_KEY: Optional[str] = Field(default=None, description="S3 secret key")
    S3_BUCKET_NAME: str = Field(
        default="sitespeed-results",
        description="Bucket holding result archives and screenshots"
    )
    S3_REGION: str = Field(
        default="us-east-1",
        description="Signing region (usually ignored by custom endpoints)"
    )

    # ======================
    # Sitespeed Configuration
    # ======================
    NODE_BIN: str = Field(default="node", description="Node.js executable")
    SITESPEED_BIN: str = Field(
        default="sitespeed.io",
        description="Path to the sitespeed.io entry script"
    )
    TOOL_TIMEOUT_SECONDS: float = Field(
        default=900,  # 15 minutes
        description="Kill the sitespeed process after this many seconds"
    )

    # ======================
    # Filesystem Layout
    # ======================
    SCRATCH_ROOT: str = Field(
        default_factory=tempfile.gettempdir,
        description="Root for workspaces, temporary archives and the result cache"
    )
    WORKSPACE_DIRNAME: str = Field(
        default="sitespeed",
        description="Subdirectory of SCRATCH_ROOT holding per-job workspaces"
    )
    CACHE_DIRNAME: str = Field(
        default="sitespeed-cache",
        description="Subdirectory of SCRATCH_ROOT holding cached result archives"
    )

    # ======================
    # Sweeper Configuration
    # ======================
    SWEEP_ENABLED: bool = Field(default=True, description="Run the temp dir sweeper")
    SWEEP_ROOT: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory scanned for leftover browser profiles"
    )
    SWEEP_PREFIX: str = Field(
        default=".org.chromium.Chromium.",
        description="Name prefix of directories eligible for removal"
    )
    SWEEP_INTERVAL_SECONDS: float = Field(
        default=300,  # 5 minutes
        description="Delay between two sweeps"
    )
    SWEEP_MAX_AGE_SECONDS: float = Field(
        default=300,  # 5 minutes
        description="Minimum age of a directory before it is removed"
    )

    # ======================
    # HTTP Configuration
    # ======================
    CACHE_MAX_AGE_SECONDS: int = Field(
        default=604800,  # 7 days
        description="max-age sent with result files and screenshots"
    )
    EXPOSE_ERROR_DETAILS: bool = Field(
        default=True,
        description="Include tool/storage diagnostics in error responses"
    )
    PORT: int = Field(default=8080, description="HTTP port")
    API_WORKERS: int = Field(
        default=1,
        description="Number of Uvicorn workers for API"
    )

    # ======================
    # Logging Configuration
    # ======================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def cache_control(self) -> str:
        """Cache-Control header value for immutable result files"""
        return f"public, max-age={self.CACHE_MAX_AGE_SECONDS}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars in .env file


# Global settings instance
settings = Settings()


# ======================
# Convenience Functions
# ======================

def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings
