"""Configuration management using Pydantic BaseSettings.

This module provides centralized configuration management with validation,
type safety, and sensible defaults for the caching proxy.
"""
from typing import List, Tuple
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Main configuration class for the proxy and its cache."""

    # Upstream API
    upstream_base_url: str = Field("https://api.spoonacular.com", description="Base URL of the proxied REST API")
    upstream_api_key: str = Field("", description="API key sent to the upstream API")
    upstream_api_key_header: str = Field("x-api-key", description="Header carrying the upstream API key")
    upstream_timeout: float = Field(20.0, ge=1.0, le=120.0, description="Upstream request timeout in seconds")
    strip_query_params: str = Field("apiKey", description="Comma-separated credential query params never cached or forwarded")

    # Cache
    cache_ttl_seconds: int = Field(1800, ge=1, le=7 * 86400, description="Cache TTL in seconds")
    cache_file: str = Field("cache.json", description="Snapshot file for the local cache backend")
    redis_url: str = Field("", description="Redis connection URL; empty disables the Redis backend")
    redis_key_prefix: str = Field("", description="Prefix applied to every Redis key")
    redis_socket_timeout: float = Field(5.0, ge=0.1, le=60.0, description="Redis connect/socket timeout in seconds")

    # Server
    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(8080, ge=1, le=65535, description="Bind port")
    cors_allow_origins: str = Field("*", description="Comma-separated CORS origins")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    @field_validator('upstream_base_url')
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError('upstream_base_url must start with http:// or https://')
        return v.rstrip("/")

    def get_strip_params(self) -> Tuple[str, ...]:
        """Parse the credential query params into a tuple."""
        return tuple(p.strip() for p in self.strip_query_params.split(",") if p.strip())

    def get_cors_origins(self) -> List[str]:
        """Parse the CORS origins into a list."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    def validate_configuration(self) -> List[str]:
        """Validate the complete configuration and return any issues."""
        issues = []

        if not self.upstream_api_key:
            issues.append("UPSTREAM_API_KEY is required")

        if self.redis_url and not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            issues.append("REDIS_URL must be a valid Redis URL (redis://, rediss:// or unix://)")

        if not self.cache_file.strip():
            issues.append("CACHE_FILE must not be empty")

        if self.upstream_api_key_header.strip() == "":
            issues.append("UPSTREAM_API_KEY_HEADER must not be empty")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from apicache.utils.logger import log_info

        log_info("Configuration loaded",
                upstream_base_url=self.upstream_base_url,
                strip_query_params=list(self.get_strip_params()),
                cache_ttl_seconds=self.cache_ttl_seconds,
                cache_file=self.cache_file,
                redis_url=self.redis_url or None,
                port=self.port,
                log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment variables."""
    global _config
    _config = Config()
    return _config
