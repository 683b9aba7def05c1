"""
Configuration management for NextCap.

This module provides centralized configuration with validation using Pydantic.
All configuration values are loaded from environment variables with sensible defaults.
"""

from typing import Optional, Literal
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_PASSWORD = 'admin1234'


class DatabaseConfig(BaseSettings):
    """Database connection and pool configuration."""

    model_config = SettingsConfigDict(env_prefix='DB_', case_sensitive=False)

    host: str = Field(default='localhost', description='Database host')
    port: int = Field(default=5432, description='Database port')
    name: str = Field(default='nextcap', alias='POSTGRES_DB', description='Database name')
    user: str = Field(default='nextcap', alias='POSTGRES_USER', description='Database user')
    password: str = Field(default='nextcap', alias='POSTGRES_PASSWORD', description='Database password')

    # Connection pool settings
    pool_size: int = Field(default=10, description='Connection pool size')
    pool_timeout: int = Field(default=30, description='Pool timeout in seconds')

    @property
    def connection_string(self) -> str:
        """Generate PostgreSQL connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class APIConfig(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix='API_', case_sensitive=False)

    host: str = Field(default='0.0.0.0', description='API host')
    port: int = Field(default=8000, description='API port')
    reload: bool = Field(default=False, description='Enable auto-reload for development')
    log_level: Literal['debug', 'info', 'warning', 'error', 'critical'] = Field(
        default='info',
        description='Logging level'
    )
    cors_origins: list[str] = Field(
        default=['*'],
        description='CORS allowed origins'
    )


class AdminConfig(BaseSettings):
    """Shared-secret settings for the license administration routes."""

    model_config = SettingsConfigDict(env_prefix='ADMIN_', case_sensitive=False)

    password: str = Field(
        default=DEFAULT_ADMIN_PASSWORD,
        description='Value expected in the X-Admin-Password header'
    )

    @property
    def uses_default_password(self) -> bool:
        return self.password == DEFAULT_ADMIN_PASSWORD


class LicenseConfig(BaseSettings):
    """License key issuing configuration."""

    model_config = SettingsConfigDict(env_prefix='LICENSE_', case_sensitive=False)

    key_segments: int = Field(default=4, description='Number of dash separated key segments')
    key_segment_length: int = Field(default=4, description='Characters per key segment')
    max_key_attempts: int = Field(
        default=5,
        description='Key generation attempts before giving up on a unique key'
    )

    @field_validator('key_segments', 'max_key_attempts')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counts are positive."""
        if v <= 0:
            raise ValueError('Value must be positive')
        return v

    @field_validator('key_segment_length')
    @classmethod
    def validate_segment_length(cls, v: int) -> int:
        """A segment is cut from a 32 character uuid4 hex string."""
        if not 1 <= v <= 32:
            raise ValueError('Segment length must be between 1 and 32')
        return v


class CaptureConfig(BaseSettings):
    """Capture pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix='CAPTURE_', case_sensitive=False)

    min_selection_px: int = Field(
        default=5,
        description='Selections with a side at or below this many display pixels are discarded'
    )
    filename_prefix: str = Field(default='capture', description='Prefix for saved capture files')
    frame_interval_ms: int = Field(default=100, description='Preview refresh interval in milliseconds')

    @field_validator('min_selection_px')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate threshold is non-negative."""
        if v < 0:
            raise ValueError('Minimum selection size must be non-negative')
        return v

    @field_validator('frame_interval_ms')
    @classmethod
    def validate_interval(cls, v: int) -> int:
        """Validate interval is positive."""
        if v <= 0:
            raise ValueError('Frame interval must be positive')
        return v


class ClientConfig(BaseSettings):
    """Defaults for the desktop client and admin CLI."""

    model_config = SettingsConfigDict(env_prefix='CLIENT_', case_sensitive=False)

    server_url: str = Field(default='http://localhost:8000', description='License server base URL')
    timeout: float = Field(default=10.0, description='HTTP timeout in seconds')


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Environment
    environment: Literal['development', 'staging', 'production'] = Field(
        default='development',
        description='Application environment'
    )
    debug: bool = Field(default=False, description='Debug mode')

    # Sub-configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    license: LicenseConfig = Field(default_factory=LicenseConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)

    @model_validator(mode='after')
    def validate_production_password(self) -> 'AppConfig':
        """Refuse to run production with the stock admin password."""
        if self.environment == 'production' and self.admin.uses_default_password:
            raise ValueError('ADMIN_PASSWORD must be changed from the default in production')
        return self

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration from environment."""
        return cls(
            database=DatabaseConfig(),
            api=APIConfig(),
            admin=AdminConfig(),
            license=LicenseConfig(),
            capture=CaptureConfig(),
            client=ClientConfig()
        )

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == 'production'


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reload_config() -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = AppConfig.load()
    return _config
