"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class EagleBankConfig(BaseSettings):
    """Eagle Bank ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="EAGLE_BANK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database configuration
    database_url: str = "sqlite:///eagle_bank.db"  # or memory://

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 15

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text


# Global configuration instance
config = EagleBankConfig()


def get_config() -> EagleBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> EagleBankConfig:
    """Reload configuration from environment"""
    global config
    config = EagleBankConfig()
    return config
