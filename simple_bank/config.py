"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankConfig(BaseSettings):
    """Simple bank configuration"""

    # Business rules configuration
    default_initial_balance: str = "0"  # Balance given to accounts opened at login
    display_precision: int = 2

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    session_cookie_name: str = "bank_session"
    session_timeout_minutes: int = 30  # Idle sessions are dropped after this; 0 keeps them

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    class Config:
        env_prefix = "SIMPLE_BANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
