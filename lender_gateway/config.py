"""Configuration management using Pydantic Settings"""

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="LENDER_GATEWAY_", extra="ignore"
    )

    # Service
    service_name: str = "lender-gateway"
    log_level: str = "INFO"

    # Storage
    store_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./lender_gateway.db"

    # Fan-out
    max_selected_lenders: int = 5
    lender_timeout_seconds: float = 300.0
    simulated_latency_scale: float = 1.0  # seconds slept per minute of lender avg response time
    simulated_fault_rate: float = 0.0  # share of simulated calls failing like an unreachable gateway
    enforce_forward_transitions: bool = False

    # Outbound decision webhook (empty disables it)
    decision_webhook_url: str = ""
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds
    webhook_timeout_seconds: float = 10.0


settings = Settings()
