"""Application configuration"""

from decimal import Decimal
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # JSON-RPC endpoints always placed at the front of the pool
    rpc_urls: List[str] = []
    rpc_request_timeout: Optional[float] = None  # None = wait as long as the node takes

    # Endpoint discovery (ethereumnodes.com style listing)
    node_discovery_enabled: bool = True
    node_list_url: str = "https://ethereumnodes.com"
    node_refresh_interval: int = 3600  # seconds between discovery runs
    node_list_timeout: float = 30.0

    # Streaming
    eth_to_usd: Decimal = Decimal("5000")
    stream_emit_interval: float = 1.0  # seconds between transaction events

    # API
    api_title: str = "EthStream API"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
