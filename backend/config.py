"""
Configuration management for ParkSmart SG
Uses environment variables with sensible defaults
"""
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with validation"""

    # API Configuration
    api_title: str = "ParkSmart SG API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # LTA DataMall carpark availability
    lta_api_key: Optional[str] = None
    lta_base_url: str = "http://datamall2.mytransport.sg/ltaodataservice"
    lta_timeout: int = 30
    lta_page_size: int = 500

    # OneMap geocoding
    onemap_base_url: str = "https://www.onemap.gov.sg"
    onemap_timeout: int = 15

    # Caching
    redis_url: Optional[str] = None
    cache_ttl: int = 300  # 5 minutes
    availability_cache_ttl: int = 60

    # CORS
    cors_origins: List[str] = ["*"]
    cors_credentials: bool = True
    cors_methods: List[str] = ["*"]
    cors_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Performance
    enable_compression: bool = True

    # Pricing engine
    default_duration_hours: float = 2.0
    default_radius_km: float = 2.0
    max_radius_km: float = 10.0
    default_priority: str = "balanced"
    mall_catalog_path: Optional[str] = None
    extra_public_holidays: List[str] = []  # ISO dates, e.g. "2026-11-09"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
