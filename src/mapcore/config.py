"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Core settings loaded from environment variables (``MAPCORE_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="MAPCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Initial view: Tiananmen, Beijing
    map_center_lng: float = 116.397428
    map_center_lat: float = 39.90923
    map_zoom: float = 12.0
    map_min_zoom: float = 4.0
    map_max_zoom: float = 18.0

    # Clustering
    cluster_enabled: bool = False
    cluster_distance: float = 40.0      # screen pixels

    # Heatmap rendering
    heatmap_blur: float = 15.0
    heatmap_radius: float = 10.0

    # Frame scheduling / route animation
    frame_interval_ms: float = 16.0
    animation_min_ms: float = 5000.0
    animation_max_ms: float = 20000.0
    animation_length_divisor: float = 20.0   # projected metres per ms

    # AMap web-service routing
    amap_key: str = ""
    amap_base_url: str = "https://restapi.amap.com"
    routing_timeout: float = 10.0

    # Rider info card
    rider_name: str = "骑手小王"


settings = Settings()
