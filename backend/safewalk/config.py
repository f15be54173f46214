from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Database
    database_url: str = Field(default="sqlite:///./safewalk.db")

    # API Keys
    tomtom_api_key: str = Field(default="")
    owm_api_key: str = Field(default="")
    gemini_api_key: str = Field(default="")

    # Provider endpoints
    tomtom_base_url: str = Field(default="https://api.tomtom.com")
    owm_base_url: str = Field(default="https://api.openweathermap.org/data/3.0/onecall")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    gemini_model: str = Field(default="gemini-2.5-flash")

    # Timeouts (seconds). http_timeout is the httpx client timeout,
    # provider_call_timeout bounds each awaited provider call as a whole.
    http_timeout: float = Field(default=10.0)
    provider_call_timeout: float = Field(default=12.0)
    signal_query_timeout: float = Field(default=5.0)

    # Wall-clock used for day/night weighting and hour buckets
    local_timezone: str = Field(default="UTC")

    # Signal repository windows (days) and bbox buffer (km)
    incident_window_days: int = Field(default=7)
    lighting_window_days: int = Field(default=30)
    bbox_buffer_km: float = Field(default=0.5)

    # Route ranking
    route_max_alternatives: int = Field(default=3)
    poi_search_radius_m: int = Field(default=1000)

    # Predictive risk forecaster
    forecast_history_days: int = Field(default=365)
    forecast_max_sample_points: int = Field(default=50)
    forecast_max_query_points: int = Field(default=12)
    forecast_query_radius_m: float = Field(default=200.0)
    forecast_per_point_limit: int = Field(default=50)
    forecast_default_congestion: float = Field(default=0.5)  # fraction, used when traffic is unavailable

    log_level: str = Field(default="INFO")

    # CORS
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
