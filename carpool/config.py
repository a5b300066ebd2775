"""Centralised application settings loaded from environment / .env file."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Providers
    provider_backend: str = "http"  # "http" | "static"
    photon_url: str = "https://photon.komoot.io"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    osrm_url: str = "https://router.project-osrm.org"
    http_user_agent: str = "carpool-route-planner/1.0"
    provider_timeout_seconds: float = 12.0

    # Autocomplete
    autocomplete_debounce_seconds: float = 0.3
    autocomplete_limit: int = 5

    # Map view
    map_padding_ratio: float = 0.15  # of each bbox span, per side
    map_single_place_span_meters: float = 5_000.0

    # Session registry
    max_sessions: int = 1_000
    session_idle_seconds: float = 1_800.0  # evicted after this long unseen
    session_sweep_interval_seconds: float = 60.0

    # Static gazetteer backend
    static_average_speed_kmh: float = 40.0

    # API
    log_level: str = "INFO"
    rate_limit: str = "100/minute"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
