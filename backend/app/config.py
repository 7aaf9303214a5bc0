from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # External rules service (per-system profiles); None means built-in profiles only
    rules_service_base: str | None = None

    # Redis
    redis_url: str = "redis://localhost:6379"

    # Cache TTLs (seconds)
    cache_ttl_profile: int = 3600  # 1 hour

    # Routing kernel defaults
    snap_radius_m: float = 20.0
    avoidance_margin_m: float = 5.0
    perimeter_tolerance_m: float = 1.0

    model_config = {"env_prefix": "ROUTEKIT_"}


settings = Settings()
