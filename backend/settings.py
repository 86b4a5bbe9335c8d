import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        # Either name works; the web client historically used the second one.
        self.GOOGLE_MAPS_API_KEY: str = (
            os.getenv("GOOGLE_MAPS_API_KEY") or os.getenv("NEXT_PUBLIC_GOOGLE_PLACES_API_KEY") or ""
        )
        self.PROVIDER_TIMEOUT_SECONDS: float = _as_float(os.getenv("PROVIDER_TIMEOUT_SECONDS"), 10.0)
        self.PROVIDER_MAX_WORKERS: int = max(1, int(_as_float(os.getenv("PROVIDER_MAX_WORKERS"), 8)))
        self.PLACES_CACHE_ENABLED: bool = _as_bool(os.getenv("PLACES_CACHE_ENABLED"), True)
        self.PLACES_CACHE_PATH: str | None = os.getenv("PLACES_CACHE_PATH") or None
        self.PLACES_CACHE_TTL_SECONDS: int = int(_as_float(os.getenv("PLACES_CACHE_TTL_SECONDS"), 7 * 24 * 3600))


settings = Settings()
