# api/config.py
"""Configuration management for the ELD trip planner client."""
import os
from dotenv import load_dotenv

load_dotenv()

VALID_MAP_PROVIDERS = ["azure", "google"]


def get_map_provider_config():
    """Get geocoding / routing provider configuration."""
    return {
        "provider": os.getenv("MAP_PROVIDER", "azure").lower(),
        "azure_maps_key": os.getenv("AZURE_MAPS_KEY", ""),
        "google_maps_api_key": os.getenv("GOOGLE_MAPS_API_KEY", ""),
        "language": os.getenv("MAP_LANGUAGE", "en-US"),
    }


def get_planner_config():
    """Get planning service configuration."""
    timeout = os.getenv("PLANNER_TIMEOUT_SECONDS", "")
    return {
        "base_url": os.getenv("PLANNER_API_URL", "http://localhost:8000/api").rstrip("/"),
        # No timeout unless explicitly configured
        "timeout": float(timeout) if timeout else None,
        "history_limit": int(os.getenv("HISTORY_LIMIT", "50")),
    }


def get_search_config():
    """Get address search configuration."""
    return {
        "debounce_seconds": int(os.getenv("SEARCH_DEBOUNCE_MS", "300")) / 1000.0,
        "min_query_length": int(os.getenv("SEARCH_MIN_QUERY_LENGTH", "3")),
        "result_limit": int(os.getenv("SEARCH_RESULT_LIMIT", "5")),
    }


def get_map_view_config():
    """Get map widget defaults (camera framing, placeholders)."""
    return {
        "bounds_padding": int(os.getenv("MAP_BOUNDS_PADDING", "80")),
        "default_center": (
            float(os.getenv("MAP_DEFAULT_CENTER_LAT", "39.8283")),
            float(os.getenv("MAP_DEFAULT_CENTER_LON", "-98.5795")),
        ),
        "default_zoom": float(os.getenv("MAP_DEFAULT_ZOOM", "4")),
        "language": os.getenv("MAP_LANGUAGE", "en-US"),
        "driver_placeholder": os.getenv("DRIVER_PLACEHOLDER", "N/A"),
    }


def get_view_session_config():
    """Get view session lifecycle configuration."""
    return {
        "session_timeout_seconds": int(os.getenv("VIEW_SESSION_TIMEOUT_SECONDS", "1800")),
        "cleanup_interval_seconds": int(os.getenv("VIEW_SESSION_CLEANUP_SECONDS", "30")),
        "max_sessions": int(os.getenv("MAX_VIEW_SESSIONS", "200")),
    }


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_cors_origins():
    return os.getenv("CORS_ORIGINS", "*").split(",")


def validate_config():
    """Validate that the configuration is usable."""
    provider_config = get_map_provider_config()
    if provider_config["provider"] not in VALID_MAP_PROVIDERS:
        raise ValueError(
            f"Invalid MAP_PROVIDER. Must be one of: {', '.join(VALID_MAP_PROVIDERS)}"
        )

    search_config = get_search_config()
    if search_config["debounce_seconds"] < 0:
        raise ValueError("SEARCH_DEBOUNCE_MS must not be negative")
    if search_config["min_query_length"] < 1:
        raise ValueError("SEARCH_MIN_QUERY_LENGTH must be at least 1")

    lat, lon = get_map_view_config()["default_center"]
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValueError("MAP_DEFAULT_CENTER_LAT/LON out of range")

    return True


def get_map_api_key():
    """Browser-side key of the selected map provider."""
    cfg = get_map_provider_config()
    if cfg["provider"] == "google":
        return cfg["google_maps_api_key"]
    return cfg["azure_maps_key"]
