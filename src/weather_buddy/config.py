"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

_PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # QWeather (和风天气)
    hefeng_api_url: str = "https://devapi.qweather.com/v7/weather/3d"
    hefeng_key_id: str = ""
    hefeng_project_id: str = ""
    hefeng_private_key_path: str = "./keys/ed25519-private.pem"
    hefeng_api_key: str = ""

    # WxPusher
    wxpusher_app_token: str = ""
    wxpusher_api_url: str = "https://wxpusher.zjiecode.com/api/send/message"
    wxpusher_user_api_url: str = "https://wxpusher.zjiecode.com/api/fun/wxuser/v2"
    wxpusher_page_size: int = 100

    # DeepSeek (OpenAI-compatible)
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"

    # QuickChart
    quickchart_url: str = "https://quickchart.io/chart"
    chart_concurrency: int = 3

    # Server
    port: int = 3000
    server_base_url: str = ""

    # Default location / schedule
    default_location_code: str = "101190104"
    default_city: str = "南京"
    default_district: str = "江宁"
    default_push_time: str = "20:00"

    # Files
    data_dir: str = "./data"
    preferences_file: str = ""
    locations_file: str = ""
    charts_dir: str = "./public/charts"

    # Outbound calls
    http_timeout_sec: float = 30.0

    log_level: str = "INFO"

    @property
    def public_base_url(self) -> str:
        return (self.server_base_url or f"http://localhost:{self.port}").rstrip("/")


settings = Settings()


def get_preferences_path() -> Path:
    """Return the user preference JSON path (defaults to <data_dir>/userPreferences.json)."""
    if settings.preferences_file:
        return Path(settings.preferences_file)
    return Path(settings.data_dir) / "userPreferences.json"


def get_locations_path() -> Path:
    """Return the location directory JSON path (defaults to the packaged file)."""
    if settings.locations_file:
        return Path(settings.locations_file)
    return _PACKAGE_DIR / "data" / "locations.json"


def get_charts_dir() -> Path:
    path = Path(settings.charts_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path
