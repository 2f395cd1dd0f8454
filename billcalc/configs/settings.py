import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class AppSettings:
    settings_file: str = "billcalc_settings.json"
    settings_key: str = "settings"
    display_places: int = 2
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


def load_settings() -> AppSettings:
    """Read runtime settings from the environment (and .env, if present)."""
    return AppSettings(
        settings_file=os.getenv("BILLCALC_SETTINGS_FILE", "billcalc_settings.json"),
        settings_key=os.getenv("BILLCALC_SETTINGS_KEY", "settings"),
        display_places=int(os.getenv("BILLCALC_DISPLAY_PLACES", 2)),
        host=os.getenv("BILLCALC_HOST", "0.0.0.0"),
        port=int(os.getenv("BILLCALC_PORT", 8000)),
        log_level=os.getenv("BILLCALC_LOG_LEVEL", "INFO").upper(),
    )
