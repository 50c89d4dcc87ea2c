import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    data_dir: Path = Path("data/store")
    sources_csv: Path = Path("data/sources.csv")
    watchlist_csv: Path = Path("data/watchlist.csv")
    alerts_csv: Path = Path("data/alerts.csv")
    fetch_timeout: int = 15
    fetch_batch_size: int = 5
    scrape_fda_site: bool = True
    max_violations: int = 100
    fuzzy_threshold: float = 0.85
    alerts_enabled: bool = False
    alert_channel: str = "tbd"
    slack_webhook_url: str = ""
    high_severity_threshold: int = 9
    hunter_api_key: str = ""


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    logger.warning("Invalid boolean value for %s: %s", name, value)
    return default


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Invalid integer value for %s: %s", name, value)
        return default
    if minimum is not None and parsed < minimum:
        logger.warning("Value for %s below %s: %s", name, minimum, value)
        return default
    return parsed


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning("Invalid float value for %s: %s", name, value)
        return default
    if not 0.0 <= parsed <= 1.0:
        logger.warning("Value for %s outside [0, 1]: %s", name, value)
        return default
    return parsed


def load_config() -> AppConfig:
    """Load configuration from defaults and optional .env overrides."""
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)

    defaults = AppConfig()

    return AppConfig(
        data_dir=_env_path("DATA_DIR", defaults.data_dir),
        sources_csv=_env_path("SOURCES_CSV", defaults.sources_csv),
        watchlist_csv=_env_path("WATCHLIST_CSV", defaults.watchlist_csv),
        alerts_csv=_env_path("ALERTS_CSV", defaults.alerts_csv),
        fetch_timeout=_env_int("FETCH_TIMEOUT", defaults.fetch_timeout, minimum=1),
        fetch_batch_size=_env_int(
            "FETCH_BATCH_SIZE", defaults.fetch_batch_size, minimum=1
        ),
        scrape_fda_site=_env_bool("SCRAPE_FDA_SITE", defaults.scrape_fda_site),
        max_violations=_env_int(
            "MAX_VIOLATIONS", defaults.max_violations, minimum=1
        ),
        fuzzy_threshold=_env_float("FUZZY_THRESHOLD", defaults.fuzzy_threshold),
        alerts_enabled=_env_bool("ALERTS_ENABLED", defaults.alerts_enabled),
        alert_channel=_env_str("ALERT_CHANNEL", defaults.alert_channel),
        slack_webhook_url=_env_str(
            "SLACK_WEBHOOK_URL", defaults.slack_webhook_url
        ),
        high_severity_threshold=_env_int(
            "HIGH_SEVERITY_THRESHOLD", defaults.high_severity_threshold
        ),
        hunter_api_key=_env_str("HUNTER_API_KEY", defaults.hunter_api_key),
    )
