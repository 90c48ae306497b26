# optionlens_core/config.py
"""
Application settings and logging setup.

Defaults live on AppConfig; OPTIONLENS_* environment variables override them, e.g.

    OPTIONLENS_QUOTE_ENDPOINT=https://api.example.com/optionquote
    OPTIONLENS_REFRESH_SECONDS=30
    OPTIONLENS_LOG_LEVEL=DEBUG
"""

import os
import sys
from dataclasses import dataclass, fields
from typing import Optional

from loguru import logger

ENV_PREFIX = "OPTIONLENS_"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


@dataclass
class AppConfig:
    """
    Attributes:
        default_scenario_pct: scenario % shown on first load
        min_scenario_pct / max_scenario_pct: bounds of the scenario % input
        refresh_seconds: auto-refresh interval on the Live Data page
        min_refresh_seconds: lower bound for refresh_seconds
        quote_endpoint: URL returning {"last": <price>} for ?contract=<label>
        api_key: optional bearer token for quote_endpoint
        quote_timeout: per-request timeout in seconds
        store_path: JSON file backing the position store
        storage_key: key of the position list inside the store file
        log_level: loguru level for the stderr sink
        log_file: optional rotating log file
    """

    default_scenario_pct: float = 15.0
    min_scenario_pct: float = 1.0
    max_scenario_pct: float = 95.0

    refresh_seconds: int = 15
    min_refresh_seconds: int = 5

    quote_endpoint: str = ""
    api_key: str = ""
    quote_timeout: float = 5.0

    store_path: str = "data/positions.json"
    storage_key: str = "optionsRows_v4"

    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.refresh_seconds < self.min_refresh_seconds:
            logger.warning(
                f"refresh_seconds={self.refresh_seconds} is below the minimum, "
                f"using {self.min_refresh_seconds}"
            )
            self.refresh_seconds = self.min_refresh_seconds

        if not self.min_scenario_pct <= self.default_scenario_pct <= self.max_scenario_pct:
            raise ValueError(
                f"default_scenario_pct {self.default_scenario_pct} outside "
                f"[{self.min_scenario_pct}, {self.max_scenario_pct}]"
            )


def _convert(value: str, target_type):
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    return value


def load_config(environ=None) -> AppConfig:
    """
    Build AppConfig from defaults plus OPTIONLENS_* environment overrides.

    Raises:
        ValueError: if an override cannot be converted or the result is invalid
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(AppConfig):
        env_var = ENV_PREFIX + f.name.upper()
        raw = environ.get(env_var)
        if raw is None:
            continue
        target = f.type if f.type in (int, float) else str
        try:
            overrides[f.name] = _convert(raw, target)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {raw!r}") from e
        logger.debug(f"Overriding {f.name} from env: {env_var}")
    return AppConfig(**overrides)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Replace loguru's default handler with the app's stderr (and optional file) sink."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if log_file:
        logger.add(log_file, level=level, format=LOG_FORMAT, rotation="10 MB", retention=5)
