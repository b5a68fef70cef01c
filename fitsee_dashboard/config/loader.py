"""
Configuration management and loading.

Handles dashboard settings read from a YAML file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "FITSEE_DASHBOARD_CONFIG"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


@dataclass(frozen=True)
class DatabaseConfig:
    """Location of the application's store."""
    path: str = "fitsee.db"

    def __post_init__(self):
        if not self.path or not self.path.strip():
            raise ValueError("database path cannot be empty")


@dataclass(frozen=True)
class ReportConfig:
    """Sizes of paginated and truncated report sections."""
    page_size: int = 20
    top_shops_limit: int = 10
    recent_items_limit: int = 10
    api_log_limit: int = 50

    def __post_init__(self):
        """Validate all limits are positive."""
        for name in ("page_size", "top_shops_limit", "recent_items_limit", "api_log_limit"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server binding."""
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")


@dataclass(frozen=True)
class DashboardConfig:
    """Complete dashboard configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    reports: ReportConfig = field(default_factory=ReportConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(VALID_LOG_LEVELS)}")


def load_dashboard_config(path: Optional[str] = None) -> DashboardConfig:
    """Load and validate dashboard configuration from a YAML file.

    When ``path`` is None the ``FITSEE_DASHBOARD_CONFIG`` environment
    variable is consulted; with neither set, defaults are returned.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated DashboardConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return DashboardConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Dashboard config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'database', 'pagination', 'reports', 'server', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    database_data = _section(raw_config, 'database', {'path'})
    pagination_data = _section(raw_config, 'pagination', {'page_size'})
    reports_data = _section(
        raw_config, 'reports', {'top_shops_limit', 'recent_items_limit', 'api_log_limit'}
    )
    server_data = _section(raw_config, 'server', {'host', 'port'})
    logging_data = _section(raw_config, 'logging', {'level'})

    database = DatabaseConfig(
        path=str(database_data.get('path', DatabaseConfig.path))
    )

    report_values = {}
    for key, value in {**pagination_data, **reports_data}.items():
        report_values[key] = _positive_int(value, key)
    reports = ReportConfig(**report_values)

    server = ServerConfig(
        host=str(server_data.get('host', ServerConfig.host)),
        port=_positive_int(server_data.get('port', ServerConfig.port), 'server.port')
    )

    level = logging_data.get('level', 'INFO')
    if not isinstance(level, str):
        raise ValueError("'logging.level' must be a string")

    return DashboardConfig(
        database=database,
        reports=reports,
        server=server,
        log_level=level.upper()
    )


def _section(raw_config: Dict[str, Any], name: str, allowed_keys: set) -> Dict[str, Any]:
    """Extract an optional section and reject unknown keys in it.

    Args:
        raw_config: Parsed YAML document
        name: Section name
        allowed_keys: Keys permitted in the section

    Returns:
        Section contents, empty when the section is absent

    Raises:
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data


def _positive_int(value: Any, name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{name}' must be a positive integer")
    return value
