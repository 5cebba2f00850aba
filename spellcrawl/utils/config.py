"""
Configuration management for the spell crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, fields


SUPPORTED_BACKENDS = ('http', 'browser')
SUPPORTED_BROWSERS = ('chromium', 'firefox', 'webkit')
SUPPORTED_WAIT_UNTIL = ('domcontentloaded', 'load', 'networkidle', 'commit')
SUPPORTED_REPORT_FORMATS = ('text', 'json')


class ConfigError(ValueError):
    """Raised when the configuration is missing, malformed or invalid."""
    pass


@dataclass
class InputConfig:
    """Configuration for the record source."""
    file: str = 'urls.csv'
    encoding: str = 'utf-8'


@dataclass
class CrawlerConfig:
    """Configuration for fetching and scheduling."""
    batch_size: int = 5
    fetch_timeout: float = 30.0
    backend: str = 'http'
    user_agent: str = 'spellcrawl/1.0'
    max_content_size: int = 10 * 1024 * 1024
    browser: str = 'chromium'
    headless: bool = True
    wait_until: str = 'domcontentloaded'


@dataclass
class SpellingConfig:
    """Configuration for the spelling oracle."""
    language: str = 'en'
    min_word_length: int = 2
    ignore_capitalized: bool = False
    custom_words: List[str] = field(default_factory=list)
    custom_dictionaries: List[str] = field(default_factory=list)


@dataclass
class ReportConfig:
    """Configuration for report rendering."""
    format: str = 'text'
    output: Optional[str] = None
    context_window: int = 30
    highlight_start: str = '**'
    highlight_end: str = '**'


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/spellcrawl.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000
    export_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    input: InputConfig = field(default_factory=InputConfig)
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    spelling: SpellingConfig = field(default_factory=SpellingConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


_SECTIONS = {
    'input': InputConfig,
    'crawler': CrawlerConfig,
    'spelling': SpellingConfig,
    'report': ReportConfig,
    'logging': LoggingConfig,
    'monitoring': MonitoringConfig,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _build_section(name: str, section_cls, data: Any):
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in section '{name}': {', '.join(sorted(unknown))}")

    return section_cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
        """
        Load configuration from the YAML file, if any, and apply overrides.

        Args:
            overrides: Per-section values that take precedence over the file,
                e.g. ``{'crawler': {'batch_size': 10}}``. ``None`` values are ignored.

        Returns:
            The validated Config
        """
        config_data: Dict[str, Any] = {}

        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigError(f"Configuration file not found: {self.config_path}")

            try:
                with open(self.config_path, 'r', encoding='utf-8') as file:
                    config_data = yaml.safe_load(file) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Could not read configuration file {self.config_path}: {e}") from e

            if not isinstance(config_data, dict):
                raise ConfigError("Configuration file must contain a mapping at the top level")

            unknown = set(config_data) - set(_SECTIONS)
            if unknown:
                raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        for section, values in (overrides or {}).items():
            merged = dict(config_data.get(section) or {})
            merged.update({key: value for key, value in values.items() if value is not None})
            config_data[section] = merged

        try:
            sections = {
                name: _build_section(name, section_cls, config_data.get(name))
                for name, section_cls in _SECTIONS.items()
            }
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        self._config = Config(**sections)
        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        crawler = self._config.crawler
        if not _is_integer(crawler.batch_size) or crawler.batch_size < 1:
            raise ConfigError("batch_size must be a positive integer")

        if not _is_number(crawler.fetch_timeout) or crawler.fetch_timeout <= 0:
            raise ConfigError("fetch_timeout must be a positive number")

        if not _is_integer(crawler.max_content_size) or crawler.max_content_size < 1:
            raise ConfigError("max_content_size must be a positive integer")

        if crawler.backend not in SUPPORTED_BACKENDS:
            raise ConfigError(f"backend must be one of {', '.join(SUPPORTED_BACKENDS)}")

        if crawler.browser not in SUPPORTED_BROWSERS:
            raise ConfigError(f"browser must be one of {', '.join(SUPPORTED_BROWSERS)}")

        if crawler.wait_until not in SUPPORTED_WAIT_UNTIL:
            raise ConfigError(f"wait_until must be one of {', '.join(SUPPORTED_WAIT_UNTIL)}")

        min_word_length = self._config.spelling.min_word_length
        if not _is_integer(min_word_length) or min_word_length < 1:
            raise ConfigError("min_word_length must be an integer of at least 1")

        report = self._config.report
        if report.format not in SUPPORTED_REPORT_FORMATS:
            raise ConfigError(f"report format must be one of {', '.join(SUPPORTED_REPORT_FORMATS)}")

        if not _is_integer(report.context_window) or report.context_window < 0:
            raise ConfigError("context_window must be a non-negative integer")

        port = self._config.monitoring.prometheus_port
        if not _is_integer(port) or not 0 < port < 65536:
            raise ConfigError("prometheus_port must be an integer between 1 and 65535")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: Optional[str] = None,
                overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """Load configuration from file (optional) with command-line overrides."""
    return ConfigManager(config_path).load_config(overrides)
