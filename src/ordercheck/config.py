#!/usr/bin/env python3
"""
Centralized Configuration Manager

Single source of truth for collection limits, engine timeouts, retry
budgets, pass/fail thresholds and metrics history settings.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple

from ordercheck.env_loader import load_env_file, get_env_bool
from ordercheck.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LISTING_URL = "https://news.ycombinator.com/newest"
MAX_SLOWMO_MS = 5000


@dataclass(frozen=True)
class EngineTimeouts:
    """Per-engine timeouts in milliseconds."""
    navigation_ms: int
    element_ms: int
    default_ms: int


# Firefox renders the listing noticeably slower, so it gets longer budgets
ENGINE_TIMEOUTS: Dict[str, EngineTimeouts] = {
    'chromium': EngineTimeouts(navigation_ms=30000, element_ms=15000, default_ms=15000),
    'firefox': EngineTimeouts(navigation_ms=35000, element_ms=20000, default_ms=20000),
}


@dataclass(frozen=True)
class Viewport:
    """Named browser viewport."""
    name: str
    width: int
    height: int

    def to_dict(self) -> Dict[str, int]:
        return {'width': self.width, 'height': self.height}


VIEWPORTS: Dict[str, Viewport] = {
    'desktop': Viewport('Desktop', 1920, 1080),
    'tablet': Viewport('Tablet', 768, 1024),
    'mobile': Viewport('Mobile', 375, 667),
}


@dataclass
class RetryConfig:
    """Retry budget with linear backoff (backoff_ms * attempt)."""
    max_attempts: int = 3
    backoff_ms: int = 1000


@dataclass
class CollectionConfig:
    """Paginated collection settings."""
    listing_url: str = DEFAULT_LISTING_URL
    target_count: int = 100
    max_pages: int = 5
    page_retry: RetryConfig = field(default_factory=RetryConfig)
    record_retry: RetryConfig = field(default_factory=lambda: RetryConfig(max_attempts=2, backoff_ms=500))
    screenshot_dir: str = "reports/screenshots"


@dataclass
class ThresholdConfig:
    """Pass/fail policy applied to validation and quality results."""
    sorting_accuracy: float = 20.0
    data_completeness: float = 90.0
    performance_ms: int = 5000
    max_consecutive_errors: int = 3
    # Quality gates
    quality_sorting_accuracy: float = 80.0
    performance_score: float = 75.0
    security_score: float = 95.0
    overall_quality: float = 85.0


@dataclass
class MetricsConfig:
    """Quality history settings."""
    history_file: str = "reports/quality-metrics-history.json"
    retention_days: int = 30


@dataclass
class BrowserConfig:
    """Browser launch settings."""
    engines: List[str] = field(default_factory=lambda: ['chromium', 'firefox'])
    viewports: List[str] = field(default_factory=lambda: ['desktop', 'tablet', 'mobile'])
    headless: bool = True
    slow_mo_ms: int = 0
    user_agent: Optional[str] = None

    def get_viewports(self) -> List[Viewport]:
        return [VIEWPORTS[name] for name in self.viewports]


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    reports_dir: str = "reports"
    health_check_timeout: int = 10
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    collection: CollectionConfig
    thresholds: ThresholdConfig
    metrics: MetricsConfig
    browser: BrowserConfig
    app: ApplicationConfig

    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))
    is_ci: bool = field(default_factory=lambda: bool(os.getenv('CI') or os.getenv('GITHUB_ACTIONS')))

    def timeouts_for(self, engine: str) -> EngineTimeouts:
        """Timeouts for an engine; unknown engines get the chromium budget."""
        return ENGINE_TIMEOUTS.get(engine, ENGINE_TIMEOUTS['chromium'])

    def matrix(self) -> List[Tuple[str, Viewport]]:
        """All engine x viewport combinations to run."""
        return [(engine, viewport) for engine in self.browser.engines for viewport in self.browser.get_viewports()]


def clamp_slow_mo(raw: Optional[str]) -> int:
    """Parse SLOWMO, falling back to 0 and bounding to 0..5000ms."""
    try:
        value = int(raw) if raw not in (None, '') else 0
    except ValueError:
        logger.warning(f"Ignoring non-numeric SLOWMO value: {raw!r}")
        return 0
    return max(0, min(value, MAX_SLOWMO_MS))


def _split_list(raw: Optional[str], default: List[str]) -> List[str]:
    if not raw:
        return list(default)
    return [item.strip().lower() for item in raw.split(',') if item.strip()]


class ConfigManager:
    """Manages configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env", load_env: bool = True):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
            load_env: Whether to read the .env file at all
        """
        self._config: Optional[Config] = None
        if load_env:
            load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get configuration, building it from the environment on first use.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _get_int(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw in (None, ''):
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(key, f"expected an integer, got {raw!r}")

    def _get_float(self, key: str, default: float) -> float:
        raw = os.getenv(key)
        if raw in (None, ''):
            return default
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(key, f"expected a number, got {raw!r}")

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        retry_attempts = self._get_int('RETRY_MAX_ATTEMPTS', 3)
        retry_backoff = self._get_int('RETRY_BACKOFF_MS', 1000)

        collection_config = CollectionConfig(
            listing_url=os.getenv('LISTING_URL', DEFAULT_LISTING_URL),
            target_count=self._get_int('TARGET_COUNT', 100),
            max_pages=self._get_int('MAX_PAGES', 5),
            page_retry=RetryConfig(max_attempts=retry_attempts, backoff_ms=retry_backoff),
            record_retry=RetryConfig(
                max_attempts=self._get_int('RECORD_RETRY_ATTEMPTS', 2),
                backoff_ms=self._get_int('RECORD_RETRY_BACKOFF_MS', 500)
            ),
            screenshot_dir=os.getenv('SCREENSHOT_DIR', 'reports/screenshots')
        )

        threshold_config = ThresholdConfig(
            sorting_accuracy=self._get_float('SORTING_ACCURACY_THRESHOLD', 20.0),
            data_completeness=self._get_float('DATA_COMPLETENESS_THRESHOLD', 90.0),
            performance_ms=self._get_int('PERFORMANCE_THRESHOLD_MS', 5000),
            max_consecutive_errors=self._get_int('MAX_CONSECUTIVE_ERRORS', 3),
            overall_quality=self._get_float('OVERALL_QUALITY_THRESHOLD', 85.0)
        )

        metrics_config = MetricsConfig(
            history_file=os.getenv('METRICS_HISTORY_FILE', 'reports/quality-metrics-history.json'),
            retention_days=self._get_int('METRICS_RETENTION_DAYS', 30)
        )

        browser_config = BrowserConfig(
            engines=_split_list(os.getenv('ENGINES'), ['chromium', 'firefox']),
            viewports=_split_list(os.getenv('VIEWPORTS'), ['desktop', 'tablet', 'mobile']),
            headless=get_env_bool('HEADLESS', True),
            slow_mo_ms=clamp_slow_mo(os.getenv('SLOWMO')),
            user_agent=os.getenv('BROWSER_USER_AGENT')
        )

        app_config = ApplicationConfig(
            reports_dir=os.getenv('REPORTS_DIR', 'reports'),
            health_check_timeout=self._get_int('HEALTH_CHECK_TIMEOUT', 10),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=get_env_bool('VERBOSE_LOGGING', False)
        )

        config = Config(
            collection=collection_config,
            thresholds=threshold_config,
            metrics=metrics_config,
            browser=browser_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if config.collection.target_count < 1:
            errors.append("TARGET_COUNT must be at least 1")

        if config.collection.max_pages < 1:
            errors.append("MAX_PAGES must be at least 1")

        if config.collection.page_retry.max_attempts < 1:
            errors.append("RETRY_MAX_ATTEMPTS must be at least 1")

        if config.collection.record_retry.max_attempts < 1:
            errors.append("RECORD_RETRY_ATTEMPTS must be at least 1")

        if config.collection.page_retry.backoff_ms < 0 or config.collection.record_retry.backoff_ms < 0:
            errors.append("Retry backoff must not be negative")

        if not config.collection.listing_url.startswith(('http://', 'https://')):
            errors.append("LISTING_URL must be an http(s) URL")

        for name, value in (('SORTING_ACCURACY_THRESHOLD', config.thresholds.sorting_accuracy),
                            ('DATA_COMPLETENESS_THRESHOLD', config.thresholds.data_completeness),
                            ('OVERALL_QUALITY_THRESHOLD', config.thresholds.overall_quality)):
            if value < 0 or value > 100:
                errors.append(f"{name} must be between 0 and 100")

        if config.metrics.retention_days < 1:
            errors.append("METRICS_RETENTION_DAYS must be at least 1")

        unknown_engines = [e for e in config.browser.engines if e not in ENGINE_TIMEOUTS]
        if unknown_engines:
            errors.append(f"ENGINES contains unsupported engines: {', '.join(unknown_engines)}")

        unknown_viewports = [v for v in config.browser.viewports if v not in VIEWPORTS]
        if unknown_viewports:
            errors.append(f"VIEWPORTS must be drawn from: {', '.join(VIEWPORTS)}")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ConfigurationError('environment', '; '.join(errors))

        logger.debug("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S'))


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Drop the cached manager so the next get_config() rereads the environment."""
    global _config_manager
    _config_manager = None
