"""
Feature Configuration Loader for Synapse.

This module provides utilities to check feature flags and configure
matching components based on config/features.yaml settings,
plus environment settings (.env) for database and logging.
"""

import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

# Загружаем переменные окружения из .env (только для локального запуска)
env_path = PROJECT_ROOT / '.env'
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_FEATURES_PATH = PROJECT_ROOT / 'config' / 'features.yaml'


class Settings:
    """Настройки окружения."""

    DATABASE_URL = os.getenv('DATABASE_URL', '')

    # Путь к features.yaml (можно переопределить для тестов/деплоя)
    FEATURES_PATH = Path(os.getenv('SYNAPSE_FEATURES_PATH', str(DEFAULT_FEATURES_PATH)))

    # Логирование
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'human')
    LOG_FILE = os.getenv('LOG_FILE')


class FeatureConfig:
    """Feature configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize feature config loader.

        Args:
            config_path: Path to features.yaml, defaults to Settings.FEATURES_PATH
        """
        if config_path is None:
            config_path = Settings.FEATURES_PATH

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            self._config = {}
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"⚠️ Failed to load features config {self.config_path}: {e}")
            data = {}

        if not isinstance(data, dict):
            logger.warning(f"⚠️ Features config {self.config_path} is not a mapping, ignored")
            data = {}

        self._config = data

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    @property
    def is_synapse_enabled(self) -> bool:
        """Check if matching engine is enabled (enabled by default)."""
        return bool(self._config.get('synapse', {}).get('enabled', True))

    def is_component_enabled(self, component: str, default: bool = True) -> bool:
        """Check if specific engine component is enabled.

        Args:
            component: Component name (e.g., 'history_recording', 'concurrent_scoring')
            default: Value when the component is not mentioned in config

        Returns:
            True if component is enabled, False otherwise
        """
        if not self.is_synapse_enabled:
            return False

        return bool(self._config.get('synapse', {}).get('components', {}).get(component, default))

    def get_matching_config(self) -> Dict[str, Any]:
        """Matching section: weights, funding_capacity_multiplier, candidate_policy."""
        return dict(self._config.get('matching', {}) or {})

    def get_limit(self, limit_name: str, default: Optional[Any] = None) -> Optional[Any]:
        """Get limit value.

        Args:
            limit_name: Limit name (e.g., 'candidate_limit', 'max_concurrency')
            default: Value when the limit is not configured

        Returns:
            Limit value or default if not found
        """
        value = (self._config.get('limits', {}) or {}).get(limit_name)
        return default if value is None else value

    def get_all_config(self) -> Dict[str, Any]:
        """Get full configuration dictionary."""
        return self._config.copy()


# Global instance
feature_config = FeatureConfig()


# Convenience functions
def is_synapse_enabled() -> bool:
    """Check if matching engine is enabled."""
    return feature_config.is_synapse_enabled



def get_limit(limit_name: str, default: Optional[Any] = None) -> Optional[Any]:
    """Get limit value."""
    return feature_config.get_limit(limit_name, default)
