#!/usr/bin/env python3
"""
Dependency Injection Container

Central place where the configuration, engine registry, validator, metrics
history, aggregator and runner are wired together.
"""

import logging
import threading
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a service created once on first use."""
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a service created anew on every get()."""
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register an existing instance as singleton."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]
            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """Mark a factory function as singleton."""
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def setup_default_services(container: Container) -> None:
    """Register default services; everything is built from the configuration."""

    @singleton
    def create_config():
        from ordercheck.config import get_config
        return get_config()

    @singleton
    def create_engine_registry():
        from ordercheck.engines.registry import create_default_registry
        return create_default_registry()

    @singleton
    def create_validator():
        from ordercheck.validation.engine import SortingValidator
        return SortingValidator()

    @singleton
    def create_metrics_history():
        from ordercheck.metrics.history import MetricsHistoryRepository
        config = container.get('config')
        return MetricsHistoryRepository(config.metrics.history_file, config.metrics.retention_days)

    @singleton
    def create_quality_aggregator():
        from ordercheck.metrics.quality import QualityMetricsAggregator
        config = container.get('config')
        return QualityMetricsAggregator(container.get('metrics_history'), config.thresholds)

    def create_runner():
        from ordercheck.runner import ValidationRunner
        return ValidationRunner(
            container.get('config'),
            container.get('engine_registry'),
            container.get('validator'),
            container.get('quality_aggregator')
        )

    container.register_factory('config', create_config)
    container.register_factory('engine_registry', create_engine_registry)
    container.register_factory('validator', create_validator)
    container.register_factory('metrics_history', create_metrics_history)
    container.register_factory('quality_aggregator', create_quality_aggregator)
    container.register_factory('runner', create_runner)
