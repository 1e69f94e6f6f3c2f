"""
Driver factory for creating payment driver instances.

Turns a provider key (or an importable class path) into a configured driver.
Custom drivers can be registered at runtime, which lets applications plug in
providers without modifying this package.

Resolution order for ``create(name, config)``:
1. Driver registered at runtime under ``name``
2. ``config["driver_class"]`` (class object or dotted path)
3. ``name`` itself, when it is a dotted path (``pkg.module.Class`` or ``pkg.module:Class``)
4. Built-in driver table, then the naming convention: ``mock_bank`` ->
   ``MockBankDriver`` in ``payment_gateway.drivers``
"""

import importlib
import inspect
import re
from typing import Any, Mapping

import structlog

from payment_gateway.drivers import BUILTIN_DRIVERS
from payment_gateway.drivers.base import DriverInterface, implements_driver_interface
from payment_gateway.models import DriverNotFoundException

logger = structlog.get_logger(__name__)


def _class_label(target: Any) -> str:
    if isinstance(target, str):
        return target
    if inspect.isclass(target):
        return f"{target.__module__}.{target.__qualname__}"
    return repr(target)


def _is_dotted_path(name: str) -> bool:
    return ":" in name or "." in name


class DriverFactory:
    """
    Factory and registry for payment drivers.

    Registered classes are validated structurally: they must expose the
    driver capability set (charge, verify, get_supported_currencies,
    is_currency_supported, get_cached_health_check) and not be abstract.
    Created instances are validated the same way.
    """

    driver_namespace = "payment_gateway.drivers"

    def __init__(self) -> None:
        self._drivers: dict[str, type] = {}

    def create(self, name: str, config: Mapping[str, Any] | None = None) -> DriverInterface:
        """
        Create a driver instance.

        Args:
            name: Provider key (e.g., "paystack") or dotted class path
            config: Provider configuration passed to the driver constructor

        Returns:
            Configured driver

        Raises:
            DriverNotFoundException: If no class can be resolved, or the class
                                     does not implement DriverInterface
            InvalidConfigurationException: If the driver rejects its config
        """
        config = dict(config or {})
        driver_class = self.resolve_driver_class(name, config)

        # Subclasses may override resolve_driver_class; validate regardless
        if not implements_driver_interface(driver_class):
            raise DriverNotFoundException(
                f"Driver class [{_class_label(driver_class)}] for driver [{name}] "
                "must implement DriverInterface"
            )

        driver = driver_class(config)
        if not implements_driver_interface(driver):
            raise DriverNotFoundException(
                f"Driver [{name}] instance of [{_class_label(driver_class)}] "
                "must implement DriverInterface"
            )

        logger.info(
            "driver_created",
            driver_name=name,
            driver_class=driver_class.__name__,
        )
        return driver

    def resolve_driver_class(self, name: str, config: Mapping[str, Any] | None = None) -> type:
        """
        Find the class for ``name``.

        Raises:
            DriverNotFoundException: If no resolution step yields a class
        """
        config = config or {}

        if name in self._drivers:
            return self._drivers[name]

        attempted = self.convention_class_name(name)

        override = config.get("driver_class")
        if override:
            driver_class = self._load_class(override)
            if driver_class is not None:
                return driver_class
            attempted = _class_label(override)

        if _is_dotted_path(name):
            driver_class = self._load_class(name)
            if driver_class is not None:
                return driver_class
            if not override:
                attempted = name
        elif name in BUILTIN_DRIVERS:
            return BUILTIN_DRIVERS[name]
        else:
            builtin_path = f"{self.driver_namespace}:{self.convention_class_name(name)}"
            driver_class = self._load_class(builtin_path)
            if driver_class is not None:
                return driver_class

        raise DriverNotFoundException(
            f"Driver class [{attempted}] not found for driver [{name}]",
            context={"driver": name, "class": attempted},
        )

    @staticmethod
    def convention_class_name(name: str) -> str:
        """``mock_bank`` -> ``MockBankDriver``."""
        base = re.split(r"[.:]", name)[-1]
        parts = [part for part in re.split(r"[_\-\s]+", base) if part]
        return "".join(part[:1].upper() + part[1:] for part in parts) + "Driver"

    def register(self, name: str, driver_class: type | str) -> "DriverFactory":
        """
        Register (or replace) a driver under ``name``.

        Args:
            name: Provider key to register under
            driver_class: Driver class or dotted path to one

        Returns:
            self, for chaining

        Raises:
            DriverNotFoundException: If the class can't be loaded or does not
                                     implement DriverInterface. The registry is
                                     left unchanged.
        """
        label = _class_label(driver_class)
        resolved = self._load_class(driver_class)

        if resolved is None:
            raise DriverNotFoundException(
                f"Cannot register driver [{name}]: class [{label}] does not exist"
            )

        if not implements_driver_interface(resolved):
            raise DriverNotFoundException(
                f"Cannot register driver [{name}]: class [{label}] must implement DriverInterface"
            )

        self._drivers[name] = resolved
        logger.info(
            "driver_registered",
            driver_name=name,
            driver_class=resolved.__name__,
        )
        return self

    def unregister(self, name: str) -> "DriverFactory":
        self._drivers.pop(name, None)
        return self

    def get_registered_drivers(self) -> set[str]:
        """Keys registered at runtime (built-in drivers are not included)."""
        return set(self._drivers)

    def is_registered(self, name: str) -> bool:
        return name in self._drivers

    @staticmethod
    def list_builtin_drivers() -> list[str]:
        return sorted(BUILTIN_DRIVERS)

    @staticmethod
    def _load_class(target: type | str) -> type | None:
        """Return the class for a class object or dotted path, or None."""
        if inspect.isclass(target):
            return target
        if not isinstance(target, str) or not _is_dotted_path(target):
            return None

        if ":" in target:
            module_path, _, attribute = target.partition(":")
        else:
            module_path, _, attribute = target.rpartition(".")

        try:
            module = importlib.import_module(module_path)
        except (ImportError, ValueError) as e:
            logger.debug("driver_module_not_importable", path=target, error=str(e))
            return None

        candidate = getattr(module, attribute, None)
        return candidate if inspect.isclass(candidate) else None
