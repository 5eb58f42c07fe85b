"""
NexaSFC Configuration Management
================================

Hierarchical configuration with dot-notation access plus typed settings
objects consumed by the renderer and the hydration pipeline.

Configuration Loading Priority (highest to lowest):
1. Runtime overrides (``Config.set``)
2. Environment variables (NEXASFC_*)
3. Python config files (``Config.load_file``)
4. Defaults

Environment variables use a double underscore between levels:

    NEXASFC_HYDRATION__STRATEGY=early      -> hydration.strategy
    NEXASFC_TEMPLATES__PATHS='["views"]'   -> templates.paths

Example:
    config = Config.with_defaults()
    config.set("hydration.strategy", "earliest")

    settings = SFCConfig.from_config(config)
    settings.hydration.strategy   # InjectionStrategy.EARLIEST
"""

from __future__ import annotations

import copy
import importlib.util
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

from nexasfc.errors import ConfigurationError, HydrationError
from nexasfc.utils import serializer
from nexasfc.utils.logger import Logger, configure_logging

T = TypeVar("T")

ENV_PREFIX = "NEXASFC_"


class InjectionStrategy(Enum):
    """Where hydration markup is placed."""
    LATE = "late"
    EARLY = "early"
    EARLIEST = "earliest"
    LINK = "link"
    PREFETCH = "prefetch"
    PRELOAD = "preload"
    MODULEPRELOAD = "modulepreload"
    LAZY = "lazy"

    @property
    def is_link_based(self) -> bool:
        return self in LINK_BASED_STRATEGIES

    @classmethod
    def parse(cls, value: Union[str, "InjectionStrategy"]) -> "InjectionStrategy":
        if isinstance(value, InjectionStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ConfigurationError(
                f"Unknown injection strategy '{value}' (expected one of: {valid})"
            ) from None


LINK_BASED_STRATEGIES = frozenset({
    InjectionStrategy.LINK,
    InjectionStrategy.PREFETCH,
    InjectionStrategy.PRELOAD,
    InjectionStrategy.MODULEPRELOAD,
    InjectionStrategy.LAZY,
})

DEFAULT_CSP_POLICY: Dict[str, List[str]] = {
    "default-src": ["'self'"],
    "script-src": ["'self'", "'nonce-{{nonce}}'"],
    "style-src": ["'self'", "'nonce-{{nonce}}'", "'unsafe-hashes'"],
    "img-src": ["'self'", "data:"],
    "font-src": ["'self'"],
    "connect-src": ["'self'"],
    "base-uri": ["'self'"],
    "form-action": ["'self'"],
    "frame-ancestors": ["'none'"],
    "object-src": ["'none'"],
    "media-src": ["'self'"],
    "worker-src": ["'self'"],
    "manifest-src": ["'self'"],
    "upgrade-insecure-requests": [],
}

DEFAULTS: Dict[str, Any] = {
    "templates": {
        "paths": [],
        "extension": ".sfc",
        "cache": True,
        "max_partial_depth": 64,
    },
    "hydration": {
        "strategy": "late",
        "mount_point_selectors": ["#app", "#root", "[data-rsfc-mount]", "[data-mount]"],
        "fallback_to_late": True,
        "fallback_when_unsafe": True,
        "disable_early_for_templates": [],
        "api_endpoint_path": "/api/hydration",
        "link_crossorigin": True,
        "lazy_mount_selector": "#app",
    },
    "csp": {
        "enabled": True,
        "auto_nonce": True,
        "policy": DEFAULT_CSP_POLICY,
    },
    "logging": {
        "level": "WARNING",
        "format": "text",
    },
}


@dataclass
class ConfigSource:
    """A configuration source with priority."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Configuration container.

    Values are nested dicts addressed with dot notation. Sources are
    merged by priority, higher priority wins.

    Example:
        config = Config()
        config.set("hydration.strategy", "early")
        config.get("hydration.strategy")            # "early"
        config.get("hydration.missing", "default")  # "default"
    """

    def __init__(self) -> None:
        self._sources: List[ConfigSource] = []
        self._cache: Dict[str, Any] = {}
        self._merged: Dict[str, Any] = {}
        self._dirty = True

    @classmethod
    def with_defaults(cls, load_env: bool = True) -> "Config":
        """Config holding the built-in defaults and, optionally, env overrides."""
        config = cls()
        config.add_source("defaults", copy.deepcopy(DEFAULTS), priority=0)
        if load_env:
            config.load_env()
        return config

    def load_file(self, path: Union[str, Path], priority: int = 10) -> None:
        """
        Load a Python config file.

        The module may define a ``config`` dict; otherwise its public
        module-level names are used.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        spec = importlib.util.spec_from_file_location("nexasfc_user_config", path)
        if spec is None or spec.loader is None:
            raise ConfigurationError(f"Cannot load config file: {path}")

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if hasattr(module, "config"):
            data = module.config
        else:
            data = {
                key: value
                for key, value in vars(module).items()
                if not key.startswith("_")
            }
        self.add_source(f"file:{path.name}", data, priority=priority)

    def load_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Load overrides from NEXASFC_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for key, value in environ.items():
            if key.startswith(ENV_PREFIX) and len(key) > len(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower().replace("__", ".")
                overrides[config_key] = self._parse_env_value(value)

        if overrides:
            self.add_source("env", self._unflatten(overrides), priority=100)

    def _parse_env_value(self, value: str) -> Any:
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        if value.lstrip().startswith(("{", "[")):
            try:
                return serializer.loads(value)
            except HydrationError:
                pass

        return value

    def _unflatten(self, flat: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in flat.items():
            parts = key.split(".")
            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value
        return result

    def add_source(self, name: str, data: Dict[str, Any], priority: int = 0) -> None:
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True

    def _merge(self) -> None:
        if not self._dirty:
            return

        self._merged = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            self._deep_merge(self._merged, copy.deepcopy(source.data))

        self._dirty = False
        self._cache.clear()

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: T = None) -> Union[Any, T]:
        """
        Get a value using dot notation.

        Args:
            key: Configuration key (e.g., "hydration.strategy")
            default: Returned when the key is missing

        Returns:
            Configuration value or default
        """
        self._merge()
        if key in self._cache:
            return self._cache[key]

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        self._cache[key] = current
        return current

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "on")
        return bool(value)

    def get_list(self, key: str, default: Optional[List] = None) -> List:
        value = self.get(key, default)
        if value is None:
            return list(default or [])
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [value]

    def set(self, key: str, value: Any) -> None:
        """Set a runtime value (highest priority)."""
        runtime = next((s for s in self._sources if s.name == "runtime"), None)
        if runtime is None:
            runtime = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime)

        parts = key.split(".")
        current = runtime.data
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def section(self, prefix: str) -> Dict[str, Any]:
        value = self.get(prefix)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def all(self) -> Dict[str, Any]:
        self._merge()
        return copy.deepcopy(self._merged)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)


@dataclass
class HydrationSettings:
    """
    Hydration injection settings.

    Attributes:
        strategy: Injection strategy
        mount_point_selectors: Selectors tried for early injection
        fallback_to_late: Use late injection when no early position exists
        fallback_when_unsafe: Use late injection when the early position is
            unsafe; when False the page is left without hydration
        disable_early_for_templates: Templates that always use late injection
        api_endpoint_path: Base path for link-based strategies
        link_crossorigin: Add ``crossorigin`` to prefetch/preload hints
        lazy_mount_selector: Element observed by the lazy strategy
    """
    strategy: InjectionStrategy = InjectionStrategy.LATE
    mount_point_selectors: Tuple[str, ...] = ("#app", "#root", "[data-rsfc-mount]", "[data-mount]")
    fallback_to_late: bool = True
    fallback_when_unsafe: bool = True
    disable_early_for_templates: Tuple[str, ...] = ()
    api_endpoint_path: str = "/api/hydration"
    link_crossorigin: bool = True
    lazy_mount_selector: str = "#app"

    def __post_init__(self) -> None:
        self.strategy = InjectionStrategy.parse(self.strategy)
        self.mount_point_selectors = tuple(self.mount_point_selectors)
        self.disable_early_for_templates = tuple(self.disable_early_for_templates)
        if not self.api_endpoint_path.startswith("/"):
            raise ConfigurationError("hydration.api_endpoint_path must start with '/'")
        self.api_endpoint_path = self.api_endpoint_path.rstrip("/") or "/"

    @classmethod
    def from_config(cls, config: Config) -> "HydrationSettings":
        return cls(
            strategy=config.get("hydration.strategy", "late"),
            mount_point_selectors=config.get_list(
                "hydration.mount_point_selectors", list(DEFAULTS["hydration"]["mount_point_selectors"])
            ),
            fallback_to_late=config.get_bool("hydration.fallback_to_late", True),
            fallback_when_unsafe=config.get_bool("hydration.fallback_when_unsafe", True),
            disable_early_for_templates=config.get_list("hydration.disable_early_for_templates"),
            api_endpoint_path=config.get("hydration.api_endpoint_path", "/api/hydration"),
            link_crossorigin=config.get_bool("hydration.link_crossorigin", True),
            lazy_mount_selector=config.get("hydration.lazy_mount_selector", "#app"),
        )


@dataclass
class SFCConfig:
    """
    Typed settings for views.

    Example:
        settings = SFCConfig(template_paths=["templates"])
        settings.hydration.strategy = InjectionStrategy.EARLY
    """
    template_paths: List[str] = field(default_factory=list)
    extension: str = ".sfc"
    cache_templates: bool = True
    max_partial_depth: int = 64
    csp_enabled: bool = True
    auto_nonce: bool = True
    csp_policy: Dict[str, List[str]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_CSP_POLICY)
    )
    hydration: HydrationSettings = field(default_factory=HydrationSettings)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: Listing every invalid value
        """
        errors: List[str] = []
        if not self.extension.startswith("."):
            errors.append("templates.extension must start with '.'")
        if self.max_partial_depth < 1:
            errors.append("templates.max_partial_depth must be positive")
        if not isinstance(self.csp_policy, dict):
            errors.append("csp.policy must be a mapping")
        if errors:
            raise ConfigurationError("Configuration errors: " + ", ".join(errors))

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "SFCConfig":
        config = config or get_config()
        return cls(
            template_paths=config.get_list("templates.paths"),
            extension=config.get("templates.extension", ".sfc"),
            cache_templates=config.get_bool("templates.cache", True),
            max_partial_depth=config.get_int("templates.max_partial_depth", 64),
            csp_enabled=config.get_bool("csp.enabled", True),
            auto_nonce=config.get_bool("csp.auto_nonce", True),
            csp_policy=copy.deepcopy(config.get("csp.policy", DEFAULT_CSP_POLICY)),
            hydration=HydrationSettings.from_config(config),
        )


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide configuration, created with defaults on first use."""
    global _config
    if _config is None:
        _config = Config.with_defaults()
    return _config


def reset_config() -> None:
    global _config
    _config = None


def setup_logging(config: Optional[Config] = None) -> Logger:
    """
    Apply the ``logging`` section to every ``nexasfc`` logger.

    Keys: ``level``, ``format`` ("text" or "json"), ``file``, ``colors``.
    """
    config = config or get_config()
    return configure_logging(
        level=config.get("logging.level", "WARNING"),
        format=config.get("logging.format", "text"),
        log_file=config.get("logging.file"),
        colors=config.get_bool("logging.colors", False),
    )
