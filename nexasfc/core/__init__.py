"""
NexaSFC Core Package
====================

Configuration for templates, hydration and CSP.
"""

from nexasfc.core.config import (
    Config,
    HydrationSettings,
    InjectionStrategy,
    SFCConfig,
    get_config,
    reset_config,
    setup_logging,
)

__all__ = [
    "Config",
    "HydrationSettings",
    "InjectionStrategy",
    "SFCConfig",
    "get_config",
    "reset_config",
    "setup_logging",
]
