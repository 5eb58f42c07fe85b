"""Shared fixtures for the NexaSFC test suite."""

from __future__ import annotations

import pytest

from nexasfc.core.config import HydrationSettings, SFCConfig
from nexasfc.engine.context import Context
from nexasfc.engine.loader import DictLoader
from nexasfc.utils.logger import LogLevel, MemoryHandler, get_logger


def sfc(template: str, data: str = "{}", **attributes: str) -> str:
    """Build document source with a data and a template section."""
    attrs = "".join(f' {name}="{value}"' for name, value in attributes.items())
    return f"<data{attrs}>{data}</data>\n<template>{template}</template>\n"


@pytest.fixture
def make_sfc():
    return sfc


@pytest.fixture
def loader():
    return DictLoader({})


@pytest.fixture
def context():
    return Context(
        request={"path": "/home"},
        server={"title": "Home"},
        client={"user": {"name": "Ada", "roles": ["admin", "dev"]}},
    )


@pytest.fixture
def sfc_config():
    """Config without environment overrides or automatic nonces."""
    return SFCConfig(auto_nonce=False, hydration=HydrationSettings())


@pytest.fixture
def log_records():
    """Capture records from every ``nexasfc`` logger at DEBUG level."""
    handler = MemoryHandler()
    logger = get_logger("nexasfc")
    shared = logger.handlers
    shared.append(handler)

    from nexasfc.utils import logger as logger_module
    previous = {name: item.level for name, item in logger_module._loggers.items()}
    for item in logger_module._loggers.values():
        item.level = LogLevel.DEBUG

    yield handler

    shared.remove(handler)
    for name, level in previous.items():
        logger_module._loggers[name].level = level
