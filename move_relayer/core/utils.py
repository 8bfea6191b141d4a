"""Utility helpers shared across relay core modules."""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Union

from web3 import Web3

LOGGER_PREFIX = "move_relayer"

_LOGGERS: Dict[str, logging.Logger] = {}
_LEVEL = logging.INFO


def get_logger(name: str = LOGGER_PREFIX) -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(_LEVEL)
        logger.propagate = False
    _LOGGERS[name] = logger
    return logger


def configure_logging(level: Union[str, int]) -> None:
    """Apply ``level`` to every logger handed out by :func:`get_logger`."""
    global _LEVEL
    _LEVEL = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    for logger in _LOGGERS.values():
        logger.setLevel(_LEVEL)


def apply_multiplier(value: int, multiplier: Decimal) -> int:
    """Apply a multiplier to a value and round down to the nearest integer."""
    return int((Decimal(value) * multiplier).quantize(Decimal("1"), rounding=ROUND_DOWN))


def format_native(amount_wei: int) -> str:
    """Render a wei amount in whole native units for log lines."""
    return f"{Web3.from_wei(amount_wei, 'ether'):.6f}"


__all__ = ["apply_multiplier", "configure_logging", "format_native", "get_logger"]
