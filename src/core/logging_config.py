"""Logging setup driven by the ``system`` block of ``configs/gline.yaml``.

``verbose_logs`` (or ``VERBOSE_LOGS``) switches everything to DEBUG. Without
it the root level comes from ``system.log_level`` / ``GLINE_LOG_LEVEL`` and
defaults to ERROR, and the native binding logger can be raised on its own
through ``system.binding_log_level`` so library load timings stay visible.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from src.engines.nlp.gline.interfaces import GlineConfig, parse_flag

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "gline.yaml"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
BINDING_LOGGER = "src.engines.nlp.gline"


@dataclass(frozen=True)
class LoggingSettings:
    config_path: Path
    verbose: bool
    level: int
    binding_level: int

    @property
    def uvicorn_level(self) -> str:
        return logging.getLevelName(self.level).lower()


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    return Path(os.getenv("GLINE_CONFIG_PATH", str(config_path or DEFAULT_CONFIG_PATH))).expanduser().resolve()


def _parse_level(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def resolve_logging_settings(config_path: Optional[Path] = None) -> LoggingSettings:
    path = resolve_config_path(config_path)
    system: Dict[str, Any] = GlineConfig.from_yaml(path).system if path.exists() else {}

    verbose = parse_flag(os.getenv("VERBOSE_LOGS", system.get("verbose_logs")))
    if verbose:
        return LoggingSettings(path, True, logging.DEBUG, logging.DEBUG)

    level = _parse_level(os.getenv("GLINE_LOG_LEVEL", system.get("log_level")), logging.ERROR)
    binding_level = _parse_level(system.get("binding_log_level"), level)
    return LoggingSettings(path, False, level, binding_level)


def configure_logging(*, force: bool = False, config_path: Optional[Path] = None) -> LoggingSettings:
    settings = resolve_logging_settings(config_path)
    logging.basicConfig(level=settings.level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, force=force)
    logging.getLogger(BINDING_LOGGER).setLevel(settings.binding_level)
    return settings


__all__ = [
    "LoggingSettings",
    "configure_logging",
    "resolve_config_path",
    "resolve_logging_settings",
]
