"""FastAPI dependency providers for the GLiNER service.

The model's own load stats are the single source of truth for readiness; the
helpers here only locate the cached service and translate its status.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict

from src.core.logging_config import resolve_config_path
from src.engines.nlp.gline import GlineService, build_service

logger = logging.getLogger(__name__)

STARTUP_MODES = ("blocking", "background")


@lru_cache(maxsize=1)
def get_gline_service() -> GlineService:
    config_path = resolve_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"GLiNER config not found at {config_path}")
    return build_service(config_path)


def get_startup_mode() -> str:
    try:
        mode = str(get_gline_service().config.system.get("startup_mode", "blocking")).strip().lower()
    except (FileNotFoundError, ValueError) as exc:
        logger.warning("Falling back to blocking startup: %s", exc)
        return "blocking"
    return mode if mode in STARTUP_MODES else "blocking"


def get_gline_runtime_state() -> Dict[str, Any]:
    """Snapshot for the health endpoints: ``status``, ``ready``, ``error``, ``service``."""
    try:
        service = get_gline_service()
    except (FileNotFoundError, ValueError) as exc:
        return {"status": "failed", "ready": False, "error": str(exc), "service": {}}

    runtime = service.get_runtime_status()
    model = runtime["model"]
    return {
        "status": model["status"],
        "ready": model["status"] == "ready",
        "error": model.get("error"),
        "service": runtime,
    }


async def warmup_gline_service() -> GlineService:
    service = get_gline_service()
    logger.info("Loading GLiNER service...")
    try:
        await service.startup()
    except Exception:
        logger.exception("GLiNER service startup failed")
        raise
    logger.info("GLiNER service status: %s", service.get_runtime_status()["model"]["status"])
    return service


def shutdown_gline_service() -> None:
    if get_gline_service.cache_info().currsize == 0:
        return
    get_gline_service().shutdown()


__all__ = [
    "get_gline_runtime_state",
    "get_gline_service",
    "get_startup_mode",
    "shutdown_gline_service",
    "warmup_gline_service",
]
