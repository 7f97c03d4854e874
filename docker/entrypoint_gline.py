#!/usr/bin/env python3
"""Entrypoint for the GLiNER entity extraction service."""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from src.core.logging_config import configure_logging, resolve_config_path
from src.engines.nlp.gline import GlineConfig, GlineError, initialize
from src.engines.nlp.gline.interfaces import DEFAULT_MODEL_ID

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Entity extraction server for GLiNER models")
    parser.add_argument(
        "--model",
        default=os.getenv("GLINE_MODEL_ID", DEFAULT_MODEL_ID),
        help="Hugging Face model ID",
    )
    return parser.parse_args(argv)


def prepare_runtime(model_id: str) -> None:
    """Select the model and load the native library before serving.

    Raises SystemExit with the reason when the library cannot be loaded.
    """
    os.environ["GLINE_MODEL_ID"] = model_id

    config_path = resolve_config_path()
    lib_dir = GlineConfig.from_yaml(config_path).lib_dir if config_path.exists() else None
    try:
        initialize(lib_dir)
    except GlineError as exc:
        logger.critical("Failed to init gline: %s", exc)
        raise SystemExit(f"Failed to init gline: {exc}") from exc


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    settings = configure_logging(force=True)
    logger.info("=== Starting GLiNER Service Entrypoint (model=%s) ===", args.model)

    prepare_runtime(args.model)

    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    logger.info("Starting uvicorn server on %s:%d", host, port)
    uvicorn.run(
        "src.api.app_gline:app",
        host=host,
        port=port,
        log_level=settings.uvicorn_level,
        proxy_headers=True,
        forwarded_allow_ips="*",
        workers=1,
    )


if __name__ == "__main__":
    main()
