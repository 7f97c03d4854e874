"""Resolution of ONNX model + tokenizer files from the Hugging Face Hub."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from huggingface_hub import hf_hub_download
from huggingface_hub.errors import (
    EntryNotFoundError,
    HfHubHTTPError,
    LocalEntryNotFoundError,
    RepositoryNotFoundError,
)

from .errors import IncompatibleModelError, ModelDownloadError
from .handle import ModelHandle, new_relation_model, new_span_model, new_token_model
from .interfaces import DEFAULT_CACHE_DIR

logger = logging.getLogger(__name__)

MODEL_FILENAMES = ("model.onnx", "onnx/model.onnx")
TOKENIZER_FILENAME = "tokenizer.json"

Downloader = Callable[..., str]


class _MissingFile(Exception):
    pass


def default_cache_dir() -> Path:
    return DEFAULT_CACHE_DIR.expanduser()


def _fetch(downloader: Downloader, model_id: str, filename: str, cache_dir: Path) -> str:
    try:
        return downloader(repo_id=model_id, filename=filename, cache_dir=str(cache_dir))
    except LocalEntryNotFoundError as exc:
        raise ModelDownloadError(f"failed to download {filename} for {model_id}: {exc}") from exc
    except EntryNotFoundError as exc:
        raise _MissingFile(filename) from exc
    except RepositoryNotFoundError as exc:
        raise ModelDownloadError(f"model {model_id} not found: {exc}") from exc
    except (HfHubHTTPError, OSError) as exc:
        raise ModelDownloadError(f"failed to download {filename} for {model_id}: {exc}") from exc


def resolve_model_files(
    model_id: str,
    cache_dir: Optional[str | Path] = None,
    *,
    downloader: Optional[Downloader] = None,
) -> Tuple[str, str]:
    """Return local paths to ``(model.onnx, tokenizer.json)`` for ``model_id``.

    ``model.onnx`` is looked up at the repository root first and then under
    ``onnx/``. A repository lacking either file is reported as
    ``IncompatibleModelError``; transport and repository lookup failures as
    ``ModelDownloadError``.
    """
    cache_path = Path(cache_dir).expanduser() if cache_dir else default_cache_dir()
    cache_path.mkdir(parents=True, exist_ok=True)
    downloader = downloader or hf_hub_download
    os.environ.setdefault("HF_HUB_DISABLE_TELEMETRY", "1")

    start = time.perf_counter()
    model_path: Optional[str] = None
    for filename in MODEL_FILENAMES:
        try:
            model_path = _fetch(downloader, model_id, filename, cache_path)
            break
        except _MissingFile:
            logger.debug("%s has no %s", model_id, filename)

    if model_path is None:
        raise IncompatibleModelError(
            f"model {model_id} is not compatible: model.onnx not found. "
            "Please ensure the model contains 'model.onnx' or 'onnx/model.onnx'"
        )

    try:
        tokenizer_path = _fetch(downloader, model_id, TOKENIZER_FILENAME, cache_path)
    except _MissingFile:
        raise IncompatibleModelError(
            f"model {model_id} is not compatible: {TOKENIZER_FILENAME} not found"
        ) from None

    logger.info(
        "Resolved model files for '%s' in %.2fms (cache=%s)",
        model_id,
        (time.perf_counter() - start) * 1000,
        cache_path,
    )
    return model_path, tokenizer_path


def new_span_model_from_hub(model_id: str, cache_dir: Optional[str | Path] = None, **kwargs: Any) -> ModelHandle:
    return new_span_model(*resolve_model_files(model_id, cache_dir, **kwargs))


def new_token_model_from_hub(model_id: str, cache_dir: Optional[str | Path] = None, **kwargs: Any) -> ModelHandle:
    return new_token_model(*resolve_model_files(model_id, cache_dir, **kwargs))


def new_relation_model_from_hub(model_id: str, cache_dir: Optional[str | Path] = None, **kwargs: Any) -> ModelHandle:
    return new_relation_model(*resolve_model_files(model_id, cache_dir, **kwargs))


__all__ = [
    "default_cache_dir",
    "new_relation_model_from_hub",
    "new_span_model_from_hub",
    "new_token_model_from_hub",
    "resolve_model_files",
]
