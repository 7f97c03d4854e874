from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .download import resolve_model_files
from .handle import ModelHandle, new_model
from .interfaces import Entity, GlineConfig, ModelVariant, Relation, parse_flag
from .loader import initialize

logger = logging.getLogger(__name__)

DEFAULT_WARMUP_TEXT = "Google was founded by Larry Page."
DEFAULT_WARMUP_LABELS = ["person", "organization"]


class GlineModel:
    """Async facade that owns one native model handle for the service.

    Native calls block, so they run on the default executor; the handle's own
    lock keeps concurrent requests against it serialized.
    """

    def __init__(self, config: GlineConfig):
        self.config = config
        self._handle: Optional[ModelHandle] = None
        self._did_warmup = False
        self._model_lock = asyncio.Lock()
        self._load_stats: Dict[str, Any] = {
            "status": "cold",
            "model_id": config.model_id,
            "mode": config.mode.value,
            "model_path": None,
            "tokenizer_path": None,
            "load_ms": None,
            "warmup_ms": None,
            "error": None,
        }

    def _system_config(self) -> Dict[str, Any]:
        return self.config.system or {}

    @property
    def handle(self) -> Optional[ModelHandle]:
        return self._handle

    def get_runtime_stats(self) -> Dict[str, Any]:
        snapshot = dict(self._load_stats)
        snapshot["model_loaded"] = self._handle is not None and not self._handle.closed
        snapshot["did_warmup"] = self._did_warmup
        if self._handle is not None:
            snapshot["relation_schema_size"] = len(self._handle.relation_schema)
        return snapshot

    async def load(self) -> None:
        if self._handle is not None:
            return

        async with self._model_lock:
            if self._handle is not None:
                return

            self._load_stats["status"] = "loading"
            self._load_stats["error"] = None
            load_start = time.perf_counter()
            loop = asyncio.get_running_loop()
            try:
                self._handle = await loop.run_in_executor(None, self._load_sync)
            except Exception as exc:
                self._load_stats["status"] = "failed"
                self._load_stats["error"] = str(exc)
                raise

            self._load_stats["load_ms"] = (time.perf_counter() - load_start) * 1000
            self._load_stats["status"] = "loaded"
            logger.info("GLiNER %s model loaded in %.2fms.", self.config.mode.value, self._load_stats["load_ms"])

        if parse_flag(self._system_config().get("warmup_on_load"), default=True):
            await self.warmup()
        else:
            self._load_stats["status"] = "ready"

    def _load_sync(self) -> ModelHandle:
        initialize(self.config.lib_dir)

        logger.info("Resolving model '%s' (cache=%s)", self.config.model_id, self.config.cache_dir)
        model_path, tokenizer_path = resolve_model_files(self.config.model_id, self.config.cache_dir)
        self._load_stats["model_path"] = model_path
        self._load_stats["tokenizer_path"] = tokenizer_path

        handle = new_model(self.config.mode, model_path, tokenizer_path)
        if handle.variant is ModelVariant.RELATION:
            try:
                for entry in self.config.relation_schema:
                    handle.add_relation_schema(entry.relation, entry.head_types, entry.tail_types)
            except Exception:
                handle.close()
                raise
            if not self.config.relation_schema:
                logger.warning("Relation model loaded without any relation schema; predictions will be empty.")
        return handle

    async def warmup(self) -> None:
        if self._did_warmup or self._handle is None:
            return

        self._load_stats["status"] = "warming"
        warmup_start = time.perf_counter()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._warmup_sync)
        self._load_stats["warmup_ms"] = (time.perf_counter() - warmup_start) * 1000
        self._did_warmup = True
        self._load_stats["status"] = "ready"
        logger.info("GLiNER warmup finished in %.2fms.", self._load_stats["warmup_ms"])

    def _warmup_sync(self) -> None:
        system = self._system_config()
        warmup_text = str(system.get("warmup_text", DEFAULT_WARMUP_TEXT)).strip()
        warmup_labels = list(system.get("warmup_labels", DEFAULT_WARMUP_LABELS))
        if not warmup_text or not warmup_labels or self._handle is None:
            return

        try:
            self._handle.predict([warmup_text], warmup_labels)
        except Exception as exc:
            logger.warning("Warmup inference failed, continuing without warmup: %s", exc)

    def _require_handle(self) -> ModelHandle:
        if self._handle is None:
            raise RuntimeError("Model not loaded.")
        return self._handle

    def _require_entity_handle(self) -> ModelHandle:
        handle = self._require_handle()
        if handle.variant is ModelVariant.RELATION:
            raise RuntimeError("Entity extraction requires a span or token model, loaded mode is relation.")
        return handle

    def predict_batch_sync(self, texts: List[str], labels: List[str]) -> List[List[Entity]]:
        return self._require_entity_handle().predict(texts, labels)

    def predict_sync(self, text: str, labels: List[str]) -> List[Entity]:
        if not text.strip():
            return []
        return self.predict_batch_sync([text], labels)[0]

    async def predict(self, text: str, labels: List[str]) -> List[Entity]:
        if self._handle is None:
            await self.load()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.predict_sync(text, labels))

    async def predict_batch(self, texts: List[str], labels: List[str]) -> List[List[Entity]]:
        if self._handle is None:
            await self.load()

        if not texts:
            return []

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.predict_batch_sync(texts, labels))

    async def extract_relations(self, texts: List[str], entity_labels: List[str]) -> List[List[Relation]]:
        if self._handle is None:
            await self.load()

        handle = self._require_handle()
        if handle.variant is not ModelVariant.RELATION:
            raise RuntimeError(f"Relation extraction requires a relation model, loaded mode is {handle.variant.value}.")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: handle.predict(texts, entity_labels))

    def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()
            self._load_stats["status"] = "closed"
