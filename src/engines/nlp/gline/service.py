"""Service entrypoint shared by the HTTP adapter and the process entry point."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .gline_model import GlineModel
from .interfaces import Entity, GlineConfig, Relation


@dataclass
class ExtractionResult:
    entities: List[Entity]
    usage: Dict[str, Any]


@dataclass
class RelationResult:
    relations: List[Relation]
    usage: Dict[str, Any]


class GlineService:
    def __init__(self, config: GlineConfig, model: GlineModel) -> None:
        self.config = config
        self.model = model
        self._logger = logging.getLogger(__name__)

        self._request_concurrency_limit = max(int(self.config.system.get("request_concurrency_limit", 8)), 1)
        self._request_semaphore = asyncio.Semaphore(self._request_concurrency_limit)

    async def startup(self) -> None:
        await self.model.load()

    def shutdown(self) -> None:
        self.model.close()

    def get_runtime_status(self) -> Dict[str, Any]:
        return {
            "request_concurrency_limit": self._request_concurrency_limit,
            "model": self.model.get_runtime_stats(),
        }

    def _resolve_labels(self, labels: Optional[List[str]]) -> List[str]:
        resolved = [str(label).strip() for label in labels or [] if str(label).strip()]
        return resolved or list(self.config.default_labels)

    async def extract_entities(self, text: str, labels: Optional[List[str]] = None) -> ExtractionResult:
        start_time = time.perf_counter()
        resolved_labels = self._resolve_labels(labels)

        entities: List[Entity] = []
        if text:
            async with self._request_semaphore:
                entities = await self.model.predict(text, resolved_labels)

        duration = (time.perf_counter() - start_time) * 1000
        self._logger.debug("Extracted %d entities in %.2fms", len(entities), duration)
        return ExtractionResult(
            entities=entities,
            usage={"char_count": len(text), "execution_time_ms": duration},
        )

    async def extract_relations(self, text: str, entity_labels: Optional[List[str]] = None) -> RelationResult:
        start_time = time.perf_counter()
        resolved_labels = self._resolve_labels(entity_labels)

        relations: List[Relation] = []
        if text:
            async with self._request_semaphore:
                batches = await self.model.extract_relations([text], resolved_labels)
            relations = batches[0] if batches else []

        duration = (time.perf_counter() - start_time) * 1000
        return RelationResult(
            relations=relations,
            usage={"char_count": len(text), "execution_time_ms": duration},
        )


def build_service(config_path: Path) -> GlineService:
    config = GlineConfig.from_yaml(config_path)
    model = GlineModel(config)
    return GlineService(config, model)


__all__ = [
    "ExtractionResult",
    "GlineService",
    "RelationResult",
    "build_service",
]
