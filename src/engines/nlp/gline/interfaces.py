from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

DEFAULT_MODEL_ID = "onnx-community/gliner_small-v2.1"
DEFAULT_CACHE_DIR = Path("~/.cache/gline-rs")


def parse_flag(value: Any, default: bool = False) -> bool:
    """Read a YAML or environment switch such as `true`, `1` or `off`."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


class ModelVariant(str, Enum):
    SPAN = "span"
    TOKEN = "token"
    RELATION = "relation"


@dataclass
class Entity:
    sequence_index: int
    start: int
    end: int
    label: str
    text: str
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.sequence_index,
            "start": self.start,
            "end": self.end,
            "label": self.label,
            "text": self.text,
            "probability": self.probability,
        }


@dataclass
class Relation:
    sequence_index: int
    source: str
    target: str
    relation: str
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_index": self.sequence_index,
            "source": self.source,
            "target": self.target,
            "relation": self.relation,
            "probability": self.probability,
        }


@dataclass(frozen=True)
class RelationSchemaEntry:
    relation: str
    head_types: Tuple[str, ...]
    tail_types: Tuple[str, ...]


@dataclass
class GlineConfig:
    model_id: str = DEFAULT_MODEL_ID
    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR.expanduser())
    mode: ModelVariant = ModelVariant.SPAN
    lib_dir: Optional[Path] = None
    default_labels: List[str] = field(default_factory=list)
    relation_schema: List[RelationSchemaEntry] = field(default_factory=list)
    system: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlineConfig":
        library = data.get("library") or {}
        lib_dir = library.get("lib_dir")

        schema = [
            RelationSchemaEntry(
                relation=str(item.get("relation", "")),
                head_types=tuple(str(t) for t in item.get("head_types") or []),
                tail_types=tuple(str(t) for t in item.get("tail_types") or []),
            )
            for item in data.get("relation_schema") or []
            if isinstance(item, dict)
        ]

        return cls(
            model_id=os.getenv("GLINE_MODEL_ID") or str(data.get("model_id", DEFAULT_MODEL_ID)),
            cache_dir=Path(str(data.get("cache_dir") or DEFAULT_CACHE_DIR)).expanduser(),
            mode=ModelVariant(str(data.get("mode", ModelVariant.SPAN.value)).strip().lower()),
            lib_dir=Path(str(lib_dir)).expanduser() if lib_dir else None,
            default_labels=[str(label) for label in data.get("default_labels") or []],
            relation_schema=schema,
            system=dict(data.get("system") or {}),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "GlineConfig":
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            data = {}
        return cls.from_dict(data)
