"""Owned handles around native model instances."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, List, Optional, Sequence

from .codec import VARIANTS, c_string, c_string_array, run_batch
from .errors import ModelCreationError, UseAfterCloseError, ValidationError
from .interfaces import ModelVariant, RelationSchemaEntry
from .loader import get_library
from .native import ffi

logger = logging.getLogger(__name__)


class ModelHandle:
    """Sole owner of one native model pointer.

    ``predict``, ``add_relation_schema`` and ``close`` serialize on a per-handle
    lock, so closing waits for an in-flight prediction instead of freeing the
    model underneath it. Separate handles never share a lock.
    """

    def __init__(self, variant: ModelVariant, ptr: Any) -> None:
        self.variant = variant
        self._ptr: Optional[Any] = ptr
        self._lock = Lock()
        self._schema: List[RelationSchemaEntry] = []

    @property
    def closed(self) -> bool:
        return self._ptr is None

    @property
    def relation_schema(self) -> List[RelationSchemaEntry]:
        return list(self._schema)

    def __enter__(self) -> "ModelHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "live"
        return f"ModelHandle(variant={self.variant.value}, {state})"

    def close(self) -> None:
        with self._lock:
            if self._ptr is None:
                return
            destructor = get_library().entry(VARIANTS[self.variant].destructor)
            destructor(self._ptr)
            self._ptr = None
        logger.debug("Closed %s model.", self.variant.value)

    def predict(self, texts: Sequence[str], labels: Sequence[str]) -> List[List[Any]]:
        """Run one batched inference; returns one result list per input text.

        Span and token models yield ``Entity`` lists, relation models yield
        ``Relation`` lists. For relation models ``labels`` are the entity types
        the native pipeline recognizes before linking them.
        """
        texts = list(texts)
        labels = list(labels)
        with self._lock:
            if self._ptr is None:
                raise UseAfterCloseError()
            if not texts:
                return []
            if not labels:
                raise ValidationError("labels cannot be empty")
            return run_batch(get_library(), VARIANTS[self.variant], self._ptr, texts, labels)

    def add_relation_schema(
        self,
        relation: str,
        head_types: Sequence[str],
        tail_types: Sequence[str],
    ) -> None:
        heads = tuple(head_types)
        tails = tuple(tail_types)
        with self._lock:
            if self._ptr is None:
                raise UseAfterCloseError()
            if self.variant is not ModelVariant.RELATION:
                raise ValidationError(f"relation schema is not supported by {self.variant.value} models")
            if not relation:
                raise ValidationError("relation name cannot be empty")
            if not heads or not tails:
                raise ValidationError("head/tail types cannot be empty")

            add_schema = get_library().entry("add_relation_schema")
            with c_string(relation) as c_relation:
                with c_string_array(heads) as (c_heads, n_heads), c_string_array(tails) as (c_tails, n_tails):
                    add_schema(self._ptr, c_relation, c_heads, n_heads, c_tails, n_tails)

            self._schema.append(RelationSchemaEntry(relation=relation, head_types=heads, tail_types=tails))
        logger.debug("Registered relation '%s' (%s -> %s).", relation, heads, tails)


def _new_model(variant: ModelVariant, model_path: str, tokenizer_path: str) -> ModelHandle:
    library = get_library()
    constructor = library.entry(VARIANTS[variant].constructor)

    with c_string(str(model_path)) as c_model, c_string(str(tokenizer_path)) as c_tokenizer:
        ptr = constructor(c_model, c_tokenizer)

    if ptr == ffi.NULL:
        raise ModelCreationError(f"failed to create {variant.value} model")
    logger.info("Created %s model from %s", variant.value, model_path)
    return ModelHandle(variant, ptr)


def new_span_model(model_path: str, tokenizer_path: str) -> ModelHandle:
    return _new_model(ModelVariant.SPAN, model_path, tokenizer_path)


def new_token_model(model_path: str, tokenizer_path: str) -> ModelHandle:
    return _new_model(ModelVariant.TOKEN, model_path, tokenizer_path)


def new_relation_model(model_path: str, tokenizer_path: str) -> ModelHandle:
    return _new_model(ModelVariant.RELATION, model_path, tokenizer_path)


def new_model(variant: ModelVariant, model_path: str, tokenizer_path: str) -> ModelHandle:
    return _new_model(variant, model_path, tokenizer_path)


__all__ = [
    "ModelHandle",
    "new_model",
    "new_relation_model",
    "new_span_model",
    "new_token_model",
]
