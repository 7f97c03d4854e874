"""Marshaling of batch requests into native buffers and decoding of flat results.

All three model variants share the same shape: strings in, one flat tagged
array out. ``VARIANTS`` binds each variant to its entry points and decoder so
the marshal/invoke/decode routine below is written once.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Sequence, Tuple

from .errors import InferenceError, ValidationError
from .interfaces import Entity, ModelVariant, Relation
from .loader import LoadedLibrary
from .native import ffi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariantSpec:
    variant: ModelVariant
    constructor: str
    destructor: str
    inference: str
    free_result: str
    items_field: str
    decode: Callable[[Any], Any]


def _to_str(ptr: Any) -> str:
    if ptr == ffi.NULL:
        return ""
    return ffi.string(ptr).decode("utf-8", errors="replace")


def decode_entity(item: Any) -> Entity:
    return Entity(
        sequence_index=int(item.sequence_index),
        start=int(item.start),
        end=int(item.end),
        label=_to_str(item.label),
        text=_to_str(item.text),
        probability=float(item.prob),
    )


def decode_relation(item: Any) -> Relation:
    return Relation(
        sequence_index=int(item.sequence_index),
        source=_to_str(item.source),
        target=_to_str(item.target),
        relation=_to_str(item.relation),
        probability=float(item.prob),
    )


VARIANTS: Dict[ModelVariant, VariantSpec] = {
    ModelVariant.SPAN: VariantSpec(
        variant=ModelVariant.SPAN,
        constructor="new_span_model",
        destructor="free_span_model",
        inference="inference_span",
        free_result="free_batch_result",
        items_field="spans",
        decode=decode_entity,
    ),
    ModelVariant.TOKEN: VariantSpec(
        variant=ModelVariant.TOKEN,
        constructor="new_token_model",
        destructor="free_token_model",
        inference="inference_token",
        free_result="free_batch_result",
        items_field="spans",
        decode=decode_entity,
    ),
    ModelVariant.RELATION: VariantSpec(
        variant=ModelVariant.RELATION,
        constructor="new_relation_model",
        destructor="free_relation_model",
        inference="inference_relation",
        free_result="free_relation_result",
        items_field="relations",
        decode=decode_relation,
    ),
}


def _encode(value: str) -> bytes:
    # C strings end at the first NUL.
    if "\x00" in value:
        raise ValidationError("strings passed to the native library cannot contain NUL characters")
    return value.encode("utf-8")


@contextmanager
def c_string(value: str) -> Iterator[Any]:
    buf = ffi.new("char[]", _encode(value))
    try:
        yield buf
    finally:
        ffi.release(buf)


@contextmanager
def c_string_array(values: Sequence[str]) -> Iterator[Tuple[Any, int]]:
    """Yield a ``const char *[]`` over owned copies of ``values`` and its length."""
    buffers: List[Any] = []
    array = ffi.new("const char *[]", len(values))
    try:
        for i, value in enumerate(values):
            buf = ffi.new("char[]", _encode(value))
            buffers.append(buf)
            array[i] = buf
        yield array, len(values)
    finally:
        for buf in buffers:
            ffi.release(buf)
        ffi.release(array)


def iter_items(result: Any, items_field: str) -> Iterator[Any]:
    count = int(result.count)
    items = getattr(result, items_field)
    if count == 0 or items == ffi.NULL:
        return
    for i in range(count):
        yield items[i]


def bucket_items(items: Iterator[Any], batch_size: int, decode: Callable[[Any], Any]) -> List[List[Any]]:
    """Regroup flat native items by sequence index, keeping emission order.

    Items tagged with an index outside the batch are dropped.
    """
    buckets: List[List[Any]] = [[] for _ in range(batch_size)]
    dropped = 0
    for item in items:
        index = int(item.sequence_index)
        if index >= batch_size:
            dropped += 1
            continue
        buckets[index].append(decode(item))

    if dropped:
        logger.debug("Dropped %d native result item(s) outside batch of %d.", dropped, batch_size)
    return buckets


def run_batch(
    library: LoadedLibrary,
    spec: VariantSpec,
    model_ptr: Any,
    texts: Sequence[str],
    labels: Sequence[str],
) -> List[List[Any]]:
    if not texts:
        return []

    inference = library.entry(spec.inference)
    free_result = library.entry(spec.free_result)

    with c_string_array(texts) as (c_texts, n_texts), c_string_array(labels) as (c_labels, n_labels):
        result = inference(model_ptr, c_texts, n_texts, c_labels, n_labels)

    if result == ffi.NULL:
        raise InferenceError(f"{spec.variant.value} inference failed")

    try:
        return bucket_items(iter_items(result, spec.items_field), len(texts), spec.decode)
    finally:
        free_result(result)


__all__ = [
    "VARIANTS",
    "VariantSpec",
    "bucket_items",
    "c_string",
    "c_string_array",
    "decode_entity",
    "decode_relation",
    "iter_items",
    "run_batch",
]
