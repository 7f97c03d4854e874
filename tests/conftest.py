from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from src.engines.nlp.gline import loader
from src.engines.nlp.gline.loader import LoadedLibrary
from src.engines.nlp.gline.native import ENTRY_POINTS, ffi

SpanItem = Tuple[int, int, int, str, str, float]
RelationItem = Tuple[int, str, str, str, float]

KNOWN_ENTITIES = {
    "Google": "organization",
    "Larry Page": "person",
    "Steve Jobs": "person",
    "Apple": "organization",
    "Cupertino": "location",
}


def _address(ptr: Any) -> int:
    return int(ffi.cast("uintptr_t", ptr))


def _read_strings(array: Any, count: int) -> List[str]:
    return [ffi.string(array[i]).decode("utf-8") for i in range(count)]


class FakeNativeLibrary:
    """Stand-in for libgline_binding that hands out real cffi result buffers.

    Span/token inference emits ``span_items`` when set, otherwise it matches
    ``KNOWN_ENTITIES`` against each text. Relation inference emits
    ``relation_items`` when set, otherwise one relation per registered schema
    entry per text.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.fail_create = False
        self.fail_inference = False
        self.span_items: Optional[List[SpanItem]] = None
        self.relation_items: Optional[List[RelationItem]] = None
        self.last_paths: Optional[Tuple[str, str]] = None
        self.last_texts: List[str] = []
        self.last_labels: List[str] = []
        self.schemas: Dict[int, List[Tuple[str, List[str], List[str]]]] = {}
        self.live_models: set[int] = set()
        self.live_results: Dict[int, Any] = {}
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self._next_model = 0x1000

    def count(self, name: str) -> int:
        return self.calls.count(name)

    # constructors / destructors

    def _new_model(self, name: str, model_path: Any, tokenizer_path: Any) -> Any:
        self.calls.append(name)
        self.last_paths = (ffi.string(model_path).decode(), ffi.string(tokenizer_path).decode())
        if self.fail_create:
            return ffi.NULL
        self._next_model += 0x10
        self.live_models.add(self._next_model)
        self.schemas[self._next_model] = []
        return ffi.cast("void *", self._next_model)

    def _free_model(self, name: str, model: Any) -> None:
        self.calls.append(name)
        address = _address(model)
        if address not in self.live_models:
            raise AssertionError(f"{name} called on unknown or freed model {address:#x}")
        self.live_models.remove(address)

    def new_span_model(self, model_path: Any, tokenizer_path: Any) -> Any:
        return self._new_model("new_span_model", model_path, tokenizer_path)

    def new_token_model(self, model_path: Any, tokenizer_path: Any) -> Any:
        return self._new_model("new_token_model", model_path, tokenizer_path)

    def new_relation_model(self, model_path: Any, tokenizer_path: Any) -> Any:
        return self._new_model("new_relation_model", model_path, tokenizer_path)

    def free_span_model(self, model: Any) -> None:
        self._free_model("free_span_model", model)

    def free_token_model(self, model: Any) -> None:
        self._free_model("free_token_model", model)

    def free_relation_model(self, model: Any) -> None:
        self._free_model("free_relation_model", model)

    # inference

    def _capture_inputs(self, model: Any, inputs: Any, n_inputs: int, labels: Any, n_labels: int) -> None:
        if _address(model) not in self.live_models:
            raise AssertionError("inference on a freed model")
        self.last_texts = _read_strings(inputs, n_inputs)
        self.last_labels = _read_strings(labels, n_labels)
        if self.gate is not None:
            self.entered.set()
            self.gate.wait(timeout=5)

    def _default_spans(self) -> List[SpanItem]:
        items: List[SpanItem] = []
        for index, text in enumerate(self.last_texts):
            found = []
            for surface, label in KNOWN_ENTITIES.items():
                start = text.find(surface)
                if start >= 0 and label in self.last_labels:
                    found.append((index, start, start + len(surface), label, surface, 0.9))
            items.extend(sorted(found, key=lambda item: item[1]))
        return items

    def _span_result(self, items: Sequence[SpanItem]) -> Any:
        spans = ffi.new("FlatSpan[]", len(items))
        keep: List[Any] = [spans]
        for i, (seq, start, end, label, text, prob) in enumerate(items):
            c_label = ffi.new("char[]", label.encode("utf-8"))
            c_text = ffi.new("char[]", text.encode("utf-8"))
            keep.extend([c_label, c_text])
            spans[i].sequence_index = seq
            spans[i].start = start
            spans[i].end = end
            spans[i].label = c_label
            spans[i].text = c_text
            spans[i].prob = prob
        result = ffi.new("BatchResult *")
        result.spans = spans
        result.count = len(items)
        self.live_results[_address(result)] = (result, keep)
        return result

    def _inference(self, name: str, model: Any, inputs: Any, n_inputs: int, labels: Any, n_labels: int) -> Any:
        self.calls.append(name)
        self._capture_inputs(model, inputs, n_inputs, labels, n_labels)
        if self.fail_inference:
            return ffi.NULL
        items = self.span_items if self.span_items is not None else self._default_spans()
        return self._span_result(items)

    def inference_span(self, model: Any, inputs: Any, n_inputs: int, labels: Any, n_labels: int) -> Any:
        return self._inference("inference_span", model, inputs, n_inputs, labels, n_labels)

    def inference_token(self, model: Any, inputs: Any, n_inputs: int, labels: Any, n_labels: int) -> Any:
        return self._inference("inference_token", model, inputs, n_inputs, labels, n_labels)

    def _free_result(self, name: str, result: Any) -> None:
        self.calls.append(name)
        address = _address(result)
        if address not in self.live_results:
            raise AssertionError(f"{name} called on unknown or freed result")
        del self.live_results[address]

    def free_batch_result(self, result: Any) -> None:
        self._free_result("free_batch_result", result)

    # relations

    def add_relation_schema(
        self, model: Any, relation: Any, heads: Any, n_heads: int, tails: Any, n_tails: int
    ) -> None:
        self.calls.append("add_relation_schema")
        self.schemas[_address(model)].append(
            (ffi.string(relation).decode("utf-8"), _read_strings(heads, n_heads), _read_strings(tails, n_tails))
        )

    def inference_relation(self, model: Any, inputs: Any, n_inputs: int, labels: Any, n_labels: int) -> Any:
        self.calls.append("inference_relation")
        self._capture_inputs(model, inputs, n_inputs, labels, n_labels)
        if self.fail_inference:
            return ffi.NULL

        items = self.relation_items
        if items is None:
            schema = self.schemas[_address(model)]
            items = [
                (index, heads[0], tails[0], relation, 0.8)
                for index in range(len(self.last_texts))
                for relation, heads, tails in schema
            ]

        relations = ffi.new("FlatRelation[]", len(items))
        keep: List[Any] = [relations]
        for i, (seq, source, target, relation, prob) in enumerate(items):
            strings = [ffi.new("char[]", value.encode("utf-8")) for value in (source, target, relation)]
            keep.extend(strings)
            relations[i].sequence_index = seq
            relations[i].source, relations[i].target, relations[i].relation = strings
            relations[i].prob = prob
        result = ffi.new("BatchRelationResult *")
        result.relations = relations
        result.count = len(items)
        self.live_results[_address(result)] = (result, keep)
        return result

    def free_relation_result(self, result: Any) -> None:
        self._free_result("free_relation_result", result)


@pytest.fixture(autouse=True)
def reset_loader(monkeypatch):
    monkeypatch.setattr(loader, "_LIBRARY", None)
    monkeypatch.delenv("GLINE_LIB_DIR", raising=False)
    monkeypatch.delenv("GLINE_MODEL_ID", raising=False)


@pytest.fixture
def fake_native(monkeypatch) -> FakeNativeLibrary:
    native = FakeNativeLibrary()
    library = LoadedLibrary(
        handle=native,
        path=Path("/tmp/fake/libgline_binding.so"),
        entry_points={name: getattr(native, name) for name in ENTRY_POINTS},
    )
    monkeypatch.setattr(loader, "_LIBRARY", library)
    return native
