"""cffi declarations for the exported surface of libgline_binding."""

from __future__ import annotations

from typing import Tuple

from cffi import FFI

CDEF = """
typedef struct {
    size_t sequence_index;
    size_t start;
    size_t end;
    char *label;
    char *text;
    float prob;
} FlatSpan;

typedef struct {
    FlatSpan *spans;
    size_t count;
} BatchResult;

typedef struct {
    size_t sequence_index;
    char *source;
    char *target;
    char *relation;
    float prob;
} FlatRelation;

typedef struct {
    FlatRelation *relations;
    size_t count;
} BatchRelationResult;

void *new_span_model(const char *model_path, const char *tokenizer_path);
BatchResult *inference_span(void *model, const char **inputs, size_t input_count,
                            const char **labels, size_t label_count);
void free_span_model(void *model);

void *new_token_model(const char *model_path, const char *tokenizer_path);
BatchResult *inference_token(void *model, const char **inputs, size_t input_count,
                             const char **labels, size_t label_count);
void free_token_model(void *model);

void free_batch_result(BatchResult *result);

void *new_relation_model(const char *model_path, const char *tokenizer_path);
void add_relation_schema(void *model, const char *relation,
                         const char **head_types, size_t head_count,
                         const char **tail_types, size_t tail_count);
BatchRelationResult *inference_relation(void *model, const char **inputs, size_t input_count,
                                        const char **entity_labels, size_t entity_label_count);
void free_relation_model(void *model);
void free_relation_result(BatchRelationResult *result);
"""

ENTRY_POINTS: Tuple[str, ...] = (
    "new_span_model",
    "inference_span",
    "free_span_model",
    "new_token_model",
    "inference_token",
    "free_token_model",
    "free_batch_result",
    "new_relation_model",
    "add_relation_schema",
    "inference_relation",
    "free_relation_model",
    "free_relation_result",
)

ffi = FFI()
ffi.cdef(CDEF)

__all__ = ["CDEF", "ENTRY_POINTS", "ffi"]
