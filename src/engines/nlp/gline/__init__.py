from .download import (
    new_relation_model_from_hub,
    new_span_model_from_hub,
    new_token_model_from_hub,
    resolve_model_files,
)
from .errors import (
    ArtifactResolutionError,
    GlineError,
    IncompatibleModelError,
    InferenceError,
    LibraryInitializationError,
    LibraryNotInitializedError,
    ModelCreationError,
    ModelDownloadError,
    PlatformUnsupportedError,
    UseAfterCloseError,
    ValidationError,
)
from .gline_model import GlineModel
from .handle import ModelHandle, new_relation_model, new_span_model, new_token_model
from .interfaces import Entity, GlineConfig, ModelVariant, Relation, RelationSchemaEntry
from .loader import LoadedLibrary, get_library, initialize, is_initialized
from .platforms import resolve_artifact
from .service import ExtractionResult, GlineService, RelationResult, build_service

__all__ = [
    "ArtifactResolutionError",
    "Entity",
    "ExtractionResult",
    "GlineConfig",
    "GlineError",
    "GlineModel",
    "GlineService",
    "IncompatibleModelError",
    "InferenceError",
    "LibraryInitializationError",
    "LibraryNotInitializedError",
    "LoadedLibrary",
    "ModelCreationError",
    "ModelDownloadError",
    "ModelHandle",
    "ModelVariant",
    "PlatformUnsupportedError",
    "Relation",
    "RelationResult",
    "RelationSchemaEntry",
    "UseAfterCloseError",
    "ValidationError",
    "build_service",
    "get_library",
    "initialize",
    "is_initialized",
    "new_relation_model",
    "new_relation_model_from_hub",
    "new_span_model",
    "new_span_model_from_hub",
    "new_token_model",
    "new_token_model_from_hub",
    "resolve_artifact",
    "resolve_model_files",
]
