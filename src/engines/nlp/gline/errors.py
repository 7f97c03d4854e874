from __future__ import annotations


class GlineError(RuntimeError):
    """Base class for every failure raised by the native binding."""


class PlatformUnsupportedError(GlineError):
    pass


class LibraryInitializationError(GlineError):
    pass


class LibraryNotInitializedError(LibraryInitializationError):
    def __init__(self, message: str = "library not initialized") -> None:
        super().__init__(message)


class ModelCreationError(GlineError):
    pass


class UseAfterCloseError(GlineError):
    def __init__(self, message: str = "model is closed") -> None:
        super().__init__(message)


class ValidationError(GlineError, ValueError):
    pass


class InferenceError(GlineError):
    pass


class ArtifactResolutionError(GlineError):
    pass


class IncompatibleModelError(ArtifactResolutionError):
    pass


class ModelDownloadError(ArtifactResolutionError):
    pass


__all__ = [
    "GlineError",
    "PlatformUnsupportedError",
    "LibraryInitializationError",
    "LibraryNotInitializedError",
    "ModelCreationError",
    "UseAfterCloseError",
    "ValidationError",
    "InferenceError",
    "ArtifactResolutionError",
    "IncompatibleModelError",
    "ModelDownloadError",
]
